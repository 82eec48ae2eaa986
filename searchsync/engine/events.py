"""
Index events
"""

from dataclasses import dataclass
from typing import Any

from searchsync.core.enums import IndexOperation


@dataclass(frozen=True)
class IndexEvent:
    """One model mutation to replicate into the index"""

    model: Any
    operation: IndexOperation

    @property
    def model_cls(self) -> type:
        return type(self.model)

    @classmethod
    def index(cls, model: Any) -> "IndexEvent":
        return cls(model, IndexOperation.INDEX)

    @classmethod
    def delete(cls, model: Any) -> "IndexEvent":
        return cls(model, IndexOperation.DELETE)

    def __str__(self) -> str:
        return f"IndexEvent({self.operation.value} {self.model_cls.__name__})"
