"""
Model mapper

Per-type aggregate of field mappers: names, document id, document and schema
serialization, and the inverse document to model conversion
"""

import json
from typing import Any, Callable, Dict, Generic, Mapping, Optional, Sequence, TypeVar

from elasticsearch_dsl import Mapping as SchemaMapping

from searchsync.exceptions import MappingError
from searchsync.mapping.field_mapper import FieldMapper, new_instance, set_field_value
from searchsync.mapping.types import from_document_value

M = TypeVar("M")


class IdField:
    """The field marked search_id"""

    def __init__(self, name: str, value_type: Any) -> None:
        self.name = name
        self.value_type = value_type

    def value(self, model: Any) -> Any:
        return getattr(model, self.name, None)

    def restore(self, model: Any, document_id: str) -> None:
        set_field_value(model, self.name, from_document_value(document_id, self.value_type))


def default_document_id(model: Any) -> Any:
    """Fallback id: the model's own id attribute"""
    return getattr(model, "id", None)


class ModelMapper(Generic[M]):
    """Maps one model type to an index"""

    def __init__(
        self,
        model_cls: type,
        index_name: str,
        type_name: str,
        field_mappers: Sequence[FieldMapper],
        id_field: Optional[IdField] = None,
        id_factory: Optional[Callable[[Any], Any]] = None,
        index_settings: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.model_cls = model_cls
        self.index_name = index_name
        self.type_name = type_name
        self.field_mappers = tuple(field_mappers)
        self.id_field = id_field
        self.id_factory = id_factory or default_document_id
        self.index_settings = dict(index_settings or {})

    def document_id(self, model: M) -> str:
        """
        Document id of a model

        The search_id field wins; otherwise the type's id factory is used.

        Raises:
            MappingError: no non-empty id can be derived
        """
        if self.id_field is not None:
            value = self.id_field.value(model)
        else:
            value = self.id_factory(model)

        document_id = "" if value is None else str(value)
        if not document_id:
            raise MappingError(
                f"Cannot derive a document id for {self.model_cls.__name__} instance"
            )
        return document_id

    def to_document(self, model: M) -> Dict[str, Any]:
        """Document body of a model, in field order"""
        document: Dict[str, Any] = {}
        for field_mapper in self.field_mappers:
            field_mapper.write_to_document(model, document)
        return document

    def to_json(self, model: M) -> bytes:
        """Document body as UTF-8 JSON"""
        return json.dumps(self.to_document(model), ensure_ascii=False).encode("utf-8")

    def to_schema(self) -> Dict[str, Any]:
        """
        Mapping pushed once per type at bootstrap

        Returns:
            {"properties": {...}, "_meta": {"type_name": ...}}
        """
        mapping = SchemaMapping()
        for field_mapper in self.field_mappers:
            field_mapper.write_to_schema(mapping)
        mapping.meta("_meta", {"type_name": self.type_name})

        schema = mapping.to_dict()
        schema.setdefault("properties", {})
        return schema

    def to_settings(self) -> Dict[str, Any]:
        """Index settings used when creating the index"""
        return dict(self.index_settings)

    def from_document(self, source: Mapping[str, Any], document_id: Optional[str] = None) -> M:
        """
        Build a new model from a document source

        Args:
            source: Document source, e.g. a search hit's _source
            document_id: Hit id, restored into the search_id field when given
        """
        model = new_instance(self.model_cls)
        for field_mapper in self.field_mappers:
            field_mapper.inflate(model, source)
        if document_id is not None and self.id_field is not None:
            self.id_field.restore(model, document_id)
        return model

    def __repr__(self) -> str:
        return (
            f"ModelMapper({self.model_cls.__name__}, index={self.index_name!r}, "
            f"type={self.type_name!r})"
        )
