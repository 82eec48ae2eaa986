"""
Field descriptors

Normalize the metadata attached to one dataclass field
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from searchsync.core.enums import EmbeddedMode
from searchsync.exceptions import MappingError
from searchsync.mapping.annotations import (
    EMBEDDED_KEY,
    FIELD_KEY,
    ID_KEY,
    MULTI_FIELD_KEY,
    FieldMeta,
    SubField,
)


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Normalized field metadata

    A single field is stored as one unnamed sub-field, so sub_fields always
    holds 1..N entries and sub_fields[0] is the primary projection.
    """

    name: str
    value_type: Any
    index_field: str
    sub_fields: Tuple[SubField, ...]
    embedded_mode: Optional[EmbeddedMode] = None
    prefix: Optional[str] = None
    identifier: bool = False

    @property
    def primary(self) -> SubField:
        return self.sub_fields[0]

    @property
    def is_multi_field(self) -> bool:
        return len(self.sub_fields) > 1

    @property
    def has_type(self) -> bool:
        return bool(self.primary.type)

    @property
    def explicit_type(self) -> Optional[str]:
        return self.primary.type or None

    @property
    def settings(self) -> Mapping[str, Any]:
        return self.primary.settings

    def key_for(self, sub_field: SubField) -> str:
        """Document/schema key of a sub-field"""
        if not sub_field.name:
            return self.index_field
        return f"{self.index_field}_{sub_field.name}"

    def keys(self) -> Tuple[str, ...]:
        return tuple(self.key_for(sub) for sub in self.sub_fields)


def is_annotated(f: dataclasses.Field) -> bool:
    """Whether a dataclass field is mapped into documents"""
    return any(key in f.metadata for key in (FIELD_KEY, MULTI_FIELD_KEY, EMBEDDED_KEY))


def is_identifier(f: dataclasses.Field) -> bool:
    return bool(f.metadata.get(ID_KEY, False))


def _multi_sub_fields(name: str, sub_fields: Tuple[SubField, ...]) -> Tuple[SubField, ...]:
    if not sub_fields:
        raise MappingError(f"Field '{name}' declares a multi-field without sub-fields")

    seen = set()
    for sub in sub_fields:
        if sub.name in seen:
            raise MappingError(f"Field '{name}' declares sub-field '{sub.name}' twice")
        seen.add(sub.name)
        if len(sub_fields) > 1 and not sub.type:
            label = sub.name or "<primary>"
            raise MappingError(
                f"Field '{name}' sub-field '{label}' requires an explicit type"
            )
    return tuple(sub_fields)


def describe(
    f: dataclasses.Field,
    value_type: Any,
    prefix: Optional[str] = None,
) -> FieldDescriptor:
    """
    Build the descriptor of an annotated dataclass field

    Args:
        f: The dataclass field
        value_type: Resolved type annotation of the field
        prefix: Prefix prepended to the index field name

    Raises:
        MappingError: conflicting or incomplete metadata
    """
    single: Optional[FieldMeta] = f.metadata.get(FIELD_KEY)
    multi: Optional[Tuple[SubField, ...]] = f.metadata.get(MULTI_FIELD_KEY)
    embedded_mode: Optional[EmbeddedMode] = f.metadata.get(EMBEDDED_KEY)

    if single is not None and multi is not None:
        raise MappingError(
            f"Field '{f.name}' declares both a single field and a multi-field mapping"
        )
    if multi is not None and embedded_mode is not None:
        raise MappingError(f"Field '{f.name}' cannot be both embedded and a multi-field")

    if multi is not None:
        sub_fields = _multi_sub_fields(f.name, tuple(multi))
    else:
        meta = single or FieldMeta()
        sub_fields = (SubField(type=meta.type or "", settings=dict(meta.settings)),)

    return FieldDescriptor(
        name=f.name,
        value_type=value_type,
        index_field=f"{prefix}{f.name}" if prefix else f.name,
        sub_fields=sub_fields,
        embedded_mode=embedded_mode,
        prefix=prefix,
        identifier=is_identifier(f),
    )
