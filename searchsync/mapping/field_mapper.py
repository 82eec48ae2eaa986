"""
Field mappers

One strategy object per mapped field: writes the field into a document,
into a schema mapping, and reads it back from a document source.
"""

import dataclasses
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from elasticsearch_dsl import Field
from elasticsearch_dsl import Mapping as SchemaMapping
from elasticsearch_dsl.exceptions import UnknownDslObject

from searchsync.core.enums import EmbeddedMode
from searchsync.exceptions import MappingError
from searchsync.mapping.descriptor import FieldDescriptor
from searchsync.mapping.types import (
    collection_parts,
    detect_field_type,
    from_document_value,
    to_document_value,
)


def new_instance(cls: type) -> Any:
    """
    Allocate an instance without running __init__

    Dataclass defaults are applied so unmapped fields stay usable.
    """
    instance = cls.__new__(cls)
    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            if f.default is not dataclasses.MISSING:
                set_field_value(instance, f.name, f.default)
            elif f.default_factory is not dataclasses.MISSING:
                set_field_value(instance, f.name, f.default_factory())
    return instance


def set_field_value(model: Any, name: str, value: Any) -> None:
    # object.__setattr__ also works on frozen dataclasses
    object.__setattr__(model, name, value)


def _check_schema_type(descriptor: FieldDescriptor, es_type: str) -> None:
    try:
        Field.get_dsl_class(es_type)
    except UnknownDslObject:
        raise MappingError(
            f"Field '{descriptor.name}' uses unsupported schema type '{es_type}'"
        ) from None


class FieldMapper(ABC):
    """Maps one model field to the index"""

    def __init__(self, descriptor: FieldDescriptor) -> None:
        self.descriptor = descriptor

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def index_field(self) -> str:
        return self.descriptor.index_field

    def get_field_value(self, model: Any) -> Any:
        return getattr(model, self.descriptor.name, None)

    @abstractmethod
    def write_to_document(self, model: Any, document: Dict[str, Any]) -> None:
        """Append this field's entries to a document under construction"""

    @abstractmethod
    def write_to_schema(self, mapping: SchemaMapping) -> None:
        """Add this field's entries to a schema mapping"""

    @abstractmethod
    def read_from_document(self, source: Mapping[str, Any]) -> Tuple[Any, bool]:
        """
        Read this field's value from a document source

        Returns:
            (value, present); present is False when the source has no entry
        """

    def inflate(self, model: Any, source: Mapping[str, Any]) -> bool:
        """
        Apply the value found in source to model

        Returns:
            True if a value was applied
        """
        value, present = self.read_from_document(source)
        if present:
            set_field_value(model, self.descriptor.name, value)
        return present

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.index_field!r})"


class SimpleFieldMapper(FieldMapper):
    """Scalar field, single or multi-field"""

    def __init__(self, descriptor: FieldDescriptor) -> None:
        super().__init__(descriptor)
        self.schema_types = tuple(self._resolve_type(sub.type) for sub in descriptor.sub_fields)
        for es_type in self.schema_types:
            _check_schema_type(descriptor, es_type)

    @property
    def element_type(self) -> Any:
        return self.descriptor.value_type

    def _resolve_type(self, explicit: str) -> str:
        if explicit:
            return explicit
        detected = detect_field_type(self.element_type)
        if detected is None:
            raise MappingError(
                f"Field '{self.descriptor.name}' has unsupported type {self.element_type!r}"
            )
        return detected

    def write_to_document(self, model: Any, document: Dict[str, Any]) -> None:
        value = self.get_field_value(model)
        if value is None:
            return
        converted = to_document_value(value)
        for key in self.descriptor.keys():
            document[key] = converted

    def write_to_schema(self, mapping: SchemaMapping) -> None:
        for sub, es_type in zip(self.descriptor.sub_fields, self.schema_types):
            mapping.field(self.descriptor.key_for(sub), es_type, **dict(sub.settings))

    def convert(self, raw: Any) -> Any:
        return from_document_value(raw, self.descriptor.value_type)

    def read_from_document(self, source: Mapping[str, Any]) -> Tuple[Any, bool]:
        key = self.descriptor.key_for(self.descriptor.primary)
        if key not in source:
            return None, False
        return self.convert(source[key]), True


class CollectionFieldMapper(SimpleFieldMapper):
    """list/set/tuple of scalars; stored as a JSON array of the element type"""

    def __init__(self, descriptor: FieldDescriptor) -> None:
        parts = collection_parts(descriptor.value_type)
        if parts is None:
            raise MappingError(
                f"Field '{descriptor.name}' is not a homogeneous collection: "
                f"{descriptor.value_type!r}"
            )
        self.container, self._element_type = parts
        super().__init__(descriptor)

    @property
    def element_type(self) -> Any:
        return self._element_type

    def convert(self, raw: Any) -> Any:
        if raw is None:
            return None
        items = raw if isinstance(raw, list) else [raw]
        return self.container(from_document_value(item, self._element_type) for item in items)


class EmbeddedFieldMapper(FieldMapper):
    """
    Dataclass-typed field (or a collection of them)

    NESTED and OBJECT modes write a sub-document under the field's key.
    FLATTEN mode inlines the child fields, whose descriptors already carry
    the "<field>." prefix, directly into the parent.
    """

    def __init__(
        self,
        descriptor: FieldDescriptor,
        embedded_cls: type,
        children: Sequence[FieldMapper],
        container: Optional[type] = None,
    ) -> None:
        super().__init__(descriptor)
        self.embedded_cls = embedded_cls
        self.children = tuple(children)
        self.container = container
        self.mode = descriptor.embedded_mode or EmbeddedMode.NESTED
        if self.mode == EmbeddedMode.FLATTEN and container is not None:
            raise MappingError(
                f"Field '{descriptor.name}' is a collection and cannot be flattened"
            )
        if descriptor.has_type:
            raise MappingError(
                f"Field '{descriptor.name}' is embedded and cannot declare a schema type"
            )

    def _child_document(self, value: Any) -> Dict[str, Any]:
        child_doc: Dict[str, Any] = {}
        for child in self.children:
            child.write_to_document(value, child_doc)
        return child_doc

    def _child_instance(self, source: Mapping[str, Any]) -> Tuple[Any, bool]:
        instance = new_instance(self.embedded_cls)
        found = False
        for child in self.children:
            found = child.inflate(instance, source) or found
        return instance, found

    def write_to_document(self, model: Any, document: Dict[str, Any]) -> None:
        value = self.get_field_value(model)
        if value is None:
            return
        if self.mode == EmbeddedMode.FLATTEN:
            for child in self.children:
                child.write_to_document(value, document)
        elif self.container is not None:
            document[self.index_field] = [self._child_document(item) for item in value]
        else:
            document[self.index_field] = self._child_document(value)

    def write_to_schema(self, mapping: SchemaMapping) -> None:
        if self.mode == EmbeddedMode.FLATTEN:
            for child in self.children:
                child.write_to_schema(mapping)
            return

        child_mapping = SchemaMapping()
        for child in self.children:
            child.write_to_schema(child_mapping)
        properties = child_mapping.to_dict().get("properties", {})
        mapping.field(
            self.index_field,
            self.mode.value,
            **dict(self.descriptor.settings),
            properties=properties,
        )

    def read_from_document(self, source: Mapping[str, Any]) -> Tuple[Any, bool]:
        if self.mode == EmbeddedMode.FLATTEN:
            return self._child_instance(source)

        if self.index_field not in source:
            return None, False
        raw = source[self.index_field]
        if raw is None:
            return None, True
        if self.container is not None:
            items: List[Any] = raw if isinstance(raw, list) else [raw]
            return self.container(self._child_instance(item)[0] for item in items), True
        return self._child_instance(raw)[0], True
