"""
Mapper factories

Build ModelMappers and FieldMappers from registered metadata
"""

import dataclasses
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, get_type_hints

from searchsync.core.enums import EmbeddedMode
from searchsync.exceptions import MappingError
from searchsync.mapping.annotations import get_searchable_meta
from searchsync.mapping.descriptor import FieldDescriptor, describe, is_annotated, is_identifier
from searchsync.mapping.field_mapper import (
    CollectionFieldMapper,
    EmbeddedFieldMapper,
    FieldMapper,
    SimpleFieldMapper,
)
from searchsync.mapping.model_mapper import IdField, ModelMapper
from searchsync.mapping.types import collection_parts, is_dataclass_type, unwrap_optional


class MapperFactory(ABC):
    """Builds model and field mappers"""

    @abstractmethod
    def get_mapper(self, model_cls: type) -> ModelMapper:
        """
        Build the mapper of a model type

        Raises:
            MappingError: the type cannot be mapped
        """

    @abstractmethod
    def get_field_mapper(
        self, field: dataclasses.Field, value_type: Any, prefix: Optional[str] = None
    ) -> FieldMapper:
        """Build the mapper of one annotated dataclass field"""


def _type_hints(cls: type) -> Dict[str, Any]:
    try:
        return get_type_hints(cls)
    except Exception as e:
        raise MappingError(f"Cannot resolve type annotations of {cls.__name__}: {e}") from e


class DefaultMapperFactory(MapperFactory):
    """Builds mappers for @searchable dataclasses"""

    def __init__(self, index_namespace: str = "") -> None:
        self.index_namespace = index_namespace

    def index_name_for(self, model_cls: type, explicit: Optional[str]) -> str:
        name = explicit or model_cls.__name__.lower()
        if self.index_namespace:
            return f"{self.index_namespace}_{name}"
        return name

    def get_mapper(self, model_cls: type) -> ModelMapper:
        meta = get_searchable_meta(model_cls)
        if meta is None:
            raise MappingError(f"{model_cls.__name__} is not searchable")
        if not dataclasses.is_dataclass(model_cls):
            raise MappingError(f"{model_cls.__name__} must be a dataclass to be mapped")

        hints = _type_hints(model_cls)
        id_fields = [f for f in dataclasses.fields(model_cls) if is_identifier(f)]
        if len(id_fields) > 1:
            names = ", ".join(f.name for f in id_fields)
            raise MappingError(
                f"{model_cls.__name__} marks more than one identifier field: {names}"
            )

        id_field = None
        if id_fields:
            id_field = IdField(id_fields[0].name, hints.get(id_fields[0].name, Any))

        return ModelMapper(
            model_cls=model_cls,
            index_name=self.index_name_for(model_cls, meta.index_name),
            type_name=meta.type_name or model_cls.__name__.lower(),
            field_mappers=self.get_field_mappers(model_cls),
            id_field=id_field,
            id_factory=meta.id_factory,
            index_settings=meta.settings,
        )

    def get_field_mappers(
        self,
        model_cls: type,
        prefix: Optional[str] = None,
        _stack: Tuple[type, ...] = (),
    ) -> List[FieldMapper]:
        """Field mappers of every annotated field, in declaration order"""
        if model_cls in _stack:
            raise MappingError(f"{model_cls.__name__} embeds itself recursively")

        hints = _type_hints(model_cls)
        return [
            self.get_field_mapper(f, hints.get(f.name, Any), prefix, _stack + (model_cls,))
            for f in dataclasses.fields(model_cls)
            if is_annotated(f)
        ]

    def get_field_mapper(
        self,
        field: dataclasses.Field,
        value_type: Any,
        prefix: Optional[str] = None,
        _stack: Tuple[type, ...] = (),
    ) -> FieldMapper:
        descriptor = describe(field, value_type, prefix)

        embedded_cls, container = self._embedded_target(descriptor)
        if embedded_cls is not None:
            return self._embedded_mapper(descriptor, embedded_cls, container, _stack)
        if descriptor.embedded_mode is not None:
            raise MappingError(
                f"Field '{descriptor.name}' is marked embedded but {value_type!r} "
                f"is not a dataclass"
            )

        if collection_parts(value_type) is not None:
            return CollectionFieldMapper(descriptor)
        return SimpleFieldMapper(descriptor)

    def _embedded_target(
        self, descriptor: FieldDescriptor
    ) -> Tuple[Optional[type], Optional[type]]:
        value_type = unwrap_optional(descriptor.value_type)
        if is_dataclass_type(value_type):
            return value_type, None
        parts = collection_parts(value_type)
        if parts is not None and is_dataclass_type(parts[1]):
            return parts[1], parts[0]
        return None, None

    def _embedded_mapper(
        self,
        descriptor: FieldDescriptor,
        embedded_cls: type,
        container: Optional[type],
        stack: Tuple[type, ...],
    ) -> FieldMapper:
        if descriptor.is_multi_field:
            raise MappingError(f"Field '{descriptor.name}' is embedded and cannot be a multi-field")

        child_prefix = None
        if descriptor.embedded_mode == EmbeddedMode.FLATTEN:
            child_prefix = f"{descriptor.index_field}."
        children = self.get_field_mappers(embedded_cls, child_prefix, stack)
        return EmbeddedFieldMapper(descriptor, embedded_cls, children, container)
