"""
Mapping module

Metadata annotations, field/model mappers, mapper factory and registry
"""

from searchsync.mapping.annotations import (
    GeoPoint,
    SearchableCatalog,
    SubField,
    default_catalog,
    embedded,
    is_searchable,
    multi_field,
    search_field,
    search_id,
    searchable,
)
from searchsync.mapping.descriptor import FieldDescriptor, describe
from searchsync.mapping.factory import DefaultMapperFactory, MapperFactory
from searchsync.mapping.field_mapper import (
    CollectionFieldMapper,
    EmbeddedFieldMapper,
    FieldMapper,
    SimpleFieldMapper,
)
from searchsync.mapping.model_mapper import ModelMapper
from searchsync.mapping.registry import MapperRegistry

__all__ = [
    # Annotations
    "searchable",
    "search_field",
    "multi_field",
    "search_id",
    "embedded",
    "SubField",
    "GeoPoint",
    "SearchableCatalog",
    "default_catalog",
    "is_searchable",
    # Descriptors
    "FieldDescriptor",
    "describe",
    # Mappers
    "FieldMapper",
    "SimpleFieldMapper",
    "CollectionFieldMapper",
    "EmbeddedFieldMapper",
    "ModelMapper",
    "MapperFactory",
    "DefaultMapperFactory",
    "MapperRegistry",
]
