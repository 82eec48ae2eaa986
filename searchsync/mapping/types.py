"""
Python type to schema type detection, and document value conversion
"""

import dataclasses
import types
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Tuple, Union, get_args, get_origin
from uuid import UUID

from searchsync.mapping.annotations import GeoPoint
from searchsync.utils.time import format_es_date, parse_iso_date, parse_iso_datetime

# Checked in order: bool before int, datetime before date
_SIMPLE_TYPES: Tuple[Tuple[type, str], ...] = (
    (bool, "boolean"),
    (int, "long"),
    (float, "double"),
    (str, "text"),
    (datetime, "date"),
    (date, "date"),
    (UUID, "keyword"),
)

_COLLECTION_ORIGINS = (list, set, frozenset, tuple)


def unwrap_optional(tp: Any) -> Any:
    """Optional[X] and X | None become X; other unions are returned unchanged"""
    origin = get_origin(tp)
    if origin is Union or origin is getattr(types, "UnionType", None):
        args = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def collection_parts(tp: Any) -> Optional[Tuple[type, Any]]:
    """
    Split list[X], set[X], tuple[X, ...] into (container, element type)

    Returns None for anything that is not a homogeneous collection.
    """
    tp = unwrap_optional(tp)
    origin = get_origin(tp)
    if origin not in _COLLECTION_ORIGINS:
        return None
    args = [arg for arg in get_args(tp) if arg is not Ellipsis]
    if origin is tuple and len(set(args)) > 1:
        return None
    return origin, (args[0] if args else Any)


def is_dataclass_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def detect_field_type(tp: Any) -> Optional[str]:
    """
    Schema type for a Python scalar type

    Returns:
        Elasticsearch type name, or None when the type has no scalar mapping
    """
    tp = unwrap_optional(tp)
    if not isinstance(tp, type):
        return None
    if issubclass(tp, Enum):
        return "keyword"
    if issubclass(tp, GeoPoint):
        return "geo_point"
    for py_type, es_type in _SIMPLE_TYPES:
        if issubclass(tp, py_type):
            return es_type
    return None


def to_document_value(value: Any) -> Any:
    """Convert a field value into its JSON document representation"""
    if value is None:
        return None
    if isinstance(value, Enum):
        return to_document_value(value.value)
    if isinstance(value, (datetime, date)):
        return format_es_date(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, GeoPoint):
        return {"lat": value.lat, "lon": value.lon}
    if isinstance(value, (list, set, frozenset, tuple)):
        return [to_document_value(item) for item in value]
    if isinstance(value, dict):
        return {str(k): to_document_value(v) for k, v in value.items()}
    return value


def _to_geo_point(value: Any) -> GeoPoint:
    if isinstance(value, dict):
        return GeoPoint(float(value["lat"]), float(value["lon"]))
    if isinstance(value, str):
        lat, lon = value.split(",")
        return GeoPoint(float(lat), float(lon))
    # GeoJSON order: [lon, lat]
    lon, lat = value
    return GeoPoint(float(lat), float(lon))


def from_document_value(value: Any, tp: Any) -> Any:
    """
    Convert a document value back into the field's Python type

    Values of types without a known inverse are returned as stored.
    """
    if value is None:
        return None

    tp = unwrap_optional(tp)
    if not isinstance(tp, type):
        return value
    if isinstance(value, tp) and not issubclass(tp, date):
        return value

    if issubclass(tp, Enum):
        return tp(value)
    if issubclass(tp, GeoPoint):
        return _to_geo_point(value)
    if issubclass(tp, bool):
        return value.lower() == "true" if isinstance(value, str) else bool(value)
    if issubclass(tp, datetime):
        return value if isinstance(value, datetime) else parse_iso_datetime(str(value))
    if issubclass(tp, date):
        if isinstance(value, datetime):
            return value.date()
        return value if isinstance(value, date) else parse_iso_date(str(value))
    if issubclass(tp, UUID):
        return UUID(str(value))
    if issubclass(tp, (int, float, str)):
        return tp(value)
    return value
