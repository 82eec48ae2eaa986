"""
Mapping metadata

Models are dataclasses. A type opts in with @searchable, fields opt in through
dataclass field metadata built by search_field / multi_field / search_id /
embedded.

    @searchable(index_name="myindex", type_name="mytype")
    @dataclass
    class Person:
        id: int = field(default=0, metadata=search_id())
        name: str = field(default="", metadata=search_field())
        title: str = field(
            default="",
            metadata=multi_field(SubField(type="text"), SubField("raw", type="keyword")),
        )
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Union

from searchsync.core.enums import EmbeddedMode

# Field metadata keys
FIELD_KEY = "searchsync.field"
MULTI_FIELD_KEY = "searchsync.multi_field"
ID_KEY = "searchsync.id"
EMBEDDED_KEY = "searchsync.embedded"

SEARCHABLE_ATTR = "__searchable__"


class GeoPoint(NamedTuple):
    """Latitude/longitude pair, mapped to geo_point"""

    lat: float
    lon: float


@dataclass(frozen=True)
class SubField:
    """One projection of a multi-field; an empty name marks the primary key"""

    name: str = ""
    type: str = ""
    settings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FieldMeta:
    """Single-field metadata"""

    type: Optional[str] = None
    settings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchableMeta:
    """Type-level metadata recorded by @searchable"""

    index_name: Optional[str] = None
    type_name: Optional[str] = None
    settings: Mapping[str, Any] = field(default_factory=dict)
    id_factory: Optional[Callable[[Any], Any]] = None


def search_field(type: Optional[str] = None, **settings: Any) -> Dict[str, Any]:
    """
    Field metadata for a single searchable field

    Args:
        type: Explicit schema type; inferred from the annotation when omitted
        **settings: Passed through verbatim to the field's schema entry
    """
    return {FIELD_KEY: FieldMeta(type=type, settings=dict(settings))}


def multi_field(*sub_fields: SubField) -> Dict[str, Any]:
    """Field metadata for a field indexed under several projections"""
    return {MULTI_FIELD_KEY: tuple(sub_fields)}


def search_id() -> Dict[str, Any]:
    """Field metadata marking the document identifier"""
    return {ID_KEY: True}


def embedded(mode: Union[EmbeddedMode, str] = EmbeddedMode.NESTED) -> Dict[str, Any]:
    """Field metadata choosing how a dataclass-typed field is mapped"""
    return {EMBEDDED_KEY: EmbeddedMode(mode)}


class SearchableCatalog:
    """Registration list of searchable types"""

    def __init__(self) -> None:
        self._types: List[type] = []
        self._lock = threading.Lock()

    def register(self, cls: type) -> None:
        with self._lock:
            if cls not in self._types:
                self._types.append(cls)

    def unregister(self, cls: type) -> None:
        with self._lock:
            if cls in self._types:
                self._types.remove(cls)

    def types(self) -> List[type]:
        with self._lock:
            return list(self._types)

    def __contains__(self, cls: object) -> bool:
        return cls in self._types

    def __len__(self) -> int:
        return len(self._types)


default_catalog = SearchableCatalog()


def searchable(
    index_name: Optional[str] = None,
    type_name: Optional[str] = None,
    settings: Optional[Mapping[str, Any]] = None,
    id_factory: Optional[Callable[[Any], Any]] = None,
    catalog: Optional[SearchableCatalog] = None,
) -> Callable[[type], type]:
    """
    Class decorator marking a type as searchable

    Args:
        index_name: Index name, defaults to the lowercased class name
        type_name: Type name, defaults to the lowercased class name
        settings: Index settings used when the index is created
        id_factory: Fallback document id function when no field is marked search_id
        catalog: Catalog to register the type in
    """

    def decorator(cls: type) -> type:
        setattr(
            cls,
            SEARCHABLE_ATTR,
            SearchableMeta(
                index_name=index_name,
                type_name=type_name,
                settings=dict(settings or {}),
                id_factory=id_factory,
            ),
        )
        (catalog if catalog is not None else default_catalog).register(cls)
        return cls

    return decorator


def get_searchable_meta(cls: type) -> Optional[SearchableMeta]:
    """Metadata declared directly on cls, ignoring inherited declarations"""
    meta = cls.__dict__.get(SEARCHABLE_ATTR)
    return meta if isinstance(meta, SearchableMeta) else None


def is_searchable(cls: type) -> bool:
    return get_searchable_meta(cls) is not None
