"""searchsync - keep domain objects in sync with an Elasticsearch index

Derives index mappings from dataclass metadata, serializes models to
documents and delivers index/delete events synchronously, through a queue,
or through a custom handler.
"""

__version__ = "0.1.0"

from searchsync.core.enums import (
    ClientMode,
    DeliveryKind,
    EmbeddedMode,
    IndexOperation,
    ShutdownPolicy,
)
from searchsync.engine import (
    DeliveryMode,
    IndexEvent,
    IndexEventHandler,
    SearchContext,
)
from searchsync.exceptions import (
    ConfigError,
    DispatchError,
    IndexBootstrapError,
    IndexDeleteError,
    IndexWriteError,
    MappingError,
    SearchSyncError,
    StorageError,
    ValidationError,
)
from searchsync.mapping import (
    GeoPoint,
    ModelMapper,
    SubField,
    embedded,
    multi_field,
    search_field,
    search_id,
    searchable,
)

__all__ = [
    # Version
    "__version__",
    # Engine
    "SearchContext",
    "DeliveryMode",
    "IndexEvent",
    "IndexEventHandler",
    # Enums
    "ClientMode",
    "DeliveryKind",
    "EmbeddedMode",
    "IndexOperation",
    "ShutdownPolicy",
    # Mapping
    "searchable",
    "search_field",
    "multi_field",
    "search_id",
    "embedded",
    "SubField",
    "GeoPoint",
    "ModelMapper",
    # Exceptions
    "SearchSyncError",
    "ConfigError",
    "ValidationError",
    "MappingError",
    "StorageError",
    "IndexBootstrapError",
    "IndexWriteError",
    "IndexDeleteError",
    "DispatchError",
]
