"""
Engine module

Index lifecycle adapter, delivery dispatcher and the search subsystem context
"""

from searchsync.engine.adapter import IndexBootstrapSet, IndexLifecycleAdapter
from searchsync.engine.context import SearchContext
from searchsync.engine.delivery import (
    DeliveryDispatcher,
    DeliveryMode,
    IndexEventHandler,
    LocalIndexEventHandler,
    QueuedIndexEventHandler,
    load_custom_handler,
)
from searchsync.engine.events import IndexEvent

__all__ = [
    "SearchContext",
    "IndexEvent",
    "IndexBootstrapSet",
    "IndexLifecycleAdapter",
    "DeliveryDispatcher",
    "DeliveryMode",
    "IndexEventHandler",
    "LocalIndexEventHandler",
    "QueuedIndexEventHandler",
    "load_custom_handler",
]
