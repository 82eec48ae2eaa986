"""
Core enums

Index operations, delivery modes, client modes and shutdown policies
"""

from enum import Enum


class IndexOperation(str, Enum):
    """Operation carried by an index event"""

    INDEX = "index"
    DELETE = "delete"


class DeliveryKind(str, Enum):
    """How index events reach the search engine"""

    LOCAL = "local"  # inline, on the caller's task
    QUEUED = "queued"  # bounded FIFO queue, single consumer
    CUSTOM = "custom"  # externally supplied handler


class ClientMode(str, Enum):
    """How the search engine client connects"""

    EMBEDDED = "embedded"
    REMOTE = "remote"


class ShutdownPolicy(str, Enum):
    """What happens to queued events on shutdown"""

    DRAIN = "drain"
    DISCARD = "discard"


class EmbeddedMode(str, Enum):
    """How a dataclass-typed field is mapped"""

    NESTED = "nested"
    OBJECT = "object"
    FLATTEN = "flatten"  # child fields inlined under a "<field>." prefix
