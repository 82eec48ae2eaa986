"""
Storage module

Elasticsearch client wrapper
"""

from searchsync.core.storage.elasticsearch import (
    ALREADY_EXISTS_ERROR,
    ESConfig,
    ElasticsearchClient,
    is_already_exists,
    parse_host,
)

__all__ = [
    "ALREADY_EXISTS_ERROR",
    "ESConfig",
    "ElasticsearchClient",
    "is_already_exists",
    "parse_host",
]
