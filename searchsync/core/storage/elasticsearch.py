"""
Elasticsearch storage client

Thin async wrapper used by the index lifecycle adapter
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError

from searchsync.core.config import Settings, get_settings
from searchsync.exceptions import ConfigError, StorageError
from searchsync.utils import get_logger

logger = get_logger("storage.elasticsearch")

ALREADY_EXISTS_ERROR = "resource_already_exists_exception"


def parse_host(host: str, default_scheme: str = "http") -> str:
    """
    Normalize one configured host into a URL

    "host:port" entries get a scheme, https when the port is 443.
    Entries that already carry a scheme are returned unchanged.

    Raises:
        ConfigError: the entry is not host:port
    """
    if host.startswith("http://") or host.startswith("https://"):
        return host

    parts = host.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1].isdigit():
        raise ConfigError(f"Invalid host: {host}")

    port = int(parts[1])
    scheme = "https" if port == 443 else default_scheme
    return f"{scheme}://{parts[0]}:{port}"


def is_already_exists(exc: ApiError) -> bool:
    """Whether an API error reports that the resource already exists"""
    body = exc.body if isinstance(exc.body, dict) else {}
    error = body.get("error")
    error_type = error.get("type") if isinstance(error, dict) else error
    return error_type == ALREADY_EXISTS_ERROR or ALREADY_EXISTS_ERROR in str(exc)


@dataclass
class ESConfig:
    """ES connection config"""

    hosts: List[str]
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: int = 30
    max_retries: int = 3
    verify_certs: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ESConfig":
        """Build the config from application settings"""
        settings = settings or get_settings()

        raw_hosts = settings.host_list
        if not raw_hosts:
            raise ConfigError("es_hosts is required when connecting to a remote cluster")

        return cls(
            hosts=[parse_host(host) for host in raw_hosts],
            username=settings.es_username,
            password=settings.es_password,
            timeout=settings.es_timeout,
            max_retries=settings.es_max_retries,
            verify_certs=settings.es_verify_certs,
        )


class ElasticsearchClient:
    """Elasticsearch async client"""

    def __init__(
        self,
        config: Optional[ESConfig] = None,
        client: Optional[AsyncElasticsearch] = None,
    ) -> None:
        """
        Initialize the client

        Args:
            config: ES config (read from settings when omitted)
            client: Pre-built AsyncElasticsearch; takes precedence over config
        """
        self._closed = False

        if client is not None:
            self.hosts: List[str] = []
            self.client = client
            return

        config = config or ESConfig.from_settings()
        self.hosts = config.hosts

        client_config: Dict[str, Any] = {
            "hosts": self.hosts,
            "request_timeout": config.timeout,
            "max_retries": config.max_retries,
            "verify_certs": config.verify_certs,
            **config.extra,
        }
        if config.username and config.password:
            client_config["basic_auth"] = (config.username, config.password)

        self.client = AsyncElasticsearch(**client_config)

        logger.info("Elasticsearch client initialized", extra={"hosts": self.hosts})

    @property
    def closed(self) -> bool:
        return self._closed

    async def create_index(
        self,
        index: str,
        settings: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Create an index

        Args:
            index: Index name
            settings: Index settings

        Returns:
            True if created, False if it already existed

        Raises:
            StorageError: creation failed
        """
        try:
            await self.client.indices.create(index=index, settings=settings or {})
            logger.info(f"Index created: {index}")
            return True
        except ApiError as e:
            if is_already_exists(e):
                logger.debug(f"Index already exists: {index}")
                return False
            logger.error(f"Failed to create index {index}: {e}", exc_info=True)
            raise StorageError(f"Failed to create index {index}: {e}") from e
        except Exception as e:
            logger.error(f"Failed to create index {index}: {e}", exc_info=True)
            raise StorageError(f"Failed to create index {index}: {e}") from e

    async def put_mapping(self, index: str, mapping: Dict[str, Any]) -> None:
        """
        Install a mapping on an index

        Args:
            index: Index name
            mapping: {"properties": {...}, "_meta": {...}}

        Raises:
            StorageError: the mapping was rejected
        """
        try:
            await self.client.indices.put_mapping(
                index=index,
                properties=mapping.get("properties", {}),
                meta=mapping.get("_meta"),
            )
            logger.debug(f"Mapping installed: {index}", extra={"mapping": mapping})
        except ApiError as e:
            if is_already_exists(e):
                logger.debug(f"Mapping already exists: {index}")
                return
            logger.error(f"Failed to put mapping on {index}: {e}", exc_info=True)
            raise StorageError(f"Failed to put mapping on {index}: {e}") from e
        except Exception as e:
            logger.error(f"Failed to put mapping on {index}: {e}", exc_info=True)
            raise StorageError(f"Failed to put mapping on {index}: {e}") from e

    async def index_document(
        self,
        index: str,
        doc_id: str,
        document: Dict[str, Any],
    ) -> str:
        """
        Upsert a document

        Returns:
            Document id

        Raises:
            StorageError: indexing failed
        """
        try:
            response = await self.client.index(index=index, id=doc_id, document=document)
            return response["_id"]
        except Exception as e:
            raise StorageError(f"Failed to index document {index}/{doc_id}: {e}") from e

    async def get_document(self, index: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a document source

        Returns:
            Document source, None if missing
        """
        try:
            response = await self.client.get(index=index, id=doc_id)
            return response["_source"]
        except NotFoundError:
            return None
        except Exception as e:
            logger.error(f"Failed to get document: {e}", exc_info=True)
            raise StorageError(f"Failed to get document {index}/{doc_id}: {e}") from e

    async def delete_document(self, index: str, doc_id: str) -> bool:
        """
        Delete a document

        Returns:
            True if deleted, False if it did not exist

        Raises:
            StorageError: deletion failed
        """
        try:
            await self.client.delete(index=index, id=doc_id)
            return True
        except NotFoundError:
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete document {index}/{doc_id}: {e}") from e

    async def index_exists(self, index: str) -> bool:
        """Check whether an index exists"""
        return bool(await self.client.indices.exists(index=index))

    async def ping(self) -> bool:
        """
        Test the connection

        Returns:
            True if the cluster answered
        """
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.error(f"ES ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close the connection; later calls are no-ops"""
        if self._closed:
            return
        self._closed = True
        await self.client.close()
        logger.info("Elasticsearch connection closed")
