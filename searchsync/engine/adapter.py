"""
Index lifecycle adapter

Bootstraps each type's index and mapping once, then writes and deletes
documents through the model mapper
"""

import asyncio
from typing import Any, Dict, Optional, Set

from searchsync.core.enums import IndexOperation
from searchsync.core.storage import ElasticsearchClient
from searchsync.engine.events import IndexEvent
from searchsync.exceptions import (
    IndexBootstrapError,
    IndexDeleteError,
    IndexWriteError,
    StorageError,
)
from searchsync.mapping import MapperRegistry, ModelMapper
from searchsync.utils import get_logger

logger = get_logger("engine.adapter")


class IndexBootstrapSet:
    """Types whose index and mapping were pushed in this process lifetime"""

    def __init__(self) -> None:
        self._started: Set[type] = set()
        self._locks: Dict[type, asyncio.Lock] = {}

    def __contains__(self, model_cls: object) -> bool:
        return model_cls in self._started

    def __len__(self) -> int:
        return len(self._started)

    def add(self, model_cls: type) -> bool:
        """
        Mark a type as bootstrapped

        Returns:
            False if it already was
        """
        if model_cls in self._started:
            return False
        self._started.add(model_cls)
        return True

    def lock_for(self, model_cls: type) -> asyncio.Lock:
        lock = self._locks.get(model_cls)
        if lock is None:
            lock = self._locks[model_cls] = asyncio.Lock()
        return lock

    def clear(self) -> None:
        self._started.clear()
        self._locks.clear()


class IndexLifecycleAdapter:
    """Talks to the search engine on behalf of the delivery handlers"""

    def __init__(
        self,
        client: ElasticsearchClient,
        registry: MapperRegistry,
        bootstrap: Optional[IndexBootstrapSet] = None,
    ) -> None:
        self.client = client
        self.registry = registry
        self.bootstrap = bootstrap if bootstrap is not None else IndexBootstrapSet()

    async def start_index(self, mapper: ModelMapper) -> None:
        """
        Create the index and install the mapping

        "Already exists" answers count as success.

        Raises:
            StorageError: any other failure
        """
        logger.info(
            f"Starting index for {mapper.model_cls.__name__}",
            extra={"index": mapper.index_name, "type_name": mapper.type_name},
        )
        await self.client.create_index(mapper.index_name, mapper.to_settings())
        await self.client.put_mapping(mapper.index_name, mapper.to_schema())

    async def ensure_index_started(self, model_cls: type) -> bool:
        """
        Bootstrap a type's index if this process has not done so yet

        Returns:
            True if the type is bootstrapped; False if bootstrap failed and
            will be retried on next access

        Raises:
            MappingError: the type cannot be mapped
        """
        if model_cls in self.bootstrap:
            return True

        async with self.bootstrap.lock_for(model_cls):
            if model_cls in self.bootstrap:
                return True

            mapper = self.registry.get_mapper(model_cls)
            try:
                await self.start_index(mapper)
            except StorageError as e:
                error = IndexBootstrapError(
                    f"Failed to start index {mapper.index_name} for {model_cls.__name__}: {e}"
                )
                logger.error(error.message, exc_info=True)
                return False

            self.bootstrap.add(model_cls)
            return True

    async def index_document(self, model_cls: type, model: Any) -> bool:
        """
        Upsert a model's document

        Storage failures are logged and swallowed.

        Returns:
            True if the document was written
        """
        await self.ensure_index_started(model_cls)
        mapper = self.registry.get_mapper(model_cls)
        doc_id = mapper.document_id(model)
        document = mapper.to_document(model)

        try:
            await self.client.index_document(mapper.index_name, doc_id, document)
        except StorageError as e:
            error = IndexWriteError(f"Unable to index {mapper.index_name}/{doc_id}: {e}")
            logger.error(error.message, exc_info=True)
            return False

        logger.debug(
            f"Indexed {mapper.index_name}/{doc_id}",
            extra={"type_name": mapper.type_name},
        )
        return True

    async def delete_document(self, model_cls: type, model: Any) -> bool:
        """
        Delete a model's document

        Returns:
            True if a document was deleted, False if none existed

        Raises:
            IndexDeleteError: the delete failed
        """
        await self.ensure_index_started(model_cls)
        mapper = self.registry.get_mapper(model_cls)
        doc_id = mapper.document_id(model)

        try:
            deleted = await self.client.delete_document(mapper.index_name, doc_id)
        except StorageError as e:
            logger.error(f"Unable to delete {mapper.index_name}/{doc_id}: {e}", exc_info=True)
            raise IndexDeleteError(f"Unable to delete {mapper.index_name}/{doc_id}: {e}") from e

        if not deleted:
            logger.debug(f"Document already absent: {mapper.index_name}/{doc_id}")
        return deleted

    async def handle(self, event: IndexEvent) -> None:
        """Apply one event synchronously"""
        if event.operation == IndexOperation.DELETE:
            await self.delete_document(event.model_cls, event.model)
        else:
            await self.index_document(event.model_cls, event.model)
