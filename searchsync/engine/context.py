"""
Search subsystem context

Owns the client, mapper registry, bootstrap set, adapter and dispatcher for
one start/shutdown lifecycle, and exposes the client-facing API
"""

import inspect
from typing import Any, AsyncIterable, Callable, Iterable, Optional, Union

from searchsync.core.config import Settings, get_settings
from searchsync.core.enums import DeliveryKind, ShutdownPolicy
from searchsync.core.storage import ESConfig, ElasticsearchClient
from searchsync.engine.adapter import IndexBootstrapSet, IndexLifecycleAdapter
from searchsync.engine.delivery import (
    DeliveryDispatcher,
    DeliveryMode,
    IndexEventHandler,
    load_custom_handler,
)
from searchsync.engine.events import IndexEvent
from searchsync.exceptions import ConfigError, DispatchError, ValidationError
from searchsync.mapping import (
    DefaultMapperFactory,
    MapperFactory,
    MapperRegistry,
    ModelMapper,
    SearchableCatalog,
    default_catalog,
    is_searchable,
)
from searchsync.utils import get_logger

logger = get_logger("engine.context")

PERSISTED_SUFFIX = ".objectPersisted"
UPDATED_SUFFIX = ".objectUpdated"
DELETED_SUFFIX = ".objectDeleted"

ModelSource = Callable[[type], Union[Iterable[Any], AsyncIterable[Any]]]
Mode = Union[DeliveryMode, DeliveryKind, str]


class SearchContext:
    """
    The search subsystem

    Usage:
        async with SearchContext() as search:
            await search.index(person)
            await search.delete(person)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[ElasticsearchClient] = None,
        catalog: Optional[SearchableCatalog] = None,
        factory: Optional[MapperFactory] = None,
        custom_handler: Optional[IndexEventHandler] = None,
    ) -> None:
        """
        Build the subsystem; nothing talks to the cluster until first use

        Args:
            settings: Configuration, read from the environment when omitted
            client: Storage client, built from settings when omitted
            catalog: Searchable type catalog
            factory: Mapper factory, DefaultMapperFactory when omitted
            custom_handler: Handler for CUSTOM delivery; overrides the
                settings' custom_handler reference

        Raises:
            ConfigError: invalid client configuration
            DispatchError: CUSTOM delivery without a resolvable handler
        """
        self.settings = settings or get_settings()
        self.enabled = self.settings.search_enabled
        self.catalog = catalog if catalog is not None else default_catalog

        self.registry = MapperRegistry(
            factory or DefaultMapperFactory(self.settings.es_index_namespace),
            self.catalog,
        )
        self.bootstrap = IndexBootstrapSet()

        self._custom_handler = custom_handler
        self._client = client
        self._owns_client = client is None

        self.adapter: Optional[IndexLifecycleAdapter] = None
        self.dispatcher: Optional[DeliveryDispatcher] = None
        if self.enabled:
            self._build_pipeline()

        self._started = False

    def _build_pipeline(self) -> None:
        if self._client is None or (self._client.closed and self._owns_client):
            self._client = ElasticsearchClient(ESConfig.from_settings(self.settings))
        self.adapter = IndexLifecycleAdapter(self._client, self.registry, self.bootstrap)
        self.dispatcher = DeliveryDispatcher(
            self.adapter,
            self._mode_from_settings(self._custom_handler),
            self.settings.queue_capacity,
        )

    def _mode_from_settings(self, custom_handler: Optional[IndexEventHandler]) -> DeliveryMode:
        kind = self.settings.delivery_mode
        if kind != DeliveryKind.CUSTOM:
            return DeliveryMode(kind)
        if custom_handler is not None:
            return DeliveryMode.custom(custom_handler)
        if not self.settings.custom_handler:
            raise DispatchError("delivery_mode is custom but no custom_handler is configured")
        assert self.adapter is not None
        return DeliveryMode.custom(load_custom_handler(self.settings.custom_handler, self.adapter))

    @property
    def client(self) -> Optional[ElasticsearchClient]:
        return self._client

    @property
    def started(self) -> bool:
        return self._started

    # ======================
    # Lifecycle
    # ======================

    async def start(self) -> None:
        """Start (or restart) the subsystem with empty caches"""
        if self._started:
            logger.debug("Search subsystem already started")
            return

        self.registry.clear()
        self.bootstrap.clear()

        if not self.enabled:
            logger.info("Search subsystem disabled")
            return

        if self._client is not None and self._client.closed:
            if not self._owns_client:
                raise ConfigError("Cannot restart the search subsystem on a closed client")
            self._build_pipeline()

        assert self.dispatcher is not None
        await self.dispatcher.start()
        self._started = True
        logger.info(
            "Search subsystem started",
            extra={"delivery_mode": self.delivery_mode.kind.value},
        )

    async def shutdown(self) -> None:
        """Stop delivery and close the client; the client is closed once"""
        if self.dispatcher is not None:
            drain = self.settings.queue_shutdown == ShutdownPolicy.DRAIN
            await self.dispatcher.shutdown(drain=drain)
        if self._client is not None:
            await self._client.close()
        self._started = False
        logger.info("Search subsystem stopped")

    async def __aenter__(self) -> "SearchContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    # ======================
    # Delivery mode
    # ======================

    @property
    def delivery_mode(self) -> DeliveryMode:
        if self.dispatcher is None:
            return DeliveryMode.local()
        return self.dispatcher.default_mode

    @delivery_mode.setter
    def delivery_mode(self, mode: Mode) -> None:
        """Select the process-wide delivery mode"""
        if self.dispatcher is None:
            return
        self.dispatcher.default_mode = DeliveryMode.parse(mode)

    # ======================
    # Mapping
    # ======================

    def get_mapper(self, model_cls: type) -> ModelMapper:
        return self.registry.get_mapper(model_cls)

    def set_mapper_factory(self, factory: MapperFactory) -> None:
        self.registry.override(factory)

    def resolve_type_by_name(self, type_name: str) -> type:
        """
        Type registered under a type name, e.g. from a search hit

        Raises:
            MappingError: no searchable type uses this name
        """
        return self.registry.resolve_type_name(type_name)

    # ======================
    # Client API
    # ======================

    def _check_searchable(self, model: Any) -> None:
        if not is_searchable(type(model)):
            raise ValidationError(f"{type(model).__name__} is not searchable")

    async def _dispatch(self, event: IndexEvent, mode: Optional[Mode]) -> None:
        assert self.dispatcher is not None
        if not self._started:
            await self.start()
        # Mapping errors surface here in every delivery mode; cached after the first call
        self.registry.get_mapper(event.model_cls)
        await self.dispatcher.dispatch(event, DeliveryMode.parse(mode) if mode else None)

    async def index(self, model: Any, delivery_mode: Optional[Mode] = None) -> None:
        """
        Index a model

        Args:
            model: A @searchable model instance
            delivery_mode: Overrides the process-wide mode for this call

        Raises:
            ValidationError: the model is not searchable
            MappingError: the model's type cannot be mapped
        """
        if not self.enabled:
            return
        self._check_searchable(model)
        await self._dispatch(IndexEvent.index(model), delivery_mode)

    async def delete(self, model: Any, delivery_mode: Optional[Mode] = None) -> None:
        """
        Remove a model's document

        Raises:
            ValidationError: the model is not searchable
            MappingError: the model's type cannot be mapped
            IndexDeleteError: the delete failed (LOCAL delivery)
        """
        if not self.enabled:
            return
        self._check_searchable(model)
        await self._dispatch(IndexEvent.delete(model), delivery_mode)

    async def reindex_all(
        self,
        source: ModelSource,
        delivery_mode: Optional[Mode] = None,
    ) -> int:
        """
        Re-submit every model of every searchable type

        Args:
            source: Called with each catalog type, returns its models as a
                sync or async iterable
            delivery_mode: Overrides the process-wide mode for this run

        Returns:
            Number of index events submitted
        """
        if not self.enabled:
            return 0

        submitted = 0
        for model_cls in self.catalog.types():
            count = 0
            models = source(model_cls)
            if inspect.isawaitable(models):
                models = await models
            if hasattr(models, "__aiter__"):
                async for model in models:  # type: ignore[union-attr]
                    await self._dispatch(IndexEvent.index(model), delivery_mode)
                    count += 1
            else:
                for model in models:  # type: ignore[union-attr]
                    await self._dispatch(IndexEvent.index(model), delivery_mode)
                    count += 1
            submitted += count
            logger.info(f"Reindex submitted {model_cls.__name__}", extra={"count": count})

        return submitted

    async def on_event(self, message: str, model: Any) -> None:
        """
        Domain event hook

        "*.objectPersisted" and "*.objectUpdated" index the model,
        "*.objectDeleted" deletes it. Other messages and non-searchable
        models are ignored.
        """
        if not self.enabled or not is_searchable(type(model)):
            return

        if message.endswith(PERSISTED_SUFFIX) or message.endswith(UPDATED_SUFFIX):
            event = IndexEvent.index(model)
        elif message.endswith(DELETED_SUFFIX):
            event = IndexEvent.delete(model)
        else:
            return

        logger.info(f"Search index event: {event}")
        await self._dispatch(event, None)
