"""
Mapper registry

Caches one ModelMapper per type and resolves types from their type name
"""

import threading
from typing import Dict, Optional

from searchsync.exceptions import MappingError
from searchsync.mapping.annotations import SearchableCatalog, default_catalog
from searchsync.mapping.factory import DefaultMapperFactory, MapperFactory
from searchsync.mapping.model_mapper import ModelMapper
from searchsync.utils import get_logger

logger = get_logger("mapping.registry")


class MapperRegistry:
    """
    Write-once-per-type mapper cache

    Reads are plain dict lookups. Builds are serialized per type so
    concurrent first calls observe a single mapper.
    """

    def __init__(
        self,
        factory: Optional[MapperFactory] = None,
        catalog: Optional[SearchableCatalog] = None,
    ) -> None:
        self._factory = factory or DefaultMapperFactory()
        self.catalog = catalog if catalog is not None else default_catalog
        self._mappers: Dict[type, ModelMapper] = {}
        self._type_names: Dict[str, type] = {}
        self._locks: Dict[type, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def factory(self) -> MapperFactory:
        return self._factory

    def _lock_for(self, model_cls: type) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(model_cls)
            if lock is None:
                lock = self._locks[model_cls] = threading.Lock()
            return lock

    def get_mapper(self, model_cls: type) -> ModelMapper:
        """
        Get the mapper of a type, building it on first use

        Raises:
            MappingError: the type cannot be mapped; nothing is cached
        """
        mapper = self._mappers.get(model_cls)
        if mapper is not None:
            return mapper

        with self._lock_for(model_cls):
            mapper = self._mappers.get(model_cls)
            if mapper is not None:
                return mapper

            factory = self._factory
            mapper = factory.get_mapper(model_cls)
            with self._locks_guard:
                # An override during the build invalidates the result
                if factory is self._factory:
                    self._type_names.setdefault(mapper.type_name, model_cls)
                    self._mappers[model_cls] = mapper

        logger.debug(
            f"Mapper built for {model_cls.__name__}",
            extra={"index": mapper.index_name, "type_name": mapper.type_name},
        )
        return mapper

    def is_cached(self, model_cls: type) -> bool:
        return model_cls in self._mappers

    def resolve_type_name(self, type_name: str) -> type:
        """
        Find the type registered under a type name

        Unknown names trigger a scan of the catalog, building each type's
        mapper as a side effect. Types whose mapper cannot be built are skipped.

        Raises:
            MappingError: no searchable type uses this name
        """
        model_cls = self._type_names.get(type_name)
        if model_cls is not None:
            return model_cls

        for candidate in self.catalog.types():
            try:
                mapper = self.get_mapper(candidate)
            except MappingError as e:
                logger.debug(f"Skipping {candidate.__name__} during type lookup: {e}")
                continue
            if mapper.type_name == type_name:
                return candidate

        raise MappingError(f"Type name '{type_name}' is not searchable")

    def override(self, factory: MapperFactory) -> None:
        """Replace the build strategy and drop every cached mapper"""
        with self._locks_guard:
            self._factory = factory
            self._mappers = {}
            self._type_names = {}
        logger.info(f"Mapper factory replaced by {factory.__class__.__name__}")

    def clear(self) -> None:
        """Drop every cached mapper"""
        with self._locks_guard:
            self._mappers = {}
            self._type_names = {}
