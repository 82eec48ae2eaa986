"""
Shared fixtures
"""

import pytest

from searchsync.core.config import Settings
from searchsync.core.storage import ElasticsearchClient
from searchsync.engine import IndexLifecycleAdapter, SearchContext
from searchsync.mapping import MapperRegistry

from tests.fakes import FakeElasticsearch
from tests.models import catalog


@pytest.fixture
def fake_es() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture
def es_client(fake_es) -> ElasticsearchClient:
    return ElasticsearchClient(client=fake_es)


@pytest.fixture
def registry() -> MapperRegistry:
    return MapperRegistry(catalog=catalog)


@pytest.fixture
def adapter(es_client, registry) -> IndexLifecycleAdapter:
    return IndexLifecycleAdapter(es_client, registry)


@pytest.fixture
def make_settings():
    """Settings isolated from the environment's .env file"""

    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def make_context(es_client, make_settings):
    def _make(**overrides) -> SearchContext:
        return SearchContext(make_settings(**overrides), client=es_client, catalog=catalog)

    return _make
