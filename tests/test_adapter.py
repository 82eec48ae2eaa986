"""
Index lifecycle adapter against the in-memory cluster
"""

import asyncio
import logging

import pytest
from elasticsearch import ApiError

from searchsync.core.storage import ElasticsearchClient
from searchsync.engine import IndexBootstrapSet, IndexEvent, IndexLifecycleAdapter
from searchsync.exceptions import IndexDeleteError, MappingError
from searchsync.mapping import MapperRegistry

from tests.fakes import FakeElasticsearch, api_error
from tests.models import Article, Person, Plain, catalog


@pytest.mark.asyncio
async def test_index_delete_scenario(adapter, fake_es):
    person = Person(id=42, name="Alice")

    assert await adapter.index_document(Person, person)
    assert fake_es.documents[("myindex", "42")] == {"name": "Alice"}
    assert fake_es.indices.store["myindex"]["mappings"] == {"name": {"type": "text"}}
    assert fake_es.indices.store["myindex"]["meta"] == {"type_name": "mytype"}

    person.name = "Alicia"
    await adapter.handle(IndexEvent.index(person))
    assert fake_es.documents[("myindex", "42")] == {"name": "Alicia"}
    assert len(fake_es.documents) == 1

    await adapter.handle(IndexEvent.delete(person))
    assert ("myindex", "42") not in fake_es.documents
    assert fake_es.indices.create_calls == 1


@pytest.mark.asyncio
async def test_bootstrap_runs_once_per_type(adapter, fake_es):
    await adapter.index_document(Person, Person(id=1, name="a"))
    await adapter.index_document(Person, Person(id=2, name="b"))
    await adapter.index_document(Article, Article(id=3, title="c"))

    assert fake_es.indices.create_calls == 2
    assert fake_es.indices.put_mapping_calls == 2
    assert fake_es.indices.store["article"]["settings"] == {"number_of_shards": 1}
    assert Person in adapter.bootstrap
    assert len(adapter.bootstrap) == 2


@pytest.mark.asyncio
async def test_existing_index_is_tolerated(adapter, fake_es):
    fake_es.indices.store["myindex"] = {"settings": {}, "mappings": {}, "meta": None}

    assert await adapter.ensure_index_started(Person)
    assert Person in adapter.bootstrap
    assert fake_es.indices.put_mapping_calls == 1


@pytest.mark.asyncio
async def test_failed_bootstrap_is_retried(adapter, fake_es, caplog):
    fake_es.indices.fail_create = api_error(ApiError, 500, "cluster_block_exception")

    with caplog.at_level(logging.ERROR, logger="searchsync"):
        assert not await adapter.ensure_index_started(Person)
    assert Person not in adapter.bootstrap
    assert "Failed to start index myindex" in caplog.text

    fake_es.indices.fail_create = None
    assert await adapter.ensure_index_started(Person)
    assert Person in adapter.bootstrap
    assert fake_es.indices.create_calls == 2


@pytest.mark.asyncio
async def test_failed_mapping_install_is_retried(adapter, fake_es):
    fake_es.indices.fail_put_mapping = api_error(ApiError, 400, "mapper_parsing_exception")

    assert not await adapter.ensure_index_started(Person)

    fake_es.indices.fail_put_mapping = None
    assert await adapter.ensure_index_started(Person)
    assert fake_es.indices.put_mapping_calls == 2


@pytest.mark.asyncio
async def test_concurrent_first_writes_bootstrap_once():
    fake_es = FakeElasticsearch(latency=0.01)
    adapter = IndexLifecycleAdapter(
        ElasticsearchClient(client=fake_es), MapperRegistry(catalog=catalog)
    )

    await asyncio.gather(
        *(adapter.index_document(Person, Person(id=i, name=f"p{i}")) for i in range(10))
    )

    assert fake_es.indices.create_calls == 1
    assert len(adapter.bootstrap) == 1
    assert len(fake_es.documents) == 10


@pytest.mark.asyncio
async def test_concurrent_ensure_index_started():
    fake_es = FakeElasticsearch(latency=0.01)
    adapter = IndexLifecycleAdapter(
        ElasticsearchClient(client=fake_es), MapperRegistry(catalog=catalog)
    )

    results = await asyncio.gather(*(adapter.ensure_index_started(Person) for _ in range(10)))

    assert all(results)
    assert 1 <= fake_es.indices.create_calls <= 10
    assert len(adapter.bootstrap) == 1


@pytest.mark.asyncio
async def test_racing_processes_share_one_index():
    fake_es = FakeElasticsearch(latency=0.01)
    client = ElasticsearchClient(client=fake_es)
    first = IndexLifecycleAdapter(client, MapperRegistry(catalog=catalog), IndexBootstrapSet())
    second = IndexLifecycleAdapter(client, MapperRegistry(catalog=catalog), IndexBootstrapSet())

    results = await asyncio.gather(
        first.ensure_index_started(Person),
        second.ensure_index_started(Person),
    )

    assert results == [True, True]
    assert fake_es.indices.create_calls == 2
    assert list(fake_es.indices.store) == ["myindex"]


@pytest.mark.asyncio
async def test_write_failure_is_logged_not_raised(adapter, fake_es, caplog):
    fake_es.fail_index = api_error(ApiError, 503, "unavailable_shards_exception")

    with caplog.at_level(logging.ERROR, logger="searchsync"):
        written = await adapter.index_document(Person, Person(id=42, name="Alice"))

    assert written is False
    assert fake_es.documents == {}
    assert "Unable to index myindex/42" in caplog.text


@pytest.mark.asyncio
async def test_delete_failure_raises(adapter, fake_es):
    fake_es.fail_delete = api_error(ApiError, 503, "unavailable_shards_exception")

    with pytest.raises(IndexDeleteError, match="myindex/42"):
        await adapter.delete_document(Person, Person(id=42, name="Alice"))


@pytest.mark.asyncio
async def test_delete_of_missing_document(adapter, fake_es):
    deleted = await adapter.delete_document(Person, Person(id=404, name="ghost"))

    assert deleted is False
    assert fake_es.operations[-1] == ("delete", "myindex", "404")


@pytest.mark.asyncio
async def test_unmappable_type_propagates(adapter, fake_es):
    with pytest.raises(MappingError):
        await adapter.handle(IndexEvent.index(Plain()))

    assert fake_es.indices.create_calls == 0
