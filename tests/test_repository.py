import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from review_store.config import Config
from review_store.db.repository import (
    ConnectionRegistry,
    Decoded,
    Raw,
    ReviewRepository,
    decode_document,
)


class TestDecodeDocument:
    def test_structured_value_passes_through(self):
        assert decode_document({"a": 1}) == Decoded({"a": 1})

    def test_json_text_is_decoded(self):
        assert decode_document('{"a": 1}') == Decoded({"a": 1})

    def test_malformed_text_is_raw(self):
        assert decode_document("{not json") == Raw("{not json")


class TestInit:
    @pytest.mark.asyncio
    async def test_init_sets_up_store_once(self, repository, driver):
        await repository.init()
        await repository.init()

        assert driver.init_calls == ["emea"]
        assert len(driver.clients) == 1

    @pytest.mark.asyncio
    async def test_init_returns_repository(self, repository):
        assert await repository.init() is repository

    @pytest.mark.asyncio
    async def test_defaults_come_from_config(self, driver, registry):
        repository = ReviewRepository(driver, registry=registry)
        await repository.init()

        assert driver.init_calls == [Config.DB_REGION]
        assert f"{Config.DB_REGION}::{Config.DB_COLLECTION}" in registry

    @pytest.mark.asyncio
    async def test_instances_share_cached_connection(self, driver, registry):
        first = ReviewRepository(driver, registry=registry, region="emea", collection="reviews")
        second = ReviewRepository(driver, registry=registry, region="emea", collection="reviews")
        await first.init()
        await second.init()

        assert len(driver.init_calls) == 1
        assert first._collection is second._collection

    @pytest.mark.asyncio
    async def test_different_keys_get_separate_connections(self, driver, registry):
        await ReviewRepository(driver, registry=registry, region="emea").init()
        await ReviewRepository(driver, registry=registry, region="amer").init()

        assert driver.init_calls == ["emea", "amer"]
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_concurrent_cold_start_connects_once(self, driver, registry):
        repositories = [
            ReviewRepository(driver, registry=registry, region="emea", collection="reviews")
            for _ in range(5)
        ]
        await asyncio.gather(*(r.init() for r in repositories))

        assert len(driver.clients) == 1

    @pytest.mark.asyncio
    async def test_exclusive_instances_do_not_use_registry(self, driver, registry):
        await ReviewRepository(driver, registry=registry).init()
        exclusive = ReviewRepository(driver, registry=registry, keep_alive=False)
        await exclusive.init()

        assert len(driver.clients) == 2
        assert registry.get(exclusive.connection_key).client is not exclusive._client

    @pytest.mark.asyncio
    async def test_setup_errors_propagate(self, registry):
        driver = MagicMock()
        driver.init = AsyncMock(side_effect=ConnectionError("unreachable"))
        repository = ReviewRepository(driver, registry=registry)

        with pytest.raises(ConnectionError):
            await repository.get("anything")
        assert len(registry) == 0


class TestCrud:
    @pytest.mark.asyncio
    async def test_put_then_get(self, repository, driver):
        key = await repository.put("k1", {"sku": "S"})

        assert key == "k1"
        assert driver.collection().documents["k1"] == {"_id": "k1", "sku": "S", "id": "k1"}
        assert await repository.get("k1") == {"sku": "S", "id": "k1"}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, repository):
        assert await repository.get("missing") is None

    @pytest.mark.asyncio
    async def test_put_keeps_explicit_id(self, repository):
        await repository.put("k1", {"id": "logical", "sku": "S"})
        assert (await repository.get("k1"))["id"] == "logical"

    @pytest.mark.asyncio
    async def test_put_decodes_json_text(self, repository):
        await repository.put("k1", json.dumps({"sku": "S"}))
        assert await repository.get("k1") == {"sku": "S", "id": "k1"}

    @pytest.mark.asyncio
    async def test_put_stores_malformed_text_verbatim(self, repository):
        await repository.put("k1", "{oops")
        assert await repository.get("k1") == {"value": "{oops", "id": "k1"}

    @pytest.mark.asyncio
    async def test_put_wraps_scalars(self, repository):
        await repository.put("k1", "42")
        assert await repository.get("k1") == {"value": 42, "id": "k1"}

    @pytest.mark.asyncio
    async def test_put_merges_fields(self, repository):
        await repository.put("k1", {"sku": "S", "title": "old"})
        await repository.put("k1", {"title": "new"})

        assert await repository.get("k1") == {"sku": "S", "title": "new", "id": "k1"}

    @pytest.mark.asyncio
    async def test_put_never_sets_storage_id(self, repository):
        collection = MagicMock()
        collection.update_one = AsyncMock()
        repository._collection = collection

        await repository.put("k1", {"_id": "other", "sku": "S"})

        collection.update_one.assert_awaited_once_with(
            {"_id": "k1"},
            {"$set": {"sku": "S", "id": "k1"}},
            upsert=True
        )

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, repository):
        await repository.put("k1", {"sku": "S"})
        await repository.delete("k1")
        await repository.delete("k1")

        assert await repository.get("k1") is None

    @pytest.mark.asyncio
    async def test_find_is_lazy_and_chainable(self, repository, driver):
        for i in range(5):
            await repository.put(f"k{i}", {"sku": f"S{i}", "rating": i})

        cursor = await repository.find({})
        assert cursor.iterated is False

        cursor.sort("rating", -1).skip(1).limit(2)
        ratings = [doc["rating"] async for doc in cursor]
        assert ratings == [3, 2]

    @pytest.mark.asyncio
    async def test_count_ignores_pagination(self, repository):
        for i in range(3):
            await repository.put(f"k{i}", {"sku": "S", "status": "pending"})
        await repository.put("k9", {"sku": "S", "status": "approved"})

        assert await repository.count({"status": "pending"}) == 3
        assert await repository.count() == 4


class TestNormalize:
    def test_strips_storage_id(self, repository):
        assert repository.normalize({"_id": "k", "id": "k", "sku": "S"}) == {"id": "k", "sku": "S"}

    def test_none_stays_none(self, repository):
        assert repository.normalize(None) is None


class TestClose:
    @pytest.mark.asyncio
    async def test_keep_alive_close_is_noop(self, repository, driver, registry):
        await repository.init()
        await repository.close()

        assert driver.clients[0].closed is False
        assert repository._collection is not None
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_exclusive_close_tears_down(self, driver, registry):
        repository = ReviewRepository(driver, registry=registry, keep_alive=False)
        await repository.init()
        client = repository._client

        await repository.close()

        assert client.closed is True
        assert repository._collection is None
        assert repository._client is None

    @pytest.mark.asyncio
    async def test_exclusive_close_before_init(self, driver, registry):
        repository = ReviewRepository(driver, registry=registry, keep_alive=False)
        await repository.close()
        assert driver.clients == []


class TestConnectionRegistry:
    def test_evict_client_removes_every_reference(self):
        registry = ConnectionRegistry()
        client, other = object(), object()
        registry.set("emea::reviews", MagicMock(client=client))
        registry.set("emea::archive", MagicMock(client=client))
        registry.set("amer::reviews", MagicMock(client=other))

        registry.evict_client(client)

        assert "emea::reviews" not in registry
        assert "emea::archive" not in registry
        assert "amer::reviews" in registry
