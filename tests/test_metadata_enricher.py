import asyncio

import pytest

from explain_doctor.core.exceptions import CacheError
from explain_doctor.models.metadata_models import TableMetadata
from explain_doctor.services.metadata_cache import MetadataCache
from explain_doctor.services.metadata_enricher import MetadataEnricher, fetch_table_metadata


@pytest.mark.asyncio
async def test_enrich_populates_cache(make_provider, orders_metadata, customers_metadata):
    provider = make_provider({"orders": orders_metadata, "customers": customers_metadata})

    cache = await MetadataEnricher(provider).enrich(["orders", "customers"])

    assert set(cache) == {"orders", "customers"}
    assert cache["orders"].column_names == ["id", "customer_id", "status", "created_at", "total"]
    assert [index.name for index in cache["customers"].indexes] == ["PRIMARY", "uq_email"]
    assert cache.missing == set()


@pytest.mark.asyncio
async def test_one_failing_table_does_not_affect_others(make_provider, orders_metadata, customers_metadata):
    provider = make_provider(
        {"orders": orders_metadata, "customers": customers_metadata},
        failing={"customers"},
    )

    cache = await MetadataEnricher(provider).enrich({"orders", "customers", "ghost"})

    assert set(cache) == {"orders"}
    assert cache.missing == {"customers", "ghost"}
    assert cache.get_table("customers") is None


@pytest.mark.asyncio
async def test_failure_is_logged(make_provider, caplog):
    provider = make_provider({}, failing={"orders"})

    await MetadataEnricher(provider).enrich(["orders"])

    assert "Failed to fetch metadata for table orders" in caplog.text


@pytest.mark.asyncio
async def test_columns_are_fetched_before_indexes(make_provider, orders_metadata, customers_metadata):
    provider = make_provider({"orders": orders_metadata, "customers": customers_metadata}, delay=0.01)

    await MetadataEnricher(provider).enrich(["orders", "customers"])

    for table in ("orders", "customers"):
        assert provider.calls.index(("columns", table)) < provider.calls.index(("indexes", table))


@pytest.mark.asyncio
async def test_column_failure_skips_index_fetch(make_provider):
    provider = make_provider({}, failing={"orders"})

    await MetadataEnricher(provider).enrich(["orders"])

    assert provider.calls == [("columns", "orders")]


@pytest.mark.asyncio
async def test_concurrency_is_bounded(make_provider):
    tables = {f"t{i}": TableMetadata(table=f"t{i}") for i in range(6)}
    provider = make_provider(tables, delay=0.02)

    cache = await MetadataEnricher(provider, max_concurrent_fetches=2).enrich(tables)

    assert len(cache) == 6
    assert provider.peak == 2


@pytest.mark.asyncio
async def test_concurrency_comes_from_settings(make_provider, monkeypatch):
    monkeypatch.setenv("EXPLAINDOCTOR_ANALYSIS__MAX_CONCURRENT_FETCHES", "1")
    tables = {f"t{i}": TableMetadata(table=f"t{i}") for i in range(3)}
    provider = make_provider(tables, delay=0.01)

    await MetadataEnricher(provider).enrich(tables)

    assert provider.peak == 1


@pytest.mark.asyncio
async def test_duplicates_and_empty_names_collapse(make_provider, orders_metadata):
    provider = make_provider({"orders": orders_metadata})

    await MetadataEnricher(provider).enrich(["orders", "orders", "", "orders"])

    assert provider.calls == [("columns", "orders"), ("indexes", "orders")]


@pytest.mark.asyncio
async def test_already_cached_tables_are_not_refetched(make_provider, orders_metadata):
    provider = make_provider({"orders": orders_metadata})
    cache = MetadataCache()
    cache.store(orders_metadata)

    result = await MetadataEnricher(provider).enrich(["orders"], cache)

    assert result is cache
    assert provider.calls == []


@pytest.mark.asyncio
async def test_each_run_gets_its_own_cache(make_provider, orders_metadata):
    provider = make_provider({"orders": orders_metadata})

    first = await fetch_table_metadata(["orders"], provider)
    second = await fetch_table_metadata(["orders"], provider)

    assert first is not second
    assert len(provider.calls) == 4


@pytest.mark.asyncio
async def test_cancelled_run_leaves_cache_empty(make_provider, orders_metadata):
    provider = make_provider({"orders": orders_metadata, "other": TableMetadata(table="other")}, delay=10)
    cache = MetadataCache()

    task = asyncio.create_task(MetadataEnricher(provider).enrich(["orders", "other"], cache))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(cache) == 0
    assert cache.missing == set()


class TestMetadataCache:
    def test_store_once(self, orders_metadata):
        cache = MetadataCache()
        cache.store(orders_metadata)
        with pytest.raises(CacheError):
            cache.store(orders_metadata)

    def test_mapping_interface(self, orders_metadata):
        cache = MetadataCache()
        cache.store(orders_metadata)
        assert "orders" in cache
        assert cache["orders"] is orders_metadata
        assert cache.get("missing") is None
        assert list(cache) == ["orders"]

    def test_mark_missing(self, orders_metadata):
        cache = MetadataCache()
        cache.mark_missing("orders")
        assert cache.missing == {"orders"}
        cache.store(orders_metadata)
        assert cache.missing == set()
        cache.mark_missing("orders")
        assert cache.missing == set()

    def test_get_table(self):
        assert MetadataCache().get_table(None) is None


@pytest.mark.asyncio
async def test_unusable_provider_result_is_skipped(make_provider, orders_metadata, caplog):
    class NoColumnsProvider(make_provider):
        async def list_columns(self, table):
            if table == "broken":
                return None
            return await super().list_columns(table)

    provider = NoColumnsProvider({"orders": orders_metadata, "broken": TableMetadata(table="broken")})

    cache = await MetadataEnricher(provider).enrich(["orders", "broken"])

    assert set(cache) == {"orders"}
    assert cache.missing == {"broken"}
    assert "Failed to fetch metadata for table broken" in caplog.text
