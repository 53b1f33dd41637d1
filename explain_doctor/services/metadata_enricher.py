"""
Metadata Enricher - fetch schema and index statistics for plan tables

Tables are fetched concurrently (bounded by a semaphore); within one table
the column list is fetched before the index list. A failure for one table
is logged and leaves that table out of the cache, the other tables are not
affected. There are no retries: one attempt per table per run.
"""

import asyncio
from typing import Iterable, Optional

from explain_doctor.core.config import get_settings
from explain_doctor.core.exceptions import MetadataLoadError
from explain_doctor.core.logger import get_logger, log_exception
from explain_doctor.database.schema_provider import SchemaProvider
from explain_doctor.models.metadata_models import TableMetadata
from explain_doctor.services.metadata_cache import MetadataCache

logger = get_logger('services.metadata_enricher')


class MetadataEnricher:
    """
    Populates a MetadataCache from a SchemaProvider

    Usage:
        enricher = MetadataEnricher(provider)
        cache = await enricher.enrich({"orders", "customers"})
    """

    def __init__(self, provider: SchemaProvider, max_concurrent_fetches: Optional[int] = None):
        self._provider = provider
        self._max_concurrent = max_concurrent_fetches or get_settings().analysis.max_concurrent_fetches

    async def enrich(
        self,
        table_names: Iterable[str],
        cache: Optional[MetadataCache] = None,
    ) -> MetadataCache:
        """
        Fetch metadata for every table name

        Args:
            table_names: Distinct table names (duplicates are collapsed)
            cache: Cache of the current run; a new one is created if omitted

        Returns:
            The populated cache. Failed tables are listed in ``cache.missing``.
        """
        cache = cache if cache is not None else MetadataCache()
        names = sorted({name for name in table_names if name and name not in cache})
        if not names:
            return cache

        semaphore = asyncio.Semaphore(self._max_concurrent)
        results = await asyncio.gather(*(self._fetch_table(name, semaphore) for name in names))

        # Results are stored only after every fetch finished, a cancelled run leaves the cache untouched
        for name, metadata in zip(names, results):
            if metadata is None:
                cache.mark_missing(name)
            else:
                cache.store(metadata)

        logger.info(f"Metadata fetched for {len(cache)}/{len(names)} table(s)")
        return cache

    async def _fetch_table(self, table: str, semaphore: asyncio.Semaphore) -> Optional[TableMetadata]:
        async with semaphore:
            try:
                columns = await self._provider.list_columns(table)
                indexes = await self._provider.list_indexes(table)
                metadata = TableMetadata(table=table, columns=list(columns), indexes=list(indexes))
            except Exception as e:
                log_exception(logger, e, MetadataLoadError(table).message)
                return None

        logger.debug(f"Fetched metadata for table: {table}")
        return metadata


async def fetch_table_metadata(
    table_names: Iterable[str],
    provider: SchemaProvider,
    max_concurrent_fetches: Optional[int] = None,
) -> MetadataCache:
    """Shortcut: fetch into a fresh per-run cache"""
    enricher = MetadataEnricher(provider, max_concurrent_fetches)
    return await enricher.enrich(table_names)
