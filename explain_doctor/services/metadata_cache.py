"""
Per-run table metadata cache

One instance belongs to exactly one analysis run. It is filled once per
table by the enricher, read by the diagnostics and dropped with the run.
"""

from collections.abc import Mapping
from typing import Dict, Iterator, Optional, Set

from explain_doctor.core.exceptions import CacheError
from explain_doctor.models.metadata_models import TableMetadata


class MetadataCache(Mapping):
    """Read-only mapping of table name to TableMetadata, plus store()"""

    def __init__(self):
        self._entries: Dict[str, TableMetadata] = {}
        self._missing: Set[str] = set()

    def __getitem__(self, table: str) -> TableMetadata:
        return self._entries[table]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MetadataCache(tables={sorted(self._entries)}, missing={sorted(self._missing)})"

    @property
    def missing(self) -> Set[str]:
        """Tables whose fetch failed in this run"""
        return set(self._missing)

    def store(self, metadata: TableMetadata) -> None:
        """
        Add a table's metadata

        Raises:
            CacheError: If the table was already populated in this run
        """
        if metadata.table in self._entries:
            raise CacheError(f"Metadata for '{metadata.table}' is already cached", {"table": metadata.table})
        self._entries[metadata.table] = metadata
        self._missing.discard(metadata.table)

    def mark_missing(self, table: str) -> None:
        if table not in self._entries:
            self._missing.add(table)

    def get_table(self, table: Optional[str]) -> Optional[TableMetadata]:
        if not table:
            return None
        return self._entries.get(table)
