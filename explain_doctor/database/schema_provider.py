"""Schema provider interface consumed by the metadata enricher."""

from abc import ABC, abstractmethod
from typing import List

from explain_doctor.models.metadata_models import ColumnInfo, IndexStatistics


class SchemaProvider(ABC):
    """Host-supplied access to table schema and index statistics.

    Each call may fail independently per table; the enricher treats any
    exception, timeouts included, as "no metadata for this table".
    """

    @abstractmethod
    async def list_columns(self, table: str) -> List[ColumnInfo]:
        """Columns of ``table`` in declaration order."""
        pass

    @abstractmethod
    async def list_indexes(self, table: str) -> List[IndexStatistics]:
        """Indexes of ``table`` with columns ordered by position in the index."""
        pass
