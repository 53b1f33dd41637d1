"""
Table metadata models

Column and index descriptions fetched from a schema provider and cached for
the lifetime of one analysis run.
"""

import math
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field

from explain_doctor.core.constants import ColumnKey


def to_cardinality(value: Any) -> float:
    """Cardinality statistic, 0 when the server reports NULL or garbage"""
    if value is None or isinstance(value, bool):
        return 0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0
    return result if math.isfinite(result) else 0


@dataclass
class ColumnInfo:
    """Column as reported by DESCRIBE"""
    name: str
    type: str = ""
    nullable: bool = True
    key: str = ColumnKey.NONE.value  # PRI, UNI, MUL or ""
    default_value: Optional[Any] = None
    extra: str = ""

    @property
    def is_foreign_key_like(self) -> bool:
        """MUL marks the first column of a non-unique index, typically a foreign key"""
        return self.key == ColumnKey.MULTIPLE.value


@dataclass
class IndexStatistics:
    """Index definition with cardinality statistics"""
    name: str
    columns: List[str] = field(default_factory=list)  # ordered by position in index
    unique: bool = False
    type: str = ""
    cardinality: float = 0
    column_cardinalities: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        self.cardinality = to_cardinality(self.cardinality)

    @property
    def leading_column(self) -> Optional[str]:
        return self.columns[0] if self.columns else None

    @property
    def columns_text(self) -> str:
        return ", ".join(self.columns)


@dataclass
class TableMetadata:
    """Schema and index metadata for one table"""
    table: str
    columns: List[ColumnInfo] = field(default_factory=list)
    indexes: List[IndexStatistics] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        """Column names in declaration order"""
        return [col.name for col in self.columns]

    @property
    def leading_index_columns(self) -> set:
        """Columns that lead at least one known index"""
        return {idx.leading_column for idx in self.indexes if idx.leading_column}

    def find_index(self, name: Optional[str]) -> Optional[IndexStatistics]:
        """Find an index by name"""
        if not name:
            return None
        for index in self.indexes:
            if index.name == name:
                return index
        return None

    def unindexed_foreign_key_columns(self) -> List[ColumnInfo]:
        """MUL-keyed columns that are not the leading column of any index"""
        leading = self.leading_index_columns
        return [
            col for col in self.columns
            if col.is_foreign_key_like and col.name not in leading
        ]
