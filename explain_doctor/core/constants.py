"""
Application constants and enumerations
"""

from enum import Enum
from typing import Final

# =============================================================================
# Application Info
# =============================================================================

APP_NAME: Final[str] = "Explain Doctor"
APP_VERSION: Final[str] = "1.0.0"

# =============================================================================
# File Paths
# =============================================================================

CONFIG_FILE: Final[str] = "settings.json"
LOG_FILE: Final[str] = "explain_doctor.log"

# =============================================================================
# Database Constants
# =============================================================================

DEFAULT_QUERY_TIMEOUT: Final[int] = 30  # seconds
MAX_IDENTIFIER_LENGTH: Final[int] = 64  # MySQL identifier limit

# =============================================================================
# Analysis Constants
# =============================================================================

DEFAULT_MAX_CONCURRENT_FETCHES: Final[int] = 4

# Query block cost classification (strict ">" comparisons)
QUERY_COST_CRITICAL: Final[float] = 10000.0
QUERY_COST_WARNING: Final[float] = 1000.0

# Table access thresholds
RANGE_SCAN_ROWS_WARNING: Final[float] = 1000.0
LARGE_SCAN_ROWS: Final[float] = 10000.0
PARTITIONING_ROWS: Final[float] = 1_000_000.0
EFFICIENT_ACCESS_ROWS: Final[float] = 100.0
LOW_FILTERED_PERCENT: Final[float] = 10.0

# Selectivity = cardinality / max(rows, 1)
INDEX_SCAN_LOW_SELECTIVITY: Final[float] = 0.1
UNUSED_KEY_LOW_SELECTIVITY: Final[float] = 0.3

MAX_SUGGESTED_INDEX_COLUMNS: Final[int] = 3

# Node id segments
ROOT_NODE_ID: Final[str] = "root"

# =============================================================================
# Enumerations
# =============================================================================


class NodeKind(str, Enum):
    """Plan tree node kinds"""
    QUERY = "Query"
    TABLE_ACCESS = "TableAccess"
    GROUP_BY = "GroupBy"
    ORDER_BY = "OrderBy"


class Severity(str, Enum):
    """Diagnosis severity, ordered good < warning < critical"""
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.GOOD: 0,
    Severity.WARNING: 1,
    Severity.CRITICAL: 2,
}


class AccessType(str, Enum):
    """MySQL EXPLAIN access types the diagnostics know about"""
    ALL = "all"
    INDEX = "index"
    RANGE = "range"
    REF = "ref"
    EQ_REF = "eq_ref"
    CONST = "const"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> "AccessType":
        """Case-insensitive lookup, unknown values map to OTHER"""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


# Direct lookups that the engine reports as good
LOOKUP_ACCESS_TYPES: Final[frozenset] = frozenset({
    AccessType.REF,
    AccessType.EQ_REF,
    AccessType.CONST,
})


class ColumnKey(str, Enum):
    """Column key flags reported by DESCRIBE"""
    PRIMARY = "PRI"
    UNIQUE = "UNI"
    MULTIPLE = "MUL"
    NONE = ""
