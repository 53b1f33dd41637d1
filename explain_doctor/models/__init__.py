"""
Data models module
"""

from explain_doctor.models.explain_input import (
    CostInfo,
    ExplainTable,
    NestedLoopEntry,
    PlanOperation,
    QueryBlock,
    ExplainDocument,
    decode_explain_payload,
)
from explain_doctor.models.metadata_models import (
    ColumnInfo,
    IndexStatistics,
    TableMetadata,
)
from explain_doctor.models.plan_models import PlanNode

__all__ = [
    "CostInfo",
    "ExplainTable",
    "NestedLoopEntry",
    "PlanOperation",
    "QueryBlock",
    "ExplainDocument",
    "decode_explain_payload",
    "ColumnInfo",
    "IndexStatistics",
    "TableMetadata",
    "PlanNode",
]
