"""
Analysis Module - EXPLAIN plan tree building and diagnostics
"""

from explain_doctor.analysis.plan_builder import PlanBuilder, build_plan_tree
from explain_doctor.analysis.table_extractor import extract_table_names
from explain_doctor.analysis.index_suggester import suggest_index_columns
from explain_doctor.analysis.plan_diagnostics import (
    PlanDiagnostics,
    RuleOutcome,
    TABLE_RULES,
    classify_query_cost,
    diagnose_table_access,
    merge_severity,
)
from explain_doctor.analysis.explain_analyzer import (
    ExplainAnalyzer,
    ExplainAnalysis,
    PartialMetadata,
    analyze_explain,
)

__all__ = [
    "PlanBuilder",
    "build_plan_tree",
    "extract_table_names",
    "suggest_index_columns",
    "PlanDiagnostics",
    "RuleOutcome",
    "TABLE_RULES",
    "classify_query_cost",
    "diagnose_table_access",
    "merge_severity",
    "ExplainAnalyzer",
    "ExplainAnalysis",
    "PartialMetadata",
    "analyze_explain",
]
