"""
Plan Diagnostics - severity and remediation hints for plan nodes

The query node gets a cost classification. Every table access node runs
through an ordered chain of rules. Each rule is a pure function of the node,
its table metadata and what earlier rules already reported; the outcomes are
folded left to right and severities only ever move up
(good < warning < critical).
"""

import math
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping, Optional, Sequence, Tuple

from explain_doctor.analysis.index_suggester import create_index_statement, suggest_for_table
from explain_doctor.core.constants import (
    AccessType,
    EFFICIENT_ACCESS_ROWS,
    INDEX_SCAN_LOW_SELECTIVITY,
    LARGE_SCAN_ROWS,
    LOOKUP_ACCESS_TYPES,
    LOW_FILTERED_PERCENT,
    NodeKind,
    PARTITIONING_ROWS,
    QUERY_COST_CRITICAL,
    QUERY_COST_WARNING,
    RANGE_SCAN_ROWS_WARNING,
    Severity,
    UNUSED_KEY_LOW_SELECTIVITY,
)
from explain_doctor.core.logger import get_logger
from explain_doctor.models.metadata_models import IndexStatistics, TableMetadata
from explain_doctor.models.plan_models import PlanNode

logger = get_logger('analysis.plan_diagnostics')


# =============================================================================
# Formatting
# =============================================================================


def format_count(value: float) -> str:
    """1234567 -> '1,234,567'"""
    return f"{value:,.0f}"


def format_percent(value: float) -> str:
    """5.0 -> '5', 2.5 -> '2.5'"""
    return f"{value:g}"


# =============================================================================
# Rule plumbing
# =============================================================================


@dataclass(frozen=True)
class RuleOutcome:
    """What a rule contributes to a node's diagnosis"""
    severity: Optional[Severity] = None
    issues: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TableContext:
    """Read-only view of a table access node while its rules run"""
    node: PlanNode
    metadata: Optional[TableMetadata] = None
    severity: Optional[Severity] = None
    issues: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def access(self) -> Optional[AccessType]:
        return self.node.access_kind

    @property
    def rows(self) -> Optional[float]:
        return self.node.rows_examined_estimate

    @property
    def table_name(self) -> str:
        return self.node.table or ""

    def selectivity(self, index: IndexStatistics) -> float:
        """cardinality / max(rows, 1); unknown rows count as 1"""
        rows = self.rows if self.rows is not None else 1.0
        return index.cardinality / max(rows, 1.0)

    def index_for(self, name: Optional[str]) -> Optional[IndexStatistics]:
        if self.metadata is None:
            return None
        return self.metadata.find_index(name)

    @property
    def chosen_index(self) -> Optional[IndexStatistics]:
        return self.index_for(self.node.key)

    def suggested_columns(self) -> list:
        if self.metadata is None:
            return []
        return suggest_for_table(self.node.attached_condition, self.metadata)


TableRule = Callable[[TableContext], Optional[RuleOutcome]]


def merge_severity(current: Optional[Severity], new: Optional[Severity]) -> Optional[Severity]:
    """Upgrade-only merge"""
    if new is None:
        return current
    if current is None or new.rank > current.rank:
        return new
    return current


# =============================================================================
# Table access rules (applied in TABLE_RULES order)
# =============================================================================


def full_table_scan_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    if ctx.access != AccessType.ALL:
        return None

    issues = ["⚠️ FULL TABLE SCAN - No index used"]
    columns = ctx.suggested_columns()
    if columns:
        statement = create_index_statement(ctx.table_name, columns)
        issues.append(f"💡 Consider creating an index: {statement}")
    else:
        issues.append("💡 Consider adding an index on the WHERE clause columns")
    return RuleOutcome(Severity.CRITICAL, tuple(issues))


def full_index_scan_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    if ctx.access != AccessType.INDEX:
        return None

    issues = ["⚠️ FULL INDEX SCAN - All rows in index examined"]
    index = ctx.chosen_index
    if index is not None:
        issues.append(
            f"💡 Index '{index.name}' covers columns: {index.columns_text} "
            f"(cardinality: {format_count(index.cardinality)})"
        )
        selectivity = ctx.selectivity(index)
        if selectivity < INDEX_SCAN_LOW_SELECTIVITY:
            issues.append(
                f"⚠️ Low index selectivity ({selectivity * 100:.1f}%) - "
                f"consider adding more columns to the index"
            )
    return RuleOutcome(Severity.WARNING, tuple(issues))


def range_scan_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    if ctx.access != AccessType.RANGE:
        return None

    if ctx.rows is None or ctx.rows <= RANGE_SCAN_ROWS_WARNING:
        return RuleOutcome(Severity.GOOD)

    issues = [f"⚠️ Range scan examining {format_count(ctx.rows)} rows"]
    index = ctx.chosen_index
    if index is not None:
        issues.append(f"💡 Using index '{index.name}' on {index.columns_text}")
        issues.append("💡 Consider adding more selective columns or refining the WHERE conditions")
    return RuleOutcome(Severity.WARNING, tuple(issues))


def lookup_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    if ctx.access not in LOOKUP_ACCESS_TYPES:
        return None

    index = ctx.chosen_index
    if index is None:
        return RuleOutcome(Severity.GOOD)
    return RuleOutcome(Severity.GOOD, (
        f"✅ Efficient {ctx.access.value} lookup using index '{index.name}' ({index.columns_text})",
    ))


def unused_possible_keys_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    node = ctx.node
    if not node.possible_keys or node.key:
        return None

    issues = [f"⚠️ Possible indexes available but not used: {', '.join(node.possible_keys)}"]
    for key_name in node.possible_keys:
        index = ctx.index_for(key_name)
        if index is None:
            continue
        selectivity = ctx.selectivity(index)
        if selectivity < UNUSED_KEY_LOW_SELECTIVITY:
            issues.append(
                f"💡 Index '{key_name}' has low selectivity ({selectivity * 100:.1f}%) - "
                f"optimizer chose table scan instead"
            )
        else:
            issues.append(
                f"💡 Index '{key_name}' covers: {index.columns_text} - consider forcing it with USE INDEX"
            )
    return RuleOutcome(Severity.WARNING, tuple(issues))


def low_filtered_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    filtered = ctx.node.filtered_percent
    if filtered is None or filtered >= LOW_FILTERED_PERCENT:
        return None

    issues = [f"⚠️ Only {format_percent(filtered)}% of rows match the condition"]
    if ctx.rows is not None:
        estimated_matches = math.floor(ctx.rows * filtered / 100)
        issues.append(f"💡 Estimated {format_count(estimated_matches)} rows will match after filtering")

    if not ctx.node.key:
        columns = ctx.suggested_columns()
        if columns:
            issues.append(f"💡 A composite index on ({', '.join(columns)}) might improve filtering")
    return RuleOutcome(Severity.WARNING, tuple(issues))


def large_scan_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    rows = ctx.rows
    if rows is None or rows <= LARGE_SCAN_ROWS:
        return None

    issues = [f"⚠️ Examining {format_count(rows)} rows"]
    if ctx.metadata is not None:
        issues.append(
            f"💡 Table has {len(ctx.metadata.columns)} columns - consider selecting only needed columns"
        )
    if rows > PARTITIONING_ROWS:
        issues.append(f"💡 Consider table partitioning for tables with {rows / 1_000_000:.1f}M+ rows")
    return RuleOutcome(Severity.WARNING, tuple(issues))


def efficient_access_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    key = ctx.node.key
    if not key or ctx.rows is None or ctx.rows >= EFFICIENT_ACCESS_ROWS or ctx.issues:
        return None

    if ctx.chosen_index is not None:
        message = f"✅ Highly efficient: Using index '{key}' to access only {format_count(ctx.rows)} rows"
    else:
        message = f"✅ Efficient index usage: {key}"
    return RuleOutcome(Severity.GOOD, (message,))


def unindexed_foreign_keys_rule(ctx: TableContext) -> Optional[RuleOutcome]:
    if ctx.access != AccessType.ALL or ctx.metadata is None:
        return None

    unindexed = ctx.metadata.unindexed_foreign_key_columns()
    if not unindexed:
        return None
    names = ", ".join(col.name for col in unindexed)
    return RuleOutcome(None, (f"⚠️ Foreign key columns without indexes: {names}",))


TABLE_RULES: Tuple[TableRule, ...] = (
    full_table_scan_rule,
    full_index_scan_rule,
    range_scan_rule,
    lookup_rule,
    unused_possible_keys_rule,
    low_filtered_rule,
    large_scan_rule,
    efficient_access_rule,
    unindexed_foreign_keys_rule,
)


def diagnose_table_access(
    node: PlanNode,
    metadata: Optional[TableMetadata],
    rules: Sequence[TableRule] = TABLE_RULES,
) -> RuleOutcome:
    """Fold the rule chain over one table access node"""
    ctx = TableContext(node=node, metadata=metadata)
    for rule in rules:
        outcome = rule(ctx)
        if outcome is None:
            continue
        ctx = replace(
            ctx,
            severity=merge_severity(ctx.severity, outcome.severity),
            issues=ctx.issues + outcome.issues,
        )
    return RuleOutcome(ctx.severity, ctx.issues)


def classify_query_cost(cost: Optional[float]) -> RuleOutcome:
    """Coarse classification of the query block cost"""
    if cost is None or math.isnan(cost):
        return RuleOutcome()
    if cost > QUERY_COST_CRITICAL:
        return RuleOutcome(Severity.CRITICAL, (f"Very high query cost: {cost:.2f}",))
    if cost > QUERY_COST_WARNING:
        return RuleOutcome(Severity.WARNING, (f"High query cost: {cost:.2f}",))
    return RuleOutcome(Severity.GOOD)


# =============================================================================
# Tree walk
# =============================================================================


class PlanDiagnostics:
    """
    Annotates a plan tree in place

    Usage:
        diagnostics = PlanDiagnostics(metadata_cache)
        diagnostics.annotate(tree)

    ``metadata`` maps table name to TableMetadata; tables without an entry
    only get the diagnostics that need no schema information.
    """

    def __init__(
        self,
        metadata: Optional[Mapping[str, TableMetadata]] = None,
        rules: Sequence[TableRule] = TABLE_RULES,
    ):
        self._metadata = metadata if metadata is not None else {}
        self._rules = tuple(rules)

    def annotate(self, tree: PlanNode) -> PlanNode:
        """Walk the tree depth-first and annotate QUERY and TABLE_ACCESS nodes"""
        for node in tree.iter_nodes():
            if node.kind == NodeKind.QUERY:
                outcome = classify_query_cost(node.cost)
            elif node.kind == NodeKind.TABLE_ACCESS:
                outcome = diagnose_table_access(node, self._lookup(node.table), self._rules)
            else:
                continue
            node.annotate(outcome.severity, list(outcome.issues))

        logger.debug(f"Annotated plan: {len(tree.collect_issues())} issue(s)")
        return tree

    def _lookup(self, table: Optional[str]) -> Optional[TableMetadata]:
        if not table:
            return None
        return self._metadata.get(table)
