"""
Plan tree models

PlanNode is the closed, fully decoded form of an EXPLAIN plan. The builder
creates the structure and the estimates; the diagnostics engine fills in
severity and issues exactly once per analysis run.
"""

from typing import Optional, List, Iterator
from dataclasses import dataclass, field

from explain_doctor.core.constants import AccessType, NodeKind, Severity
from explain_doctor.core.exceptions import DiagnosticsError


@dataclass
class PlanNode:
    """
    One node of the diagnosis tree

    Table fields are only populated on TABLE_ACCESS nodes; cost is only
    meaningful on QUERY and TABLE_ACCESS nodes.
    """
    id: str
    kind: NodeKind
    cost: Optional[float] = None
    children: List['PlanNode'] = field(default_factory=list)

    # Query block
    select_id: Optional[int] = None

    # Table access
    table: Optional[str] = None
    access_type: Optional[str] = None
    possible_keys: List[str] = field(default_factory=list)
    key: Optional[str] = None
    rows_examined_estimate: Optional[float] = None
    filtered_percent: Optional[float] = None
    read_cost: Optional[float] = None
    attached_condition: Optional[str] = None

    # Diagnosis
    severity: Optional[Severity] = None
    issues: List[str] = field(default_factory=list)
    annotated: bool = field(default=False, repr=False, compare=False)

    @property
    def display_name(self) -> str:
        """Label shown by the presentation layer"""
        if self.kind == NodeKind.QUERY:
            return f"SELECT #{self.select_id}" if self.select_id is not None else "Query"
        if self.kind == NodeKind.TABLE_ACCESS:
            return f"Table Access [{self.table}]" if self.table else "Table Access"
        if self.kind == NodeKind.GROUP_BY:
            return "GROUP BY"
        return "ORDER BY"

    @property
    def access_kind(self) -> Optional[AccessType]:
        if not self.access_type:
            return None
        return AccessType.parse(self.access_type)

    @property
    def is_table_access(self) -> bool:
        return self.kind == NodeKind.TABLE_ACCESS

    @property
    def has_issues(self) -> bool:
        return len(self.issues) > 0

    def annotate(self, severity: Optional[Severity], issues: List[str]) -> None:
        """
        Record the diagnosis for this node

        Raises:
            DiagnosticsError: If the node was already annotated in this run
        """
        if self.annotated:
            raise DiagnosticsError(f"Node '{self.id}' is already annotated", {"node": self.id})
        self.severity = severity
        self.issues.extend(issues)
        self.annotated = True

    def iter_nodes(self) -> Iterator['PlanNode']:
        """Depth-first, pre-order walk"""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def table_nodes(self) -> List['PlanNode']:
        return [node for node in self.iter_nodes() if node.is_table_access]

    def find(self, node_id: str) -> Optional['PlanNode']:
        """Address a node by its id"""
        for node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None

    def collect_issues(self) -> List[str]:
        """All issues of the subtree in display order"""
        issues: List[str] = []
        for node in self.iter_nodes():
            issues.extend(node.issues)
        return issues

    def total_rows_examined(self) -> float:
        """Sum of known row estimates in the subtree"""
        return sum(
            node.rows_examined_estimate
            for node in self.iter_nodes()
            if node.rows_examined_estimate is not None
        )

    def worst_severity(self) -> Optional[Severity]:
        """Highest severity anywhere in the subtree"""
        worst: Optional[Severity] = None
        for node in self.iter_nodes():
            if node.severity is not None and (worst is None or node.severity.rank > worst.rank):
                worst = node.severity
        return worst
