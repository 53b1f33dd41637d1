"""
EXPLAIN Analyzer - one analysis run from raw EXPLAIN output to diagnosis

Steps:
1. Decode the payload once at the boundary
2. Extract referenced table names
3. Fetch their metadata into a cache owned by this run
4. Build the plan tree
5. Annotate it with severities and remediation hints
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Set

from explain_doctor.analysis.plan_builder import PlanBuilder
from explain_doctor.analysis.plan_diagnostics import PlanDiagnostics
from explain_doctor.analysis.table_extractor import extract_table_names
from explain_doctor.core.constants import Severity
from explain_doctor.core.exceptions import ExecutionPlanError
from explain_doctor.core.logger import get_logger, LogContext
from explain_doctor.database.schema_provider import SchemaProvider
from explain_doctor.models.explain_input import ExplainDocument
from explain_doctor.models.plan_models import PlanNode
from explain_doctor.services.metadata_cache import MetadataCache
from explain_doctor.services.metadata_enricher import MetadataEnricher

logger = get_logger('analysis.explain_analyzer')


@dataclass(frozen=True)
class PartialMetadata:
    """Some tables had no metadata; their diagnostics have reduced confidence"""
    tables: frozenset

    @property
    def message(self) -> str:
        return (
            f"Metadata unavailable for {', '.join(sorted(self.tables))} - "
            f"index and schema hints were skipped for these tables"
        )


@dataclass
class ExplainAnalysis:
    """Result of one analysis run"""
    tree: Optional[PlanNode] = None
    tables: Set[str] = field(default_factory=set)
    missing_metadata: Set[str] = field(default_factory=set)
    message: Optional[str] = None  # user-facing explanation when there is no tree

    @property
    def has_plan(self) -> bool:
        return self.tree is not None

    @property
    def partial_metadata(self) -> Optional[PartialMetadata]:
        if not self.missing_metadata:
            return None
        return PartialMetadata(frozenset(self.missing_metadata))

    @property
    def issues(self) -> List[str]:
        return self.tree.collect_issues() if self.tree else []

    @property
    def worst_severity(self) -> Optional[Severity]:
        return self.tree.worst_severity() if self.tree else None


class ExplainAnalyzer:
    """
    Runs the full EXPLAIN diagnosis

    Usage:
        analyzer = ExplainAnalyzer(schema_provider)
        analysis = await analyzer.analyze(explain_json)

        if not analysis.has_plan:
            show(analysis.message)
        for node in analysis.tree.iter_nodes():
            print(node.id, node.severity, node.issues)

    Without a schema provider only the metadata-independent diagnostics
    are produced. Every call uses its own metadata cache.
    """

    def __init__(
        self,
        schema_provider: Optional[SchemaProvider] = None,
        max_concurrent_fetches: Optional[int] = None,
    ):
        self._provider = schema_provider
        self._max_concurrent = max_concurrent_fetches
        self._builder = PlanBuilder()

    async def analyze(self, payload: Any) -> ExplainAnalysis:
        """
        Analyze one EXPLAIN payload

        Args:
            payload: EXPLAIN mapping, JSON text, or the {"EXPLAIN": "..."} row

        Returns:
            ExplainAnalysis; ``tree`` is None when the payload holds no plan
        """
        with LogContext(logger, "Analyzing EXPLAIN plan"):
            try:
                document = ExplainDocument.parse(payload)
                tables = extract_table_names(document)
                cache = await self._fetch_metadata(tables)
                tree = self._builder.build(document)
            except ExecutionPlanError as e:
                logger.warning(f"No diagnosis produced: {e}")
                return ExplainAnalysis(message=e.user_message)

            PlanDiagnostics(cache).annotate(tree)

        analysis = ExplainAnalysis(tree=tree, tables=tables, missing_metadata=tables - set(cache))
        if analysis.partial_metadata is not None:
            logger.info(analysis.partial_metadata.message)
        return analysis

    async def _fetch_metadata(self, tables: Set[str]) -> MetadataCache:
        cache = MetadataCache()
        if self._provider is None:
            logger.debug("No schema provider, skipping metadata fetch")
            return cache
        enricher = MetadataEnricher(self._provider, self._max_concurrent)
        return await enricher.enrich(tables, cache)


async def analyze_explain(
    payload: Any,
    schema_provider: Optional[SchemaProvider] = None,
) -> ExplainAnalysis:
    """Shortcut function for one analysis run"""
    return await ExplainAnalyzer(schema_provider).analyze(payload)
