"""
EXPLAIN Plan Tree Builder

Converts a decoded EXPLAIN FORMAT=JSON document into a PlanNode tree.

Node ids are derived from tree position only, so building the same plan
twice yields identical ids:

    root
    root-table
    root-nested-0 .. root-nested-N     (position in nested_loop)
    root-grouping, root-grouping-table
    root-ordering, root-ordering-table
"""

from typing import Any

from explain_doctor.core.constants import NodeKind, ROOT_NODE_ID
from explain_doctor.core.exceptions import NoPlanAvailableError
from explain_doctor.core.logger import get_logger
from explain_doctor.models.explain_input import (
    ExplainDocument,
    ExplainTable,
    PlanOperation,
    QueryBlock,
)
from explain_doctor.models.plan_models import PlanNode

logger = get_logger('analysis.plan_builder')


class PlanBuilder:
    """
    Builds the PlanNode tree

    Usage:
        builder = PlanBuilder()
        tree = builder.build(explain_json)

        for node in tree.iter_nodes():
            print(node.id, node.display_name)
    """

    def build(self, payload: Any) -> PlanNode:
        """
        Build the tree for one EXPLAIN document

        Args:
            payload: ExplainDocument, mapping or JSON text

        Returns:
            PlanNode of kind QUERY

        Raises:
            NoPlanAvailableError: If the document has no query block
            InvalidExplainDataError: If the payload is not a JSON object
        """
        document = ExplainDocument.parse(payload)
        block = document.root_block()
        if block is None:
            keys = sorted(payload.keys()) if isinstance(payload, dict) else None
            logger.warning(f"No query_block found in EXPLAIN data (keys: {keys})")
            raise NoPlanAvailableError(keys)

        tree = self._process_query_block(block, ROOT_NODE_ID)
        logger.debug(f"Built plan tree: {sum(1 for _ in tree.iter_nodes())} nodes")
        return tree

    def _process_query_block(self, block: QueryBlock, node_id: str) -> PlanNode:
        node = PlanNode(
            id=node_id,
            kind=NodeKind.QUERY,
            cost=block.query_cost,
            select_id=block.select_id,
        )

        if block.table is not None:
            node.children.append(self._process_table(block.table, f"{node_id}-table"))

        for index, entry in enumerate(block.nested_loop or []):
            if entry.table is not None:
                node.children.append(self._process_table(entry.table, f"{node_id}-nested-{index}"))

        if block.grouping_operation is not None:
            node.children.append(self._process_operation(
                block.grouping_operation, NodeKind.GROUP_BY, f"{node_id}-grouping"
            ))

        if block.ordering_operation is not None:
            node.children.append(self._process_operation(
                block.ordering_operation, NodeKind.ORDER_BY, f"{node_id}-ordering"
            ))

        return node

    def _process_operation(self, operation: PlanOperation, kind: NodeKind, node_id: str) -> PlanNode:
        node = PlanNode(id=node_id, kind=kind)
        if operation.table is not None:
            node.children.append(self._process_table(operation.table, f"{node_id}-table"))
        return node

    def _process_table(self, table: ExplainTable, node_id: str) -> PlanNode:
        return PlanNode(
            id=node_id,
            kind=NodeKind.TABLE_ACCESS,
            cost=table.read_cost,
            table=table.table_name,
            access_type=table.access_type,
            possible_keys=list(table.possible_keys),
            key=table.key,
            rows_examined_estimate=table.rows_examined_per_scan,
            filtered_percent=table.filtered,
            read_cost=table.read_cost,
            attached_condition=table.attached_condition,
        )


def build_plan_tree(payload: Any) -> PlanNode:
    """Shortcut function for building a plan tree"""
    return PlanBuilder().build(payload)
