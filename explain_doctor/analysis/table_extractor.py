"""
Table reference extraction

Collects the distinct table names an EXPLAIN document touches so their
metadata can be fetched once per run.
"""

import re
from typing import Any, Optional, Set

from explain_doctor.core.logger import get_logger
from explain_doctor.models.explain_input import ExplainDocument, ExplainTable

logger = get_logger('analysis.table_extractor')

# <derived2>, <subquery3>, <union1,2>, <temporary> ...
_SYNTHETIC_TABLE = re.compile(r'^<[^>]*>$')


def resolvable_table_name(table: Optional[ExplainTable]) -> Optional[str]:
    """Catalog name of a table access, None for derived or unnamed results"""
    if table is None or not table.table_name:
        return None
    name = table.table_name
    if _SYNTHETIC_TABLE.match(name):
        return None
    return name


def extract_table_names(payload: Any) -> Set[str]:
    """
    Distinct table names referenced by the root query block

    Looks at the block's own table, every nested loop member and the tables
    of the grouping and ordering operations.

    Raises:
        InvalidExplainDataError: If the payload is not a JSON object
    """
    document = ExplainDocument.parse(payload)
    block = document.root_block()
    tables: Set[str] = set()
    if block is None:
        return tables

    candidates = [block.table]
    candidates.extend(entry.table for entry in block.nested_loop or [])
    if block.grouping_operation is not None:
        candidates.append(block.grouping_operation.table)
    if block.ordering_operation is not None:
        candidates.append(block.ordering_operation.table)

    for table in candidates:
        name = resolvable_table_name(table)
        if name:
            tables.add(name)

    logger.debug(f"Extracted {len(tables)} table(s): {sorted(tables)}")
    return tables
