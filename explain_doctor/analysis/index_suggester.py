"""
Index column suggestions from attached conditions

Column names are matched against the condition text by plain substring
containment. Short names can match inside longer ones (``id`` in
``user_id``) and columns used through expressions can be missed; the result
is a hint, never a verified recommendation.
"""

from typing import List, Optional, Sequence

from explain_doctor.core.constants import MAX_SUGGESTED_INDEX_COLUMNS
from explain_doctor.models.metadata_models import TableMetadata


def suggest_index_columns(
    attached_condition: Optional[str],
    column_names: Sequence[str],
    limit: int = MAX_SUGGESTED_INDEX_COLUMNS,
) -> List[str]:
    """
    Columns of the table mentioned in the condition text

    Args:
        attached_condition: Free-text condition from the plan, if any
        column_names: Known column names in declaration order
        limit: Maximum number of columns returned

    Returns:
        Up to ``limit`` column names, in declaration order
    """
    if not attached_condition:
        return []

    condition = str(attached_condition)
    suggestions: List[str] = []
    for name in column_names:
        if name and name in condition and name not in suggestions:
            suggestions.append(name)
            if len(suggestions) >= limit:
                break
    return suggestions


def suggest_for_table(attached_condition: Optional[str], metadata: TableMetadata) -> List[str]:
    """suggest_index_columns() against a table's known columns"""
    return suggest_index_columns(attached_condition, metadata.column_names)


def create_index_statement(table: str, columns: Sequence[str]) -> str:
    """CREATE INDEX statement for a suggested composite index"""
    index_name = f"idx_{table}_{'_'.join(columns)}"
    column_list = ", ".join(f"`{col}`" for col in columns)
    return f"CREATE INDEX {index_name} ON `{table}` ({column_list})"
