"""
MySQL schema introspection templates and row mapping

DESCRIBE and SHOW INDEX do not accept bind parameters for identifiers, so
names are validated before they are quoted into the statement.
"""

import re
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Sequence

from explain_doctor.core.constants import MAX_IDENTIFIER_LENGTH
from explain_doctor.core.exceptions import InvalidIdentifierError
from explain_doctor.models.metadata_models import ColumnInfo, IndexStatistics, to_cardinality

_IDENTIFIER = re.compile(r'^[A-Za-z0-9_$]+$')

# FROM `db`.`table` / FROM db.table
_QUALIFIED_FROM = re.compile(r'FROM\s+`?(\w+)`?\.`?(\w+)`?', re.IGNORECASE)


def quote_identifier(name: str, kind: str = "table") -> str:
    """Backtick-quote a validated identifier"""
    if not name or len(name) > MAX_IDENTIFIER_LENGTH or not _IDENTIFIER.match(name):
        raise InvalidIdentifierError(name, kind)
    return f"`{name}`"


def qualified_name(table: str, database: Optional[str] = None) -> str:
    if database:
        return f"{quote_identifier(database, 'database')}.{quote_identifier(table)}"
    return quote_identifier(table)


def describe_table_sql(table: str, database: Optional[str] = None) -> str:
    return f"DESCRIBE {qualified_name(table, database)}"


def show_index_sql(table: str, database: Optional[str] = None) -> str:
    return f"SHOW INDEX FROM {qualified_name(table, database)}"


def database_from_query(sql: Optional[str]) -> Optional[str]:
    """Database named in the first qualified FROM of the analysed query"""
    if not sql:
        return None
    match = _QUALIFIED_FROM.search(sql)
    return match.group(1) if match else None


def map_describe_rows(rows: Sequence[Mapping[str, Any]]) -> List[ColumnInfo]:
    """DESCRIBE rows (Field, Type, Null, Key, Default, Extra) to ColumnInfo"""
    columns = []
    for row in rows:
        columns.append(ColumnInfo(
            name=str(row.get('Field', '')),
            type=str(row.get('Type') or ''),
            nullable=row.get('Null') == 'YES',
            key=str(row.get('Key') or ''),
            default_value=row.get('Default'),
            extra=str(row.get('Extra') or ''),
        ))
    return columns


def map_index_rows(rows: Sequence[Mapping[str, Any]]) -> List[IndexStatistics]:
    """
    Group SHOW INDEX rows into one IndexStatistics per Key_name

    Columns are ordered by Seq_in_index. The index cardinality is the value
    reported on its first row; every column keeps its own cardinality.
    """
    grouped: "OrderedDict[str, List[Mapping[str, Any]]]" = OrderedDict()
    for row in rows:
        grouped.setdefault(str(row.get('Key_name', '')), []).append(row)

    indexes: List[IndexStatistics] = []
    for name, index_rows in grouped.items():
        first = index_rows[0]
        ordered = sorted(
            enumerate(index_rows),
            key=lambda item: (_seq_in_index(item[1], item[0]), item[0]),
        )
        column_cardinalities: Dict[str, float] = {}
        columns: List[str] = []
        for _, row in ordered:
            column = str(row.get('Column_name') or '')
            if not column:
                continue  # functional key parts have no column name
            columns.append(column)
            column_cardinalities[column] = to_cardinality(row.get('Cardinality'))

        indexes.append(IndexStatistics(
            name=name,
            columns=columns,
            unique=_non_unique(first) == 0,
            type=str(first.get('Index_type') or ''),
            cardinality=to_cardinality(first.get('Cardinality')),
            column_cardinalities=column_cardinalities,
        ))
    return indexes


def _seq_in_index(row: Mapping[str, Any], position: int) -> int:
    try:
        return int(row.get('Seq_in_index'))
    except (TypeError, ValueError):
        return position + 1


def _non_unique(row: Mapping[str, Any]) -> int:
    try:
        return int(row.get('Non_unique', 1))
    except (TypeError, ValueError):
        return 1
