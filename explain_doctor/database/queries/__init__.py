"""
SQL templates for schema introspection
"""

from explain_doctor.database.queries.schema_queries import (
    quote_identifier,
    describe_table_sql,
    show_index_sql,
    database_from_query,
    map_describe_rows,
    map_index_rows,
)

__all__ = [
    "quote_identifier",
    "describe_table_sql",
    "show_index_sql",
    "database_from_query",
    "map_describe_rows",
    "map_index_rows",
]
