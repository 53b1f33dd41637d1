"""
Database module - schema providers for metadata enrichment
"""

from explain_doctor.database.schema_provider import SchemaProvider
from explain_doctor.database.sql_schema_provider import SqlSchemaProvider, create_schema_provider

__all__ = [
    "SchemaProvider",
    "SqlSchemaProvider",
    "create_schema_provider",
]
