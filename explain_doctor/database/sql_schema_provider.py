"""
SQLAlchemy-backed schema provider for MySQL / MariaDB
"""

import asyncio
from typing import Optional, List, Dict, Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from explain_doctor.core.config import get_settings
from explain_doctor.core.exceptions import QueryExecutionError, QueryTimeoutError
from explain_doctor.core.logger import get_logger
from explain_doctor.database.queries.schema_queries import (
    database_from_query,
    describe_table_sql,
    map_describe_rows,
    map_index_rows,
    show_index_sql,
)
from explain_doctor.database.schema_provider import SchemaProvider
from explain_doctor.models.metadata_models import ColumnInfo, IndexStatistics

logger = get_logger('database.schema_provider')


class SqlSchemaProvider(SchemaProvider):
    """
    Reads columns with DESCRIBE and indexes with SHOW INDEX

    Blocking SQLAlchemy calls run in a worker thread. Every statement is
    bounded by ``settings.database.query_timeout``.

    Usage:
        provider = SqlSchemaProvider(engine, database="shop")
        columns = await provider.list_columns("orders")
    """

    def __init__(
        self,
        engine: Engine,
        database: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self._engine = engine
        self._database = database
        self._timeout = timeout or get_settings().database.query_timeout

    @classmethod
    def for_query(cls, engine: Engine, sql: Optional[str], **kwargs) -> 'SqlSchemaProvider':
        """Provider qualifying tables with the database named in ``sql``"""
        return cls(engine, database=database_from_query(sql), **kwargs)

    @property
    def database(self) -> Optional[str]:
        return self._database

    async def list_columns(self, table: str) -> List[ColumnInfo]:
        rows = await self._fetch(describe_table_sql(table, self._database))
        return map_describe_rows(rows)

    async def list_indexes(self, table: str) -> List[IndexStatistics]:
        rows = await self._fetch(show_index_sql(table, self._database))
        return map_index_rows(rows)

    async def _fetch(self, query: str) -> List[Dict[str, Any]]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._execute, query),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise QueryTimeoutError(f"Query timed out after {self._timeout}s", query=query)

    def _execute(self, query: str) -> List[Dict[str, Any]]:
        logger.debug(f"Executing: {query}")
        try:
            with self._engine.connect() as conn:
                result = conn.execute(text(query))
                if not result.returns_rows:
                    return []
                columns = list(result.keys())
                return [dict(zip(columns, row)) for row in result.fetchall()]
        except SQLAlchemyError as e:
            raise QueryExecutionError(f"Query failed: {e}", query=query)


def create_schema_provider(
    url: str,
    database: Optional[str] = None,
    **engine_kwargs,
) -> SqlSchemaProvider:
    """Create a provider with its own pooled engine"""
    settings = get_settings()
    engine = create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.database.echo_sql,
        **engine_kwargs,
    )
    return SqlSchemaProvider(engine, database=database)
