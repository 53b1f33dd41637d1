import asyncio

import pytest

from explain_doctor.core.config import reset_settings
from explain_doctor.core.constants import NodeKind
from explain_doctor.database.schema_provider import SchemaProvider
from explain_doctor.models.metadata_models import ColumnInfo, IndexStatistics, TableMetadata
from explain_doctor.models.plan_models import PlanNode


class FakeSchemaProvider(SchemaProvider):
    """In-memory provider; tables listed in ``failing`` raise on every call."""

    def __init__(self, tables=None, failing=(), delay=0.0):
        self.tables = dict(tables or {})
        self.failing = set(failing)
        self.delay = delay
        self.calls = []
        self.active = 0
        self.peak = 0

    async def _call(self, kind, table):
        self.calls.append((kind, table))
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if table in self.failing:
                raise RuntimeError(f"connection lost while reading {table}")
            if table not in self.tables:
                raise LookupError(f"Table '{table}' doesn't exist")
            return self.tables[table]
        finally:
            self.active -= 1

    async def list_columns(self, table):
        return list((await self._call("columns", table)).columns)

    async def list_indexes(self, table):
        return list((await self._call("indexes", table)).indexes)


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def orders_metadata():
    """orders: customer_id is MUL but leads no index, status is MUL and indexed."""
    return TableMetadata(
        table="orders",
        columns=[
            ColumnInfo(name="id", type="int", nullable=False, key="PRI", extra="auto_increment"),
            ColumnInfo(name="customer_id", type="int", nullable=False, key="MUL"),
            ColumnInfo(name="status", type="varchar(20)", key="MUL"),
            ColumnInfo(name="created_at", type="datetime"),
            ColumnInfo(name="total", type="decimal(10,2)"),
        ],
        indexes=[
            IndexStatistics(name="PRIMARY", columns=["id"], unique=True, type="BTREE",
                            cardinality=50000, column_cardinalities={"id": 50000}),
            IndexStatistics(name="idx_status", columns=["status"], unique=False, type="BTREE",
                            cardinality=5, column_cardinalities={"status": 5}),
        ],
    )


@pytest.fixture
def customers_metadata():
    return TableMetadata(
        table="customers",
        columns=[
            ColumnInfo(name="id", type="int", nullable=False, key="PRI"),
            ColumnInfo(name="email", type="varchar(255)", key="UNI"),
            ColumnInfo(name="country", type="char(2)"),
        ],
        indexes=[
            IndexStatistics(name="PRIMARY", columns=["id"], unique=True, type="BTREE",
                            cardinality=1200, column_cardinalities={"id": 1200}),
            IndexStatistics(name="uq_email", columns=["email"], unique=True, type="BTREE",
                            cardinality=1200, column_cardinalities={"email": 1200}),
        ],
    )


@pytest.fixture
def make_provider():
    return FakeSchemaProvider


@pytest.fixture
def table_node():
    """Factory for a bare TABLE_ACCESS node."""
    def _make(**fields):
        fields.setdefault("table", "orders")
        return PlanNode(id="root-table", kind=NodeKind.TABLE_ACCESS, **fields)
    return _make


@pytest.fixture
def sample_explain():
    """EXPLAIN FORMAT=JSON document touching every supported shape."""
    return {
        "query_block": {
            "select_id": 1,
            "cost_info": {"query_cost": "12543.75"},
            "table": {
                "table_name": "orders",
                "access_type": "ALL",
                "possible_keys": ["idx_status"],
                "rows_examined_per_scan": 48000,
                "rows_produced_per_join": 2400,
                "filtered": "5.00",
                "cost_info": {"read_cost": "4560.00", "eval_cost": "240.00"},
                "used_columns": ["id", "customer_id", "status"],
                "attached_condition": "(`shop`.`orders`.`status` = 'pending')",
            },
            "nested_loop": [
                {
                    "table": {
                        "table_name": "customers",
                        "access_type": "eq_ref",
                        "possible_keys": ["PRIMARY"],
                        "key": "PRIMARY",
                        "rows_examined_per_scan": 1,
                        "filtered": "100.00",
                        "cost_info": {"read_cost": "600.00"},
                    }
                },
                {
                    "table": {
                        "table_name": "order_items",
                        "access_type": "ref",
                        "possible_keys": ["idx_order"],
                        "key": "idx_order",
                        "rows_examined_per_scan": 3,
                        "filtered": "100.00",
                    }
                },
            ],
            "grouping_operation": {
                "using_temporary_table": True,
                "table": {
                    "table_name": "customers",
                    "access_type": "index",
                    "key": "PRIMARY",
                    "rows_examined_per_scan": 1200,
                    "filtered": "100.00",
                },
            },
            "ordering_operation": {
                "using_filesort": True,
                "table": {
                    "table_name": "<derived2>",
                    "access_type": "ALL",
                    "rows_examined_per_scan": 10,
                },
            },
        }
    }
