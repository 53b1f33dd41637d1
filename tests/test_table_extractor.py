import pytest

from explain_doctor.analysis.table_extractor import extract_table_names, resolvable_table_name
from explain_doctor.core.exceptions import InvalidExplainDataError
from explain_doctor.models.explain_input import ExplainDocument, ExplainTable


def test_collects_distinct_names(sample_explain):
    assert extract_table_names(sample_explain) == {"orders", "customers", "order_items"}


def test_accepts_parsed_document(sample_explain):
    document = ExplainDocument.parse(sample_explain)
    assert extract_table_names(document) == {"orders", "customers", "order_items"}


def test_no_query_block():
    assert extract_table_names({"message": "nothing"}) == set()


def test_tables_without_name_are_skipped():
    payload = {
        "query_block": {
            "table": {"access_type": "ALL"},
            "nested_loop": [{"table": {"table_name": ""}}, {"table": {"table_name": "b"}}, "junk"],
        }
    }
    assert extract_table_names(payload) == {"b"}


@pytest.mark.parametrize("name, expected", [
    ("orders", "orders"),
    ("  orders ", "orders"),
    ("<derived2>", None),
    ("<union1,2>", None),
    ("<subquery3>", None),
    ("", None),
])
def test_resolvable_table_name(name, expected):
    assert resolvable_table_name(ExplainTable(table_name=name)) == expected


def test_resolvable_table_name_none():
    assert resolvable_table_name(None) is None


def test_invalid_payload():
    with pytest.raises(InvalidExplainDataError):
        extract_table_names(["a", "b"])
