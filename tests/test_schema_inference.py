import pytest

from utils.schema_inference import (
    DEFAULT_KEY_TERMS,
    build_inferred_schema,
    derive_table_name,
    infer_column_type,
    schema_from_csv,
    schema_to_prompt,
)


@pytest.mark.parametrize("file_name, expected", [
    ("Sales Report.pdf", "sales_report"),
    ("Q3  -- results (final).xlsx", "q3_results_final"),
    ("customers.csv", "customers"),
    ("2024 budget.csv", "t_2024_budget"),
    ("---.pdf", "uploaded_table"),
    ("", "uploaded_table"),
])
def test_derive_table_name(file_name, expected):
    assert derive_table_name(file_name) == expected


def test_defaults_when_proposal_is_missing():
    text = "word " * 700
    schema = build_inferred_schema("Scan 1.pdf", text)

    assert schema.table_name == "scan_1"
    assert [(c.name, c.type, c.is_primary) for c in schema.columns] == [
        ("id", "INTEGER", True),
        ("content", "TEXT", False),
        ("page", "INTEGER", False),
        ("created_at", "TIMESTAMP", False),
    ]
    assert schema.row_count == 35
    assert schema.stats.word_count == 700
    assert schema.stats.page_count == 2
    assert schema.stats.key_terms == DEFAULT_KEY_TERMS
    assert schema.degraded


def test_proposal_is_used():
    proposal = {
        "columns": [
            {"name": "invoice_id", "type": "integer", "is_primary": True},
            {"name": "total", "type": "DECIMAL"},
            {"type": "TEXT"},
        ],
        "estimated_rows": "12",
        "stats": {"word_count": 99, "page_count": 1, "key_terms": ["invoice"]},
    }
    schema = build_inferred_schema("invoices.pdf", "some text", proposal)

    assert [c.name for c in schema.columns] == ["invoice_id", "total"]
    assert schema.columns[0].type == "INTEGER"
    assert schema.columns[0].is_primary
    assert schema.row_count == 12
    assert schema.stats.word_count == 99
    assert schema.stats.key_terms == ["invoice"]
    assert not schema.degraded


@pytest.mark.parametrize("values, expected", [
    (["1", "2", "30"], "INTEGER"),
    (["1.5", "2"], "DECIMAL"),
    (["2024-01-05", "2023/12/31", ""], "DATE"),
    (["abc", "1"], "VARCHAR"),
    ([], "VARCHAR"),
])
def test_infer_column_type(values, expected):
    assert infer_column_type(values) == expected


def test_schema_from_csv():
    content = "id, name ,price,sold_on\n1,Apple,0.5,2024-01-01\n2,Pear,1,2024-01-02\n\n"
    schema = schema_from_csv("My Products.csv", content)

    assert schema.table_name == "my_products"
    assert [(c.name, c.type) for c in schema.columns] == [
        ("id", "INTEGER"),
        ("name", "VARCHAR"),
        ("price", "DECIMAL"),
        ("sold_on", "DATE"),
    ]
    assert schema.row_count == 2


def test_schema_from_empty_csv():
    with pytest.raises(ValueError, match="empty"):
        schema_from_csv("empty.csv", "\n\n")


def test_schema_to_prompt():
    schema = schema_from_csv("t.csv", "a,b\n1,x\n")
    assert schema_to_prompt(schema) == "Table: t\nColumns:\n- a (INTEGER)\n- b (VARCHAR)\n"


@pytest.mark.parametrize("estimate", [float("inf"), 1e400, "nan", -3])
def test_unusable_row_estimate_falls_back(estimate):
    schema = build_inferred_schema("a.pdf", "x" * 250, {"estimated_rows": estimate})
    assert schema.row_count == 3


def test_key_terms_must_be_a_list():
    schema = build_inferred_schema("a.pdf", "text", {"stats": {"key_terms": "invoice"}})
    assert schema.stats.key_terms == DEFAULT_KEY_TERMS
