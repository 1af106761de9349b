"""Tests for schema file loading, export, and snapshot forms.

Verifies:
- ``load_schema()`` reads a JSON array of tables
- Unreadable files, bad JSON, and bad shapes raise SchemaLoadError
- ``dump_schema()`` output loads back to an equal schema
- ``snapshot_schema()`` keeps names and full types only
"""

import json

import pytest

from db_migrator.exceptions import SchemaLoadError
from db_migrator.schema.loader import dump_schema, load_schema, parse_schema, snapshot_schema
from db_migrator.schema.models import Column, Schema, Table

SCHEMA_JSON = """
[
  {
    "TableName": "customers",
    "Columns": [
      {"ColumnName": "id", "DataType": "integer", "IsNullable": "NO", "DefaultValue": null},
      {"ColumnName": "name", "DataType": "character varying", "IsNullable": "NO",
       "CharacterMaxLength": 100}
    ]
  },
  {
    "TableName": "orders",
    "Columns": [
      {"ColumnName": "id", "DataType": "integer", "IsNullable": "NO"},
      {"ColumnName": "customer_id", "DataType": "integer", "IsNullable": "YES"}
    ],
    "ForeignKeys": [
      {"ConstraintName": "orders_customer_id_fkey", "TableName": "orders",
       "ColumnName": "customer_id", "ReferencedTable": "customers",
       "ReferencedColumn": "id", "UpdateRule": "NO ACTION", "DeleteRule": "CASCADE"}
    ]
  }
]
"""


class TestLoadSchema:
    """Reading schema files."""

    def test_load(self, tmp_path):
        """Tables, columns, and foreign keys are loaded in order."""
        path = tmp_path / "schema.json"
        path.write_text(SCHEMA_JSON)
        schema = load_schema(path)
        assert schema.table_names() == ["customers", "orders"]
        assert schema.get_table("customers").get_column("name").full_type() == "character varying(100)"
        assert schema.get_table("orders").foreign_keys[0].delete_rule == "CASCADE"

    def test_missing_file(self, tmp_path):
        """A missing file raises SchemaLoadError."""
        with pytest.raises(SchemaLoadError, match="failed to read"):
            load_schema(tmp_path / "missing.json")

    def test_bad_json(self):
        """Invalid JSON raises SchemaLoadError."""
        with pytest.raises(SchemaLoadError, match="failed to parse"):
            parse_schema("[{")

    def test_bad_shape(self):
        """A document that isn't an array of tables raises SchemaLoadError."""
        with pytest.raises(SchemaLoadError, match="invalid schema"):
            parse_schema('{"TableName": "t"}')

    def test_null_document(self):
        """A JSON null is an empty schema."""
        assert len(parse_schema("null")) == 0


class TestDumpSchema:
    """Export form."""

    def test_round_trip(self):
        """Exported schemas load back unchanged."""
        schema = parse_schema(SCHEMA_JSON)
        assert parse_schema(json.dumps(dump_schema(schema))) == schema

    def test_base_type_and_optional_sizes(self):
        """DataType stays the base type; absent sizes are omitted."""
        schema = parse_schema(SCHEMA_JSON)
        columns = dump_schema(schema)[0]["Columns"]
        assert columns[1]["DataType"] == "character varying"
        assert columns[1]["CharacterMaxLength"] == 100
        assert "CharacterMaxLength" not in columns[0]
        assert columns[0]["DefaultValue"] is None


class TestSnapshotSchema:
    """Simplified form."""

    def test_snapshot(self):
        """Only names and full types are kept."""
        schema = Schema(
            [
                Table(
                    table_name="t",
                    columns=[Column(column_name="c", data_type="varchar", character_max_length=20)],
                )
            ]
        )
        assert snapshot_schema(schema) == [
            {"TableName": "t", "Columns": [{"ColumnName": "c", "DataType": "varchar(20)"}]}
        ]
