"""Tests for the schema, comparison, validation, and fix models.

Verifies:
- Schema files load through the PascalCase aliases
- ``Column.full_type()`` suffix rules
- ``ForeignKey.identity_key()`` ignores names and rules
- Comparison and fix models report emptiness correctly
- ``ValidationIssue`` is immutable
"""

import pytest
from pydantic import ValidationError

from db_migrator.schema.models import (
    UNBOUNDED_LENGTH,
    Column,
    ForeignKey,
    ForeignKeyDifference,
    Schema,
    SchemaComparison,
    Table,
    TableDifference,
    ValidationIssue,
)


# ------------------------------------------------------------------
# Schema models
# ------------------------------------------------------------------


class TestSchemaAliases:
    """Schema models accept the schema-file field names."""

    def test_table_from_pascal_case(self):
        """Table, column, and FK fields populate from aliases."""
        table = Table.model_validate(
            {
                "TableName": "orders",
                "Columns": [
                    {"ColumnName": "id", "DataType": "integer", "IsNullable": "NO"}
                ],
                "ForeignKeys": [
                    {
                        "ConstraintName": "fk",
                        "TableName": "orders",
                        "ColumnName": "customer_id",
                        "ReferencedTable": "customers",
                        "ReferencedColumn": "id",
                    }
                ],
            }
        )
        assert table.table_name == "orders"
        assert table.columns[0].is_not_null()
        assert table.foreign_keys[0].referenced_table == "customers"

    def test_populate_by_name(self):
        """Snake_case attribute names are accepted too."""
        column = Column(column_name="id", data_type="integer")
        assert column.is_nullable == "YES"
        assert not column.is_not_null()

    def test_schema_is_a_bare_list(self):
        """Schema validates from and dumps to a JSON array."""
        schema = Schema.model_validate([{"TableName": "users"}])
        assert schema.table_names() == ["users"]
        assert schema.model_dump(by_alias=True)[0]["TableName"] == "users"

    def test_missing_table_name_rejected(self):
        """A table without TableName is a validation error."""
        with pytest.raises(ValidationError):
            Schema.model_validate([{"Columns": []}])

    def test_get_table_and_column(self):
        """Lookups return the first match or None."""
        schema = Schema([Table(table_name="users", columns=[Column(column_name="id")])])
        assert schema.get_table("users").get_column("id").column_name == "id"
        assert schema.get_table("missing") is None
        assert schema.get_table("users").get_column("missing") is None


class TestFullType:
    """Column.full_type() appends size metadata only where meaningful."""

    def test_character_length(self):
        """Character types get their length."""
        column = Column(column_name="c", data_type="character varying", character_max_length=50)
        assert column.full_type() == "character varying(50)"

    def test_unbounded_length_is_bare(self):
        """The unbounded-length sentinel produces the bare type."""
        column = Column(column_name="c", data_type="text", character_max_length=UNBOUNDED_LENGTH)
        assert column.full_type() == "text"

    def test_numeric_precision_and_scale(self):
        """Numeric types get precision and, when positive, scale."""
        assert (
            Column(column_name="n", data_type="numeric", numeric_precision=10, numeric_scale=2)
            .full_type() == "numeric(10,2)"
        )
        assert (
            Column(column_name="n", data_type="numeric", numeric_precision=10, numeric_scale=0)
            .full_type() == "numeric(10)"
        )

    def test_datetime_precision(self):
        """Datetime types get their precision."""
        column = Column(column_name="t", data_type="timestamp", datetime_precision=3)
        assert column.full_type() == "timestamp(3)"

    def test_zero_and_absent_sizes(self):
        """Zero or missing sizes leave the type unchanged."""
        assert Column(column_name="c", data_type="varchar", character_max_length=0).full_type() == "varchar"
        assert Column(column_name="i", data_type="integer", numeric_precision=32).full_type() == "integer"


class TestForeignKeyIdentity:
    """Structural identity of a foreign key."""

    def test_identity_ignores_name_and_rules(self):
        """Two FKs differing only in name and rules share an identity."""
        a = ForeignKey(
            constraint_name="a", table_name="o", column_name="c",
            referenced_table="r", referenced_column="id", delete_rule="CASCADE",
        )
        b = ForeignKey(
            constraint_name="b", table_name="o", column_name="c",
            referenced_table="r", referenced_column="id", delete_rule="NO ACTION",
        )
        assert a.identity_key() == b.identity_key() == "o.c->r.id"


# ------------------------------------------------------------------
# Comparison, validation, and fix models
# ------------------------------------------------------------------


class TestComparisonModels:
    """Emptiness flags on comparison results."""

    def test_empty_comparison(self):
        """A default comparison has no differences."""
        assert not SchemaComparison().has_differences

    def test_table_difference_is_empty(self):
        """Any FK difference makes a table difference non-empty."""
        assert TableDifference().is_empty
        fk = ForeignKey(table_name="o", column_name="c", referenced_table="r", referenced_column="id")
        diff = TableDifference(foreign_key_diffs=ForeignKeyDifference(extra=[fk]))
        assert not diff.is_empty


class TestValidationIssue:
    """ValidationIssue behaviour."""

    def test_is_frozen(self):
        """Issues can't be modified after creation."""
        issue = ValidationIssue(type="t", severity="error", table="x", message="m")
        with pytest.raises(ValidationError):
            issue.message = "changed"

    def test_is_error(self):
        """Severity drives is_error."""
        assert ValidationIssue(type="t", severity="error", table="x", message="m").is_error
        assert not ValidationIssue(type="t", severity="warning", table="x", message="m").is_error
