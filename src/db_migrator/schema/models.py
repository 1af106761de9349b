"""Pydantic models for schemas, comparisons, validation issues, and fixes.

This module contains schema-domain models:
- Schema models: Column, ForeignKey, Table, Schema (a RootModel list)
- Comparison models: ColumnDiff, ForeignKeyDifference, TableDifference,
  SchemaComparison
- Validation models: ValidationIssue, IssueType, Severity
- Fix models: FixResult, FixResults

Schema models use the schema-file field names (``TableName``,
``ColumnName``, ...) as aliases so that hand-authored JSON files load
without translation.  Python code uses the snake_case attribute names.

Configuration models (DBConfig, ValidationConfig, AppConfig) live in
db_migrator.config.models.
"""

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel

# information_schema reports this length for unbounded character columns
UNBOUNDED_LENGTH = 2147483647

CHARACTER_TYPES = {"character varying", "varchar", "char", "character", "text"}
NUMERIC_TYPES = {"numeric", "decimal", "money"}
DATETIME_TYPES = {"timestamp", "time", "interval"}


# ============================================================================
# Schema Models
# ============================================================================


class Column(BaseModel):
    """A table column as declared in a schema file or read from the catalog.

    ``is_nullable`` keeps the ``"YES"``/``"NO"`` vocabulary of
    information_schema (and of hand-authored schema files).

    Example:
        >>> col = Column(column_name="name", data_type="character varying",
        ...              is_nullable="NO", character_max_length=50)
        >>> col.full_type()
        'character varying(50)'
        >>> col.is_not_null()
        True
    """

    model_config = ConfigDict(populate_by_name=True)

    column_name: str = Field(alias="ColumnName")
    data_type: str = Field(default="", alias="DataType")
    default_value: Any = Field(default=None, alias="DefaultValue")
    is_nullable: str = Field(default="YES", alias="IsNullable")
    character_max_length: int | None = Field(default=None, alias="CharacterMaxLength")
    numeric_precision: int | None = Field(default=None, alias="NumericPrecision")
    numeric_scale: int | None = Field(default=None, alias="NumericScale")
    datetime_precision: int | None = Field(default=None, alias="DatetimePrecision")

    def is_not_null(self) -> bool:
        """True if the column is declared NOT NULL."""
        return self.is_nullable == "NO"

    def full_type(self) -> str:
        """Return the data type with its size suffix.

        Absent sizes, zero sizes, and the unbounded-length sentinel produce
        the bare type.
        """
        data_type = self.data_type
        length = self.character_max_length
        if data_type in CHARACTER_TYPES and length and 0 < length < UNBOUNDED_LENGTH:
            return f"{data_type}({length})"

        precision = self.numeric_precision
        if data_type in NUMERIC_TYPES and precision and precision > 0:
            if self.numeric_scale and self.numeric_scale > 0:
                return f"{data_type}({precision},{self.numeric_scale})"
            return f"{data_type}({precision})"

        if data_type in DATETIME_TYPES and self.datetime_precision and self.datetime_precision > 0:
            return f"{data_type}({self.datetime_precision})"

        return data_type


class ForeignKey(BaseModel):
    """A single-column foreign key constraint owned by one table."""

    model_config = ConfigDict(populate_by_name=True)

    constraint_name: str = Field(default="", alias="ConstraintName")
    table_name: str = Field(alias="TableName")
    column_name: str = Field(alias="ColumnName")
    referenced_table: str = Field(alias="ReferencedTable")
    referenced_column: str = Field(alias="ReferencedColumn")
    update_rule: str = Field(default="", alias="UpdateRule")
    delete_rule: str = Field(default="", alias="DeleteRule")

    def identity_key(self) -> str:
        """Structural identity: ``table.column->refTable.refColumn``.

        Constraint names and update/delete rules are not part of it.
        """
        return (
            f"{self.table_name}.{self.column_name}"
            f"->{self.referenced_table}.{self.referenced_column}"
        )


class Table(BaseModel):
    """A table with columns in ordinal order and its foreign keys."""

    model_config = ConfigDict(populate_by_name=True)

    table_name: str = Field(alias="TableName")
    columns: list[Column] = Field(default_factory=list, alias="Columns")
    foreign_keys: list[ForeignKey] = Field(default_factory=list, alias="ForeignKeys")

    def get_column(self, name: str) -> Column | None:
        """Get a column by name."""
        for column in self.columns:
            if column.column_name == name:
                return column
        return None

    def column_names(self) -> list[str]:
        return [column.column_name for column in self.columns]

    def not_null_columns(self) -> list[Column]:
        return [column for column in self.columns if column.is_not_null()]


class Schema(RootModel[list[Table]]):
    """Ordered collection of tables; serializes as a bare JSON array.

    Table names are expected to be unique but this is not enforced here:
    ``validate_schema`` reports duplicates in authored files.

    Example:
        >>> schema = Schema([Table(table_name="users")])
        >>> schema.table_names()
        ['users']
    """

    root: list[Table] = Field(default_factory=list)

    def __iter__(self) -> Iterator[Table]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    @property
    def tables(self) -> list[Table]:
        return self.root

    def get_table(self, name: str) -> Table | None:
        """Get the first table with this name."""
        for table in self.root:
            if table.table_name == name:
                return table
        return None

    def table_names(self) -> list[str]:
        return [table.table_name for table in self.root]


# ============================================================================
# Comparison Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A column present on both sides whose definition differs."""

    current: Column
    target: Column


class ForeignKeyDifference(BaseModel):
    """Foreign keys only in the target (missing) or only in the database (extra)."""

    missing: list[ForeignKey] = Field(default_factory=list)
    extra: list[ForeignKey] = Field(default_factory=list)


class TableDifference(BaseModel):
    """Structural drift of one table present in both schemas."""

    missing_columns: list[Column] = Field(default_factory=list)
    extra_columns: list[Column] = Field(default_factory=list)
    modified_columns: dict[str, ColumnDiff] = Field(default_factory=dict)
    foreign_key_diffs: ForeignKeyDifference = Field(default_factory=ForeignKeyDifference)

    @property
    def is_empty(self) -> bool:
        return not (
            self.missing_columns
            or self.extra_columns
            or self.modified_columns
            or self.foreign_key_diffs.missing
            or self.foreign_key_diffs.extra
        )


class SchemaComparison(BaseModel):
    """Result of comparing the live schema with the target schema.

    A table appears in ``table_differences`` only if it has drifted.

    Example:
        >>> SchemaComparison().has_differences
        False
    """

    missing_tables: list[str] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)
    table_differences: dict[str, TableDifference] = Field(default_factory=dict)

    @property
    def has_differences(self) -> bool:
        return bool(self.missing_tables or self.extra_tables or self.table_differences)


# ============================================================================
# Validation Models
# ============================================================================


class Severity:
    ERROR = "error"
    WARNING = "warning"


class IssueType:
    """Issue kinds reported by the validator and by ``validate_schema``."""

    MISSING_TABLE = "missing_table"
    MISSING_COLUMN = "missing_column"
    MISSING_REFERENCED_TABLE = "missing_referenced_table"
    MISSING_REFERENCED_COLUMN = "missing_referenced_column"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    NULL_CONSTRAINT_VIOLATION = "null_constraint_violation"
    FOREIGN_KEY_VALIDATION_ERROR = "foreign_key_validation_error"
    NULL_VALIDATION_ERROR = "null_validation_error"
    DUPLICATE_TABLE = "duplicate_table"
    DUPLICATE_COLUMN = "duplicate_column"
    INVALID_COLUMN = "invalid_column"
    INVALID_FOREIGN_KEY = "invalid_foreign_key"


class ValidationIssue(BaseModel):
    """A single finding.  Immutable once created.

    Example:
        >>> issue = ValidationIssue(type="duplicate_table", severity="error",
        ...                         table="users", message="Duplicate table name: users")
        >>> issue.is_error
        True
    """

    model_config = ConfigDict(frozen=True)

    type: str
    severity: str
    table: str
    column: str | None = None
    message: str
    primary_key: str | None = None
    identifier: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


# ============================================================================
# Fix Models
# ============================================================================


class FixResult(BaseModel):
    """Per-table tally of a fix run.

    Attributes:
        issues_found: Violations found across every constraint or column
            touched for the table.
        records_affected: Rows deleted or updated (or, in a dry run, rows
            that would be).
        success: False if any sub-operation for the table failed.
        error: Error messages of failed sub-operations, ``"; "``-joined.
        details: Human-readable notes on what was (or would be) done.
    """

    issues_found: int = 0
    records_affected: int = 0
    success: bool = True
    error: str | None = None
    details: str | None = None


FixResults = dict[str, FixResult]
