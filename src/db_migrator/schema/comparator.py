"""Structural schema comparison and schema-file sanity checks.

Pure logic -- no I/O, no database connections.

Usage:
    from db_migrator.schema.comparator import compare_schemas, validate_schema

    comparison = compare_schemas(introspector.get_current_schema(), target)
    if comparison.has_differences:
        print(comparison.missing_tables)

    issues = validate_schema(target)
"""

from typing import Any

from db_migrator.schema.models import (
    Column,
    ColumnDiff,
    ForeignKey,
    ForeignKeyDifference,
    IssueType,
    Schema,
    SchemaComparison,
    Severity,
    Table,
    TableDifference,
    ValidationIssue,
)


# ============================================================================
# Comparison
# ============================================================================


def compare_schemas(current: Schema, target: Schema) -> SchemaComparison:
    """Compare the live schema against the target schema.

    Tables, columns, and foreign keys are matched by name (foreign keys by
    ``ForeignKey.identity_key()``).  When a name repeats within one schema
    the last definition wins.

    Args:
        current: Schema read from the database.
        target: Schema the database should have.

    Returns:
        ``SchemaComparison`` with:

        - ``missing_tables``: target tables absent from the database, in
          target order
        - ``extra_tables``: database tables absent from the target, in
          database order
        - ``table_differences``: one entry per shared table that drifted;
          tables without drift are omitted

    Examples:
        >>> schema = Schema([Table(table_name="users")])
        >>> compare_schemas(schema, schema).has_differences
        False

        >>> compare_schemas(Schema(), schema).missing_tables
        ['users']
    """
    current_tables = {table.table_name: table for table in current}
    target_tables = {table.table_name: table for table in target}

    missing_tables = [name for name in target_tables if name not in current_tables]
    extra_tables = [name for name in current_tables if name not in target_tables]

    table_differences: dict[str, TableDifference] = {}
    for name, target_table in target_tables.items():
        current_table = current_tables.get(name)
        if current_table is None:
            continue
        diff = _compare_table_structures(current_table, target_table)
        if not diff.is_empty:
            table_differences[name] = diff

    return SchemaComparison(
        missing_tables=missing_tables,
        extra_tables=extra_tables,
        table_differences=table_differences,
    )


def _compare_table_structures(current: Table, target: Table) -> TableDifference:
    current_columns = {column.column_name: column for column in current.columns}
    target_columns = {column.column_name: column for column in target.columns}

    diff = TableDifference(
        missing_columns=[
            column for name, column in target_columns.items() if name not in current_columns
        ],
        extra_columns=[
            column for name, column in current_columns.items() if name not in target_columns
        ],
    )

    for name, target_column in target_columns.items():
        current_column = current_columns.get(name)
        if current_column is not None and not _columns_equal(current_column, target_column):
            diff.modified_columns[name] = ColumnDiff(current=current_column, target=target_column)

    diff.foreign_key_diffs = _compare_foreign_keys(current.foreign_keys, target.foreign_keys)
    return diff


def _columns_equal(current: Column, target: Column) -> bool:
    return (
        current.data_type == target.data_type
        and current.is_nullable == target.is_nullable
        and _stringify_default(current.default_value) == _stringify_default(target.default_value)
    )


def _stringify_default(value: Any) -> str | None:
    """String form of a default value.  ``None`` only equals ``None``.

    No vendor canonicalization: ``0`` and ``0.0`` differ.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compare_foreign_keys(
    current: list[ForeignKey], target: list[ForeignKey]
) -> ForeignKeyDifference:
    current_keys = {fk.identity_key(): fk for fk in current}
    target_keys = {fk.identity_key(): fk for fk in target}

    return ForeignKeyDifference(
        missing=[fk for key, fk in target_keys.items() if key not in current_keys],
        extra=[fk for key, fk in current_keys.items() if key not in target_keys],
    )


# ============================================================================
# Schema File Validation
# ============================================================================


def validate_schema(schema: Schema) -> list[ValidationIssue]:
    """Check a schema definition for internal consistency.

    Reports duplicate table and column names, columns without a name or
    data type, and foreign keys whose referenced table or column is not in
    the same schema (warnings) or whose source column is not in its table
    (error).

    Examples:
        >>> validate_schema(Schema([Table(table_name="t"), Table(table_name="t")]))[0].type
        'duplicate_table'
    """
    issues: list[ValidationIssue] = []
    seen_tables: set[str] = set()

    for table in schema:
        if table.table_name in seen_tables:
            issues.append(
                ValidationIssue(
                    type=IssueType.DUPLICATE_TABLE,
                    severity=Severity.ERROR,
                    table=table.table_name,
                    message=f"Duplicate table name: {table.table_name}",
                )
            )
        seen_tables.add(table.table_name)

        seen_columns: set[str] = set()
        for column in table.columns:
            if column.column_name in seen_columns:
                issues.append(
                    ValidationIssue(
                        type=IssueType.DUPLICATE_COLUMN,
                        severity=Severity.ERROR,
                        table=table.table_name,
                        column=column.column_name,
                        message=(
                            f"Duplicate column name: {column.column_name} "
                            f"in table {table.table_name}"
                        ),
                    )
                )
            seen_columns.add(column.column_name)

            if not column.column_name:
                issues.append(
                    ValidationIssue(
                        type=IssueType.INVALID_COLUMN,
                        severity=Severity.ERROR,
                        table=table.table_name,
                        message="Column with empty name found",
                    )
                )

            if not column.data_type:
                issues.append(
                    ValidationIssue(
                        type=IssueType.INVALID_COLUMN,
                        severity=Severity.ERROR,
                        table=table.table_name,
                        column=column.column_name,
                        message=f"Column {column.column_name} has no data type",
                    )
                )

        for fk in table.foreign_keys:
            issues.extend(_validate_foreign_key(schema, table, fk))

    return issues


def _validate_foreign_key(
    schema: Schema, table: Table, fk: ForeignKey
) -> list[ValidationIssue]:
    issues = []
    referenced_table = schema.get_table(fk.referenced_table)
    reference_details = {
        "constraint_name": fk.constraint_name,
        "referenced_table": fk.referenced_table,
        "referenced_column": fk.referenced_column,
    }

    if referenced_table is None:
        issues.append(
            ValidationIssue(
                type=IssueType.INVALID_FOREIGN_KEY,
                severity=Severity.WARNING,
                table=table.table_name,
                column=fk.column_name,
                message=f"Foreign key references non-existent table: {fk.referenced_table}",
                details=reference_details,
            )
        )
    elif referenced_table.get_column(fk.referenced_column) is None:
        issues.append(
            ValidationIssue(
                type=IssueType.INVALID_FOREIGN_KEY,
                severity=Severity.WARNING,
                table=table.table_name,
                column=fk.column_name,
                message=(
                    "Foreign key references non-existent column: "
                    f"{fk.referenced_table}.{fk.referenced_column}"
                ),
                details=reference_details,
            )
        )

    if table.get_column(fk.column_name) is None:
        issues.append(
            ValidationIssue(
                type=IssueType.INVALID_FOREIGN_KEY,
                severity=Severity.ERROR,
                table=table.table_name,
                column=fk.column_name,
                message=f"Foreign key references non-existent source column: {fk.column_name}",
                details={"constraint_name": fk.constraint_name},
            )
        )

    return issues
