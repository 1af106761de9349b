"""Report models built from engine results for display and export."""

from collections import Counter
from datetime import datetime

from pydantic import BaseModel, Field

from db_migrator.schema.models import Schema, Severity, ValidationIssue


# ============================================================================
# Validation Report
# ============================================================================


class ReportSummary(BaseModel):
    total_issues: int = 0
    error_count: int = 0
    warning_count: int = 0
    tables_covered: int = 0
    issues_by_type: dict[str, int] = Field(default_factory=dict)


class ValidationReport(BaseModel):
    """Validation issues for one connection, with counts."""

    connection_name: str
    timestamp: str
    issues: list[ValidationIssue] = Field(default_factory=list)
    summary: ReportSummary = Field(default_factory=ReportSummary)

    @property
    def has_errors(self) -> bool:
        return self.summary.error_count > 0


def create_validation_report(
    connection_name: str, issues: list[ValidationIssue]
) -> ValidationReport:
    """Summarize issues into a timestamped report.

    Example:
        >>> report = create_validation_report("default", [])
        >>> report.summary.total_issues
        0
    """
    by_type = Counter(issue.type for issue in issues)
    summary = ReportSummary(
        total_issues=len(issues),
        error_count=sum(1 for issue in issues if issue.severity == Severity.ERROR),
        warning_count=sum(1 for issue in issues if issue.severity == Severity.WARNING),
        tables_covered=len({issue.table for issue in issues if issue.table}),
        issues_by_type=dict(by_type),
    )
    return ValidationReport(
        connection_name=connection_name or "default",
        timestamp=datetime.now().astimezone().isoformat(timespec="seconds"),
        issues=issues,
        summary=summary,
    )


# ============================================================================
# Schema Info
# ============================================================================


class TableSummary(BaseModel):
    name: str
    column_count: int = 0
    foreign_key_count: int = 0


class SchemaInfo(BaseModel):
    """Statistics about a schema file."""

    schema_file: str
    total_tables: int = 0
    total_columns: int = 0
    total_foreign_keys: int = 0
    not_null_columns: int = 0
    nullable_columns: int = 0
    data_type_counts: dict[str, int] = Field(default_factory=dict)
    tables: list[TableSummary] = Field(default_factory=list)


def create_schema_info(schema_file: str, schema: Schema) -> SchemaInfo:
    """Count tables, columns, foreign keys, nullability, and data types."""
    info = SchemaInfo(schema_file=schema_file, total_tables=len(schema))
    data_types: Counter[str] = Counter()

    for table in schema:
        info.total_columns += len(table.columns)
        info.total_foreign_keys += len(table.foreign_keys)
        for column in table.columns:
            if column.is_not_null():
                info.not_null_columns += 1
            else:
                info.nullable_columns += 1
            data_types[column.data_type] += 1

        info.tables.append(
            TableSummary(
                name=table.table_name,
                column_count=len(table.columns),
                foreign_key_count=len(table.foreign_keys),
            )
        )

    info.data_type_counts = dict(data_types)
    return info
