"""Render reports, comparisons, schemas, and fix results as text.

Formats:

- ``table``: rich tables rendered to plain text
- ``json`` / ``yaml``: the underlying models, serialized
- ``csv``: validation reports and schemas only

Usage:
    from db_migrator.output import Formatter, create_validation_report

    report = create_validation_report("default", issues)
    print(Formatter("json").format_validation_report(report))
"""

import csv
import io
import json
from collections.abc import Callable
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from db_migrator.output.reports import SchemaInfo, ValidationReport
from db_migrator.schema.loader import dump_schema, snapshot_schema
from db_migrator.schema.models import FixResults, Schema, SchemaComparison

SUPPORTED_FORMATS = ("table", "json", "yaml", "csv")

RENDER_WIDTH = 140


def _render(*renderables: Any) -> str:
    """Render rich objects to a string without terminal control codes."""
    buffer = io.StringIO()
    console = Console(
        file=buffer,
        width=RENDER_WIDTH,
        no_color=True,
        highlight=False,
        emoji=False,
    )
    for renderable in renderables:
        console.print(renderable)
    return buffer.getvalue()


def _cell(value: Any) -> str:
    return "" if value is None else escape(str(value))


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _to_yaml(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def _to_csv(rows: list[list[Any]], quote_all: bool = False) -> str:
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        quoting=csv.QUOTE_ALL if quote_all else csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerows([["" if value is None else value for value in row] for row in rows])
    return buffer.getvalue()


class Formatter:
    """Formats engine results in one output format.

    Args:
        output_format: One of ``table``, ``json``, ``yaml``, ``csv``.  Combinations
            a result type does not support raise ``ValueError`` when
            formatting.

    Example:
        formatter = Formatter("yaml")
        text = formatter.format_schema_comparison(comparison)
    """

    def __init__(self, output_format: str = "table"):
        self.output_format = output_format

    def _dispatch(self, what: str, handlers: dict[str, Callable[[], str]]) -> str:
        handler = handlers.get(self.output_format)
        if handler is None:
            raise ValueError(f"unsupported output format for {what}: {self.output_format}")
        return handler()

    # ------------------------------------------------------------------
    # Validation reports
    # ------------------------------------------------------------------

    def format_validation_report(self, report: ValidationReport) -> str:
        data = lambda: report.model_dump(mode="json")  # noqa: E731
        return self._dispatch(
            "validation report",
            {
                "table": lambda: self._validation_report_table(report),
                "json": lambda: _to_json(data()),
                "yaml": lambda: _to_yaml(data()),
                "csv": lambda: self._validation_report_csv(report),
            },
        )

    def _validation_report_table(self, report: ValidationReport) -> str:
        if not report.issues:
            return "No validation issues found!\n"

        table = Table(title="Validation Issues", header_style="bold")
        for header in ("Severity", "Type", "Table", "Column", "Message", "Identifier"):
            table.add_column(header)

        for issue in report.issues:
            table.add_row(
                issue.severity.upper(),
                _cell(issue.type),
                _cell(issue.table),
                _cell(issue.column),
                _cell(issue.message),
                _cell(issue.identifier),
            )

        summary = report.summary
        footer = (
            f"Total: {summary.total_issues}  Errors: {summary.error_count}  "
            f"Warnings: {summary.warning_count}  Tables: {summary.tables_covered}  "
            f"Connection: {escape(report.connection_name)}"
        )
        return _render(table, footer)

    def _validation_report_csv(self, report: ValidationReport) -> str:
        rows: list[list[Any]] = [
            ["Severity", "Type", "Table", "Column", "Message", "Identifier", "PrimaryKey"]
        ]
        for issue in report.issues:
            rows.append(
                [
                    issue.severity,
                    issue.type,
                    issue.table,
                    issue.column,
                    issue.message,
                    issue.identifier,
                    issue.primary_key,
                ]
            )
        return _to_csv(rows, quote_all=True)

    # ------------------------------------------------------------------
    # Schema comparison
    # ------------------------------------------------------------------

    def format_schema_comparison(self, comparison: SchemaComparison) -> str:
        data = lambda: comparison.model_dump(mode="json", by_alias=True)  # noqa: E731
        return self._dispatch(
            "schema comparison",
            {
                "table": lambda: self._schema_comparison_table(comparison),
                "json": lambda: _to_json(data()),
                "yaml": lambda: _to_yaml(data()),
            },
        )

    def _schema_comparison_table(self, comparison: SchemaComparison) -> str:
        if not comparison.has_differences:
            return "No schema differences found!\n"

        renderables: list[Any] = []
        for title, names in (
            ("Missing Tables", comparison.missing_tables),
            ("Extra Tables", comparison.extra_tables),
        ):
            if names:
                table = Table(title=title, header_style="bold")
                table.add_column("Table")
                for name in names:
                    table.add_row(_cell(name))
                renderables.append(table)

        for table_name, diff in comparison.table_differences.items():
            table = Table(title=f"Table: {escape(table_name)}", header_style="bold")
            table.add_column("Change Type")
            table.add_column("Column")
            table.add_column("Details")

            for column in diff.missing_columns:
                table.add_row(
                    "MISSING",
                    _cell(column.column_name),
                    _cell(f"{column.data_type}, {column.is_nullable}"),
                )
            for column in diff.extra_columns:
                table.add_row(
                    "EXTRA",
                    _cell(column.column_name),
                    _cell(f"{column.data_type}, {column.is_nullable}"),
                )
            for name, column_diff in diff.modified_columns.items():
                current, target = column_diff.current, column_diff.target
                table.add_row(
                    "MODIFIED",
                    _cell(name),
                    _cell(
                        f"Current: {current.data_type} ({current.is_nullable}, "
                        f"default {current.default_value}) -> Target: {target.data_type} "
                        f"({target.is_nullable}, default {target.default_value})"
                    ),
                )
            for fk in diff.foreign_key_diffs.missing:
                table.add_row("MISSING FK", _cell(fk.column_name), _cell(fk.identity_key()))
            for fk in diff.foreign_key_diffs.extra:
                table.add_row("EXTRA FK", _cell(fk.column_name), _cell(fk.identity_key()))

            renderables.append(table)

        return _render(*renderables)

    # ------------------------------------------------------------------
    # Schema info
    # ------------------------------------------------------------------

    def format_schema_info(self, info: SchemaInfo) -> str:
        data = lambda: info.model_dump(mode="json")  # noqa: E731
        return self._dispatch(
            "schema info",
            {
                "table": lambda: self._schema_info_table(info),
                "json": lambda: _to_json(data()),
                "yaml": lambda: _to_yaml(data()),
            },
        )

    def _schema_info_table(self, info: SchemaInfo) -> str:
        summary = Table(title="Schema Summary", header_style="bold")
        summary.add_column("Metric")
        summary.add_column("Value", justify="right")
        summary.add_row("Schema File", _cell(info.schema_file))
        summary.add_row("Total Tables", str(info.total_tables))
        summary.add_row("Total Columns", str(info.total_columns))
        summary.add_row("Foreign Keys", str(info.total_foreign_keys))
        summary.add_row("NOT NULL Columns", str(info.not_null_columns))
        summary.add_row("Nullable Columns", str(info.nullable_columns))
        renderables: list[Any] = [summary]

        if info.data_type_counts:
            types = Table(title="Data Types Distribution", header_style="bold")
            types.add_column("Data Type")
            types.add_column("Count", justify="right")
            for data_type, count in sorted(info.data_type_counts.items()):
                types.add_row(_cell(data_type), str(count))
            renderables.append(types)

        if info.tables:
            tables = Table(title="Tables Detail", header_style="bold")
            tables.add_column("Table Name")
            tables.add_column("Columns", justify="right")
            tables.add_column("Foreign Keys", justify="right")
            for table in info.tables:
                tables.add_row(
                    _cell(table.name), str(table.column_count), str(table.foreign_key_count)
                )
            renderables.append(tables)

        return _render(*renderables)

    # ------------------------------------------------------------------
    # Schemas (export and snapshot)
    # ------------------------------------------------------------------

    def format_schema(self, schema: Schema) -> str:
        return self._dispatch(
            "schema",
            {
                "table": lambda: self._schema_table(schema),
                "json": lambda: _to_json(dump_schema(schema)),
                "yaml": lambda: _to_yaml(dump_schema(schema)),
                "csv": lambda: self._schema_csv(schema),
            },
        )

    def _schema_table(self, schema: Schema) -> str:
        if not len(schema):
            return "No tables found in schema\n"

        renderables: list[Any] = [f"Database Schema ({len(schema)} tables)"]
        for table in schema:
            columns = Table(title=f"Table: {escape(table.table_name)}", header_style="bold")
            for header in ("Column", "Type", "Nullable", "Default"):
                columns.add_column(header)
            for column in table.columns:
                columns.add_row(
                    _cell(column.column_name),
                    _cell(column.full_type()),
                    "NO" if column.is_not_null() else "YES",
                    "NULL" if column.default_value is None else _cell(column.default_value),
                )
            renderables.append(columns)

            if table.foreign_keys:
                fks = Table(
                    title=f"Foreign Keys for {escape(table.table_name)}", header_style="bold"
                )
                for header in ("Constraint", "Column", "References", "Update Rule", "Delete Rule"):
                    fks.add_column(header)
                for fk in table.foreign_keys:
                    fks.add_row(
                        _cell(fk.constraint_name),
                        _cell(fk.column_name),
                        _cell(f"{fk.referenced_table}.{fk.referenced_column}"),
                        _cell(fk.update_rule),
                        _cell(fk.delete_rule),
                    )
                renderables.append(fks)

        return _render(*renderables)

    def _schema_csv(self, schema: Schema) -> str:
        rows: list[list[Any]] = [
            [
                "Table",
                "Column",
                "DataType",
                "IsNullable",
                "DefaultValue",
                "ConstraintName",
                "ReferencedTable",
                "ReferencedColumn",
            ]
        ]
        for table in schema:
            fks = {fk.column_name: fk for fk in reversed(table.foreign_keys)}
            for column in table.columns:
                fk = fks.get(column.column_name)
                rows.append(
                    [
                        table.table_name,
                        column.column_name,
                        column.full_type(),
                        column.is_nullable,
                        column.default_value,
                        fk.constraint_name if fk else "",
                        fk.referenced_table if fk else "",
                        fk.referenced_column if fk else "",
                    ]
                )
        return _to_csv(rows)

    def format_snapshot(self, schema: Schema) -> str:
        return self._dispatch(
            "schema snapshot",
            {
                "table": lambda: self._snapshot_table(schema),
                "json": lambda: _to_json(snapshot_schema(schema)),
                "yaml": lambda: _to_yaml(snapshot_schema(schema)),
                "csv": lambda: _to_csv(
                    [["Table", "Column", "DataType"]]
                    + [
                        [table.table_name, column.column_name, column.full_type()]
                        for table in schema
                        for column in table.columns
                    ]
                ),
            },
        )

    def _snapshot_table(self, schema: Schema) -> str:
        table = Table(title="Schema Snapshot", header_style="bold")
        for header in ("Table", "Column", "Type"):
            table.add_column(header)
        for schema_table in schema:
            for column in schema_table.columns:
                table.add_row(
                    _cell(schema_table.table_name),
                    _cell(column.column_name),
                    _cell(column.full_type()),
                )
        return _render(table)

    # ------------------------------------------------------------------
    # Fix results
    # ------------------------------------------------------------------

    def format_fix_results(self, results: FixResults, dry_run: bool = True) -> str:
        data = lambda: {  # noqa: E731
            "dry_run": dry_run,
            "results": {name: result.model_dump(mode="json") for name, result in results.items()},
        }
        return self._dispatch(
            "fix results",
            {
                "table": lambda: self._fix_results_table(results, dry_run),
                "json": lambda: _to_json(data()),
                "yaml": lambda: _to_yaml(data()),
            },
        )

    def _fix_results_table(self, results: FixResults, dry_run: bool) -> str:
        if not results:
            return "No tables needed fixing.\n"

        table = Table(
            title="Fix Results (dry run)" if dry_run else "Fix Results",
            header_style="bold",
        )
        table.add_column("Table")
        table.add_column("Issues Found", justify="right")
        table.add_column("Would Affect" if dry_run else "Records Affected", justify="right")
        table.add_column("Status")
        table.add_column("Details")

        for name, result in results.items():
            table.add_row(
                _cell(name),
                str(result.issues_found),
                str(result.records_affected),
                "OK" if result.success else "FAILED",
                _cell(result.error if not result.success else result.details),
            )
        return _render(table)
