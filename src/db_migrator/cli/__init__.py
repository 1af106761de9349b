"""CLI for schema comparison, constraint validation, and data repair.

Usage:
    db-migrator validate all
    db-migrator validate fk --format json --output report.json
    db-migrator schema compare -c reporting
    db-migrator schema export -f yaml
    db-migrator connection test
    db-migrator fix fk --action remove --dry-run
    db-migrator fix null --action set-default --default-value unknown --confirm

Commands:
    validate    - Check live data against the target schema's constraints
    schema      - Compare, validate, summarize, export, or snapshot schemas
    connection  - Test, list, or describe configured connections
    fix         - Repair foreign key and NOT NULL violations
    version     - Show version information
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from db_migrator import __version__
from db_migrator.config import AppConfig, DBConfig, ValidationConfig, load_config
from db_migrator.exceptions import MigratorError
from db_migrator.factory import connect, describe
from db_migrator.output import (
    SUPPORTED_FORMATS,
    Formatter,
    create_schema_info,
    create_validation_report,
)
from db_migrator.schema import (
    ConstraintFixer,
    ConstraintValidator,
    FixMode,
    Schema,
    check_null_fix_options,
    compare_schemas,
    load_schema,
    resolve_fix_mode,
    validate_schema,
)

console = Console()
err_console = Console(stderr=True)


# ============================================================================
# Shared helpers
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def _error(message: object) -> int:
    """Print an error on stderr and return the failure exit code."""
    err_console.print(f"[red]Error: {escape(str(message))}[/red]", soft_wrap=True)
    return 1


def _load_app_config(args: argparse.Namespace) -> AppConfig:
    """Load and check the config file named by ``--config``.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigError: If it can't be parsed or the default connection is
            incomplete.
    """
    config = load_config(args.config)
    config.ensure_valid()
    return config


def _connection_config(args: argparse.Namespace, config: AppConfig) -> DBConfig:
    return config.get_connection_config(args.connection)


def _schema_path(args: argparse.Namespace, config: AppConfig | None = None) -> str:
    """``--schema`` if given, else the config's ``[schema] file``."""
    if args.schema:
        return args.schema
    if config is None:
        config = load_config(args.config)
    return config.schema_file


def _validation_settings(args: argparse.Namespace, config: AppConfig) -> ValidationConfig:
    """Config-file validation settings with command-line flags laid over."""
    overrides = {
        name: True
        for name in ("ignore_missing_tables", "ignore_missing_columns", "stop_on_first_error")
        if getattr(args, name, False)
    }
    max_issues = getattr(args, "max_issues", None)
    if max_issues is not None:
        overrides["max_issues_per_table"] = max_issues
    return config.validation.model_copy(update=overrides)


def _write_output(args: argparse.Namespace, text: str) -> None:
    """Write command output to ``--output`` or stdout."""
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        err_console.print(
            f"[bold green]v[/bold green] Output written to {escape(args.output)}"
        )
    else:
        sys.stdout.write(text)
        sys.stdout.flush()


# ============================================================================
# validate
# ============================================================================


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate live data against the target schema.

    Args:
        args: Parsed CLI arguments with ``check`` (fk, null, all).

    Returns:
        0 if no error-severity issue was found, 1 otherwise.
    """
    try:
        config = _load_app_config(args)
        db_config = _connection_config(args, config)
        settings = _validation_settings(args, config)
        target = load_schema(_schema_path(args, config))
        formatter = Formatter(args.format)

        with connect(db_config) as db:
            validator = ConstraintValidator(db.introspector, settings)
            if args.check == "fk":
                issues = validator.validate_foreign_keys(target)
            elif args.check == "null":
                issues = validator.validate_not_null_constraints(target)
            else:
                issues = validator.validate_all(target)

        report = create_validation_report(args.connection or "default", issues)
        _write_output(args, formatter.format_validation_report(report))
    except (MigratorError, FileNotFoundError, ValueError) as e:
        return _error(e)

    return 1 if report.has_errors else 0


# ============================================================================
# schema
# ============================================================================


def _introspect(args: argparse.Namespace) -> Schema:
    config = _load_app_config(args)
    with connect(_connection_config(args, config)) as db:
        return db.introspector.get_current_schema()


def cmd_schema_compare(args: argparse.Namespace) -> int:
    """Compare the live schema with the target schema file."""
    try:
        config = _load_app_config(args)
        target = load_schema(_schema_path(args, config))
        with connect(_connection_config(args, config)) as db:
            current = db.introspector.get_current_schema()

        comparison = compare_schemas(current, target)
        _write_output(args, Formatter(args.format).format_schema_comparison(comparison))
    except (MigratorError, FileNotFoundError, ValueError) as e:
        return _error(e)
    return 0


def cmd_schema_validate(args: argparse.Namespace) -> int:
    """Check the target schema file for internal consistency.

    Returns:
        0 if the file has no error-severity issue, 1 otherwise.
    """
    try:
        path = _schema_path(args)
        issues = validate_schema(load_schema(path))
        report = create_validation_report(path, issues)
        _write_output(args, Formatter(args.format).format_validation_report(report))
    except (MigratorError, FileNotFoundError, ValueError) as e:
        return _error(e)
    return 1 if report.has_errors else 0


def cmd_schema_info(args: argparse.Namespace) -> int:
    """Summarize the target schema file."""
    try:
        path = _schema_path(args)
        info = create_schema_info(path, load_schema(path))
        _write_output(args, Formatter(args.format).format_schema_info(info))
    except (MigratorError, FileNotFoundError, ValueError) as e:
        return _error(e)
    return 0


def cmd_schema_export(args: argparse.Namespace) -> int:
    """Export the live schema in a form ``--schema`` can read back."""
    try:
        schema = _introspect(args)
        _write_output(args, Formatter(args.format).format_schema(schema))
    except (MigratorError, FileNotFoundError, ValueError) as e:
        return _error(e)
    return 0


def cmd_schema_snapshot(args: argparse.Namespace) -> int:
    """Write a simplified snapshot of the live schema."""
    try:
        schema = _introspect(args)
        _write_output(args, Formatter(args.format).format_snapshot(schema))
    except (MigratorError, FileNotFoundError, ValueError) as e:
        return _error(e)
    return 0


# ============================================================================
# connection
# ============================================================================


def cmd_connection_test(args: argparse.Namespace) -> int:
    """Connect, ping, and count tables."""
    try:
        config = _load_app_config(args)
        db_config = _connection_config(args, config)
    except (MigratorError, FileNotFoundError) as e:
        return _error(e)

    console.print(f"Testing connection to {escape(describe(db_config))}...", style="dim")
    try:
        with connect(db_config) as db:
            table_count = len(db.introspector.get_table_names())
    except MigratorError as e:
        console.print("[bold red]x[/bold red] Connection failed")
        return _error(e)

    console.print("[bold green]v[/bold green] Connection successful")
    console.print(f"  Host: {escape(db_config.host)}:{db_config.port}")
    console.print(f"  Database: {escape(db_config.database)}")
    console.print(f"  User: {escape(db_config.username)}")
    console.print(f"  Tables: {table_count}")
    return 0


def cmd_connection_list(args: argparse.Namespace) -> int:
    """List the default and named connections."""
    try:
        config = _load_app_config(args)
    except (MigratorError, FileNotFoundError) as e:
        return _error(e)

    table = Table(title="Connections", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Host")
    table.add_column("Port", justify="right")
    table.add_column("Database")
    table.add_column("User")

    rows = [("default", config.default)]
    rows += [(name, config.get_connection_config(name)) for name in config.connections]
    for name, db_config in rows:
        table.add_row(
            f"[bold cyan]{escape(name)}[/bold cyan]" if name == "default" else escape(name),
            escape(db_config.type),
            escape(db_config.host),
            str(db_config.port),
            escape(db_config.database),
            escape(db_config.username),
        )

    console.print(table)
    return 0


def cmd_connection_info(args: argparse.Namespace) -> int:
    """Show resolved settings for a connection, then test it."""
    try:
        config = _load_app_config(args)
        db_config = _connection_config(args, config)
    except (MigratorError, FileNotFoundError) as e:
        return _error(e)

    table = Table(
        title=f"Connection: {escape(args.connection or 'default')}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Type", escape(db_config.type))
    table.add_row("Host", escape(db_config.host))
    table.add_row("Port", str(db_config.port))
    table.add_row("Database", escape(db_config.database))
    table.add_row("User", escape(db_config.username))
    table.add_row("Password", "********" if db_config.password else "(not set)")
    if db_config.sslmode:
        table.add_row("SSL Mode", escape(db_config.sslmode))
    console.print(table)

    try:
        with connect(db_config) as db:
            table_count = len(db.introspector.get_table_names())
    except MigratorError as e:
        console.print("[bold red]x[/bold red] Connection failed")
        return _error(e)

    console.print(f"[bold green]v[/bold green] Connected ({table_count} tables)")
    return 0


# ============================================================================
# fix
# ============================================================================


def _run_fix(args: argparse.Namespace, kind: str) -> int:
    """Shared body of ``fix fk`` and ``fix null``.

    Returns:
        0 if every table was processed, 1 on configuration or connection
        errors or when any table failed.
    """
    try:
        mode = resolve_fix_mode(args.dry_run, args.confirm)
        if kind == "null":
            check_null_fix_options(args.action, args.default_value)
        config = _load_app_config(args)
        db_config = _connection_config(args, config)
        settings = _validation_settings(args, config)
        target = load_schema(_schema_path(args, config))
        formatter = Formatter(args.format)

        if mode is FixMode.CONFIRMED:
            err_console.print(
                f"[yellow]Applying {kind} fixes to {escape(describe(db_config))}[/yellow]"
            )

        with connect(db_config) as db:
            fixer = ConstraintFixer(ConstraintValidator(db.introspector, settings))
            if kind == "fk":
                results = fixer.fix_foreign_key_violations(target, args.action, mode)
            else:
                results = fixer.fix_null_value_violations(
                    target, args.action, mode, default_value=args.default_value
                )

        dry_run = mode is FixMode.DRY_RUN
        _write_output(args, formatter.format_fix_results(results, dry_run=dry_run))
    except (MigratorError, FileNotFoundError, ValueError) as e:
        return _error(e)

    if dry_run and any(result.records_affected for result in results.values()):
        err_console.print("[dim]Run with --confirm to apply these changes.[/dim]")

    return 0 if all(result.success for result in results.values()) else 1


def cmd_fix_fk(args: argparse.Namespace) -> int:
    """Fix foreign key violations (remove orphans or set them to NULL)."""
    return _run_fix(args, "fk")


def cmd_fix_null(args: argparse.Namespace) -> int:
    """Fix NULLs in NOT NULL columns (remove rows or set a default)."""
    return _run_fix(args, "null")


# ============================================================================
# version
# ============================================================================


def cmd_version(args: argparse.Namespace) -> int:
    console.print(f"db-migrator {__version__}")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_validation_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--ignore-missing-tables",
        action="store_true",
        help="Skip tables missing from the database instead of reporting them",
    )
    parser.add_argument(
        "--ignore-missing-columns",
        action="store_true",
        help="Skip columns missing from the database instead of reporting them",
    )
    parser.add_argument(
        "--stop-on-first-error",
        action="store_true",
        help="Abort on the first failed check",
    )


def _add_fix_flags(parser: argparse.ArgumentParser) -> None:
    _add_validation_flags(parser)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Count affected rows without changing data (default)",
    )
    parser.add_argument(
        "--confirm",
        action="store_true",
        default=None,
        help="Apply fixes (required to change data)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with every command registered."""
    parser = argparse.ArgumentParser(
        prog="db-migrator",
        description="Database schema comparison, constraint validation, and repair",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file (default: ./db-migrator.toml)",
    )
    parser.add_argument(
        "-c",
        "--connection",
        default="",
        help="Named connection from the configuration (default: [default])",
    )
    parser.add_argument(
        "-s",
        "--schema",
        default="",
        help="Target schema JSON file (default: [schema] file from the configuration)",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=SUPPORTED_FORMATS,
        default="table",
        help="Output format",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="",
        help="Write output to this file instead of stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # validate command
    p_validate = subparsers.add_parser(
        "validate",
        help="Check live data against the target schema's constraints",
    )
    p_validate.add_argument(
        "check",
        choices=("fk", "null", "all"),
        help="fk: foreign keys, null: NOT NULL columns, all: schema file, fk, and null",
    )
    _add_validation_flags(p_validate)
    p_validate.add_argument(
        "--max-issues",
        type=_positive_int,
        default=None,
        help="Maximum violations reported per constraint or column",
    )
    p_validate.set_defaults(func=cmd_validate)

    # schema command
    p_schema = subparsers.add_parser("schema", help="Schema operations")
    schema_sub = p_schema.add_subparsers(dest="schema_command", required=True)
    for name, func, help_text in (
        ("compare", cmd_schema_compare, "Compare the live schema with the target schema"),
        ("validate", cmd_schema_validate, "Check the target schema file for consistency"),
        ("info", cmd_schema_info, "Summarize the target schema file"),
        ("export", cmd_schema_export, "Export the live schema"),
        ("snapshot", cmd_schema_snapshot, "Write a simplified snapshot of the live schema"),
    ):
        schema_sub.add_parser(name, help=help_text).set_defaults(func=func)

    # connection command
    p_connection = subparsers.add_parser("connection", help="Connection operations")
    connection_sub = p_connection.add_subparsers(dest="connection_command", required=True)
    for name, func, help_text in (
        ("test", cmd_connection_test, "Test the database connection"),
        ("list", cmd_connection_list, "List configured connections"),
        ("info", cmd_connection_info, "Show connection settings and test them"),
    ):
        connection_sub.add_parser(name, help=help_text).set_defaults(func=func)

    # fix command
    p_fix = subparsers.add_parser("fix", help="Repair constraint violations")
    fix_sub = p_fix.add_subparsers(dest="fix_command", required=True)

    p_fix_fk = fix_sub.add_parser("fk", help="Fix foreign key violations")
    p_fix_fk.add_argument(
        "--action",
        choices=("remove", "set-null"),
        required=True,
        help="remove: delete orphan rows, set-null: clear the foreign key column",
    )
    _add_fix_flags(p_fix_fk)
    p_fix_fk.set_defaults(func=cmd_fix_fk)

    p_fix_null = fix_sub.add_parser("null", help="Fix NULL values in NOT NULL columns")
    p_fix_null.add_argument(
        "--action",
        choices=("remove", "set-default"),
        required=True,
        help="remove: delete the rows, set-default: fill in --default-value",
    )
    p_fix_null.add_argument(
        "--default-value",
        default=None,
        help="Replacement value for set-default",
    )
    _add_fix_flags(p_fix_null)
    p_fix_null.set_defaults(func=cmd_fix_null)

    # version command
    p_version = subparsers.add_parser("version", help="Show version information")
    p_version.set_defaults(func=cmd_version)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
