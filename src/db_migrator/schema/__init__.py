"""Schema introspection, comparison, constraint validation, and data repair.

Provides the schema model, live catalog introspection
(``SchemaIntrospector``), structural diffing (``compare_schemas``),
schema-file checks (``validate_schema``), constraint validation against
live data (``ConstraintValidator``), and violation repair
(``ConstraintFixer``).

Usage:
    from db_migrator.schema import load_schema, compare_schemas
    from db_migrator.schema import ConstraintValidator, ConstraintFixer
"""

from db_migrator.schema.comparator import compare_schemas, validate_schema
from db_migrator.schema.fix import (
    ConstraintFixer,
    FixMode,
    ForeignKeyAction,
    NullAction,
    check_null_fix_options,
    parse_foreign_key_action,
    parse_null_action,
    resolve_fix_mode,
)
from db_migrator.schema.introspector import SchemaIntrospector
from db_migrator.schema.loader import dump_schema, load_schema, parse_schema, snapshot_schema
from db_migrator.schema.models import (
    Column,
    ColumnDiff,
    FixResult,
    FixResults,
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
from db_migrator.schema.validator import ConstraintValidator, ViolationScan

__all__ = [
    "compare_schemas",
    "validate_schema",
    "SchemaIntrospector",
    "ConstraintValidator",
    "ViolationScan",
    "ConstraintFixer",
    "FixMode",
    "ForeignKeyAction",
    "NullAction",
    "check_null_fix_options",
    "parse_foreign_key_action",
    "parse_null_action",
    "resolve_fix_mode",
    "load_schema",
    "parse_schema",
    "dump_schema",
    "snapshot_schema",
    "Column",
    "ColumnDiff",
    "ForeignKey",
    "ForeignKeyDifference",
    "Table",
    "Schema",
    "SchemaComparison",
    "TableDifference",
    "ValidationIssue",
    "IssueType",
    "Severity",
    "FixResult",
    "FixResults",
]
