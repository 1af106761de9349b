"""db-migrator: Schema comparison, constraint validation, and data repair.

Compares a live PostgreSQL or MySQL schema against a JSON target schema,
finds rows that would violate the target's foreign key and NOT NULL
constraints, and removes or repairs them, with a dry-run mode by default.

Usage:
    from db_migrator import load_config, connect, load_schema
    from db_migrator import ConstraintValidator, ConstraintFixer, compare_schemas
"""

__version__ = "0.1.0"

# Adapters
from db_migrator.adapters.base import DatabaseClient
from db_migrator.adapters.sql import SQLAdapter

# Config
from db_migrator.config.loader import load_config
from db_migrator.config.models import AppConfig, DBConfig, ValidationConfig

# Dialects
from db_migrator.dialects import Dialect, get_dialect

# Factory
from db_migrator.factory import Database, connect

# Schema
from db_migrator.schema.comparator import compare_schemas, validate_schema
from db_migrator.schema.fix import ConstraintFixer, FixMode
from db_migrator.schema.introspector import SchemaIntrospector
from db_migrator.schema.loader import load_schema
from db_migrator.schema.models import (
    Column,
    ForeignKey,
    Schema,
    SchemaComparison,
    Table,
    ValidationIssue,
)
from db_migrator.schema.validator import ConstraintValidator

__all__ = [
    # Adapters
    "DatabaseClient",
    "SQLAdapter",
    # Config
    "load_config",
    "AppConfig",
    "DBConfig",
    "ValidationConfig",
    # Dialects
    "Dialect",
    "get_dialect",
    # Factory
    "Database",
    "connect",
    # Schema
    "compare_schemas",
    "validate_schema",
    "ConstraintFixer",
    "FixMode",
    "SchemaIntrospector",
    "load_schema",
    "ConstraintValidator",
    "Column",
    "ForeignKey",
    "Schema",
    "SchemaComparison",
    "Table",
    "ValidationIssue",
]
