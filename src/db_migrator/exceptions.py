"""Exception classes for db-migrator.

Object-existence problems and per-query failures during validation are
reported as ``ValidationIssue`` values, not raised.  The exceptions below
cover the failures that must stop a command: bad configuration, an
unreachable database, an unreadable schema file, and failed introspection.
"""

__all__ = [
    "MigratorError",
    "ConfigError",
    "ConnectionNotFoundError",
    "UnsupportedDialectError",
    "ConnectionFailedError",
    "SchemaLoadError",
    "IntrospectionError",
    "ValidationAbortedError",
    "FixConfigurationError",
]


class MigratorError(Exception):
    """Base exception for db-migrator."""


class ConfigError(MigratorError):
    """Error in the configuration file or its values."""


class ConnectionNotFoundError(ConfigError):
    """Raised when a named connection is not defined in the configuration."""


class UnsupportedDialectError(MigratorError):
    """Raised when the configured database type has no dialect."""

    def __init__(self, db_type: str):
        self.db_type = db_type
        super().__init__(
            f"unsupported database type: {db_type!r} (supported: postgres, mysql)"
        )


class ConnectionFailedError(MigratorError):
    """Raised when the database cannot be opened or pinged."""


class SchemaLoadError(MigratorError):
    """Error reading or parsing a schema file."""


class IntrospectionError(MigratorError):
    """Error reading the live database catalog."""


class ValidationAbortedError(MigratorError):
    """Raised when ``stop_on_first_error`` is set and a check fails."""


class FixConfigurationError(MigratorError):
    """Invalid fix action, missing default value, or unsafe flag combination."""
