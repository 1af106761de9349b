"""Database dialects: vendor-specific SQL and connection details.

Usage:
    >>> from db_migrator.dialects import get_dialect
    >>> get_dialect("mysql").quote_identifier("orders")
    '`orders`'
"""

from db_migrator.dialects.base import DEFAULT_VIOLATION_LIMIT, NO_IDENTIFIER, Dialect
from db_migrator.dialects.mysql import MySQLDialect
from db_migrator.dialects.postgres import PostgresDialect
from db_migrator.exceptions import UnsupportedDialectError

_DIALECTS: dict[str, type[Dialect]] = {
    "": PostgresDialect,
    "postgres": PostgresDialect,
    "postgresql": PostgresDialect,
    "mysql": MySQLDialect,
}


def get_dialect(db_type: str | None) -> Dialect:
    """Return the dialect for a configured database type.

    An empty type selects PostgreSQL.

    Raises:
        UnsupportedDialectError: For any other type.
    """
    key = (db_type or "").strip().lower()
    try:
        return _DIALECTS[key]()
    except KeyError:
        raise UnsupportedDialectError(db_type or "") from None


__all__ = [
    "DEFAULT_VIOLATION_LIMIT",
    "NO_IDENTIFIER",
    "Dialect",
    "MySQLDialect",
    "PostgresDialect",
    "get_dialect",
]
