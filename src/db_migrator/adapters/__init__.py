"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the SQLAlchemy implementation
used for both PostgreSQL and MySQL.

Usage:
    from db_migrator.adapters import DatabaseClient, SQLAdapter
"""

from db_migrator.adapters.base import DatabaseClient
from db_migrator.adapters.sql import SQLAdapter, create_engine_pooled

__all__ = [
    "DatabaseClient",
    "SQLAdapter",
    "create_engine_pooled",
]
