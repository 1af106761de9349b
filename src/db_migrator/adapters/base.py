"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol the introspector, validator, and
fixer talk to.  Everything is synchronous: one query at a time, blocking.

Usage:
    from db_migrator.adapters.base import DatabaseClient

    def count_orders(client: DatabaseClient) -> int:
        return client.fetch_scalar("SELECT COUNT(*) FROM orders")
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    SQL text uses SQLAlchemy-style named parameters (``:table_name``).
    """

    def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a query and return every row.

        Args:
            sql: Query text.
            params: Optional dict of named parameters.

        Returns:
            List of dicts keyed by the result column names.  Empty list if
            there are no rows.

        Example:
            rows = client.fetch_all(
                "SELECT id FROM orders WHERE customer_id IS NULL"
            )
        """
        ...

    def fetch_scalar(self, sql: str, params: dict[str, Any] | None = None) -> Any:
        """Run a query and return the first column of the first row.

        Returns ``None`` if the query produced no rows.
        """
        ...

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """Execute a data-modifying statement and commit it.

        Each call runs in its own transaction; nothing spans calls.

        Returns:
            Number of rows affected.

        Example:
            deleted = client.execute("DELETE FROM orders WHERE customer_id IS NULL")
        """
        ...

    def test_connection(self) -> bool:
        """Ping the database.

        Raises:
            Exception: Driver error if the database cannot be reached.
        """
        ...

    def close(self) -> None:
        """Release the connection pool."""
        ...
