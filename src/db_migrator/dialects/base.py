"""Vendor dialect base class.

A ``Dialect`` is pure string synthesis: catalog queries, connection URLs,
identifier quoting, and the violation-finding and repair statements used by
the validator and fixer.  Nothing here touches a connection.

Catalog queries take SQLAlchemy named parameters (``:table_name``,
``:column_name``) and alias every selected column to a lowercase name so
that rows can be read by key regardless of vendor.

Usage:
    from db_migrator.dialects import get_dialect

    dialect = get_dialect("postgres")
    sql = dialect.null_violations_query("orders", "customer_id", "id")
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from db_migrator.config.models import DBConfig
    from db_migrator.schema.models import ForeignKey

# Identifier returned when a table has no usable column; rendered as a literal
NO_IDENTIFIER = "1"

DEFAULT_VIOLATION_LIMIT = 1000


class Dialect(ABC):
    """SQL capabilities of one database vendor.

    Subclasses supply the catalog queries and connection details.  The
    violation and repair statements are shared and only depend on
    ``quote_char``; vendors whose SQL differs override them.
    """

    name: str = ""
    quote_char: str = '"'

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @abstractmethod
    def driver_name(self) -> str:
        """SQLAlchemy ``dialect+driver`` name."""

    @abstractmethod
    def build_connection_string(self, config: "DBConfig") -> str:
        """Build a SQLAlchemy URL for ``config`` (password included)."""

    def connect_args(self) -> dict[str, Any]:
        """Driver keyword arguments passed through ``create_engine``."""
        return {}

    # ------------------------------------------------------------------
    # Catalog queries
    # ------------------------------------------------------------------

    @abstractmethod
    def tables_query(self) -> str:
        """Base tables of the active schema, ordered by name.

        Columns: ``table_name``.
        """

    @abstractmethod
    def columns_query(self) -> str:
        """Columns of ``:table_name`` in ordinal order.

        Columns: ``column_name``, ``data_type``, ``column_default``,
        ``is_nullable``, ``character_maximum_length``, ``numeric_precision``,
        ``numeric_scale``, ``datetime_precision``.
        """

    @abstractmethod
    def foreign_keys_query(self) -> str:
        """Foreign keys owned by ``:table_name``.

        Columns: ``constraint_name``, ``table_name``, ``column_name``,
        ``referenced_table``, ``referenced_column``, ``update_rule``,
        ``delete_rule``.
        """

    @abstractmethod
    def table_exists_query(self) -> str:
        """Returns one row if ``:table_name`` exists."""

    @abstractmethod
    def column_exists_query(self) -> str:
        """Returns one row if ``:column_name`` exists in ``:table_name``."""

    # ------------------------------------------------------------------
    # Quoting
    # ------------------------------------------------------------------

    def identifier_quote(self) -> str:
        return self.quote_char

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier, doubling any embedded quote characters."""
        q = self.quote_char
        return f"{q}{name.replace(q, q + q)}{q}"

    def _identifier_expr(self, identifier_column: str, alias: str | None = None) -> str:
        if identifier_column == NO_IDENTIFIER:
            return NO_IDENTIFIER
        quoted = self.quote_identifier(identifier_column)
        return f"{alias}.{quoted}" if alias else quoted

    # ------------------------------------------------------------------
    # Data queries
    # ------------------------------------------------------------------

    def table_row_count_query(self, table_name: str) -> str:
        return f"SELECT COUNT(*) FROM {self.quote_identifier(table_name)}"

    def null_violations_query(
        self,
        table_name: str,
        column_name: str,
        identifier_column: str,
        limit: int = DEFAULT_VIOLATION_LIMIT,
    ) -> str:
        """Rows whose ``column_name`` is NULL.  Columns: ``row_identifier``."""
        return (
            f"SELECT {self._identifier_expr(identifier_column)} AS row_identifier\n"
            f"FROM {self.quote_identifier(table_name)}\n"
            f"WHERE {self.quote_identifier(column_name)} IS NULL\n"
            f"LIMIT {int(limit)}"
        )

    def null_violation_count_query(self, table_name: str, column_name: str) -> str:
        return (
            f"SELECT COUNT(*) FROM {self.quote_identifier(table_name)}\n"
            f"WHERE {self.quote_identifier(column_name)} IS NULL"
        )

    def _orphan_condition(self, fk: "ForeignKey", source: str) -> str:
        """WHERE clause matching rows of ``source`` with no referenced row."""
        column = self.quote_identifier(fk.column_name)
        return (
            f"{source}.{column} IS NOT NULL\n"
            f"  AND NOT EXISTS (\n"
            f"    SELECT 1 FROM {self.quote_identifier(fk.referenced_table)} t2\n"
            f"    WHERE t2.{self.quote_identifier(fk.referenced_column)} = {source}.{column}\n"
            f"  )"
        )

    def foreign_key_violations_query(
        self,
        fk: "ForeignKey",
        identifier_column: str,
        limit: int = DEFAULT_VIOLATION_LIMIT,
    ) -> str:
        """Orphan rows of ``fk`` (anti-join).

        Columns: ``foreign_key_value``, ``row_identifier``.
        """
        return (
            f"SELECT t1.{self.quote_identifier(fk.column_name)} AS foreign_key_value, "
            f"{self._identifier_expr(identifier_column, 't1')} AS row_identifier\n"
            f"FROM {self.quote_identifier(fk.table_name)} t1\n"
            f"WHERE {self._orphan_condition(fk, 't1')}\n"
            f"LIMIT {int(limit)}"
        )

    def foreign_key_violation_count_query(self, fk: "ForeignKey") -> str:
        return (
            f"SELECT COUNT(*) FROM {self.quote_identifier(fk.table_name)} t1\n"
            f"WHERE {self._orphan_condition(fk, 't1')}"
        )

    # ------------------------------------------------------------------
    # Repair statements
    # ------------------------------------------------------------------

    def delete_foreign_key_violations_query(self, fk: "ForeignKey") -> str:
        table = self.quote_identifier(fk.table_name)
        return f"DELETE FROM {table}\nWHERE {self._orphan_condition(fk, table)}"

    def nullify_foreign_key_violations_query(self, fk: "ForeignKey") -> str:
        table = self.quote_identifier(fk.table_name)
        column = self.quote_identifier(fk.column_name)
        return (
            f"UPDATE {table} SET {column} = NULL\n"
            f"WHERE {self._orphan_condition(fk, table)}"
        )

    def delete_null_rows_query(self, table_name: str, column_name: str) -> str:
        return (
            f"DELETE FROM {self.quote_identifier(table_name)}\n"
            f"WHERE {self.quote_identifier(column_name)} IS NULL"
        )

    def set_default_for_nulls_query(self, table_name: str, column_name: str) -> str:
        """UPDATE binding the replacement value as ``:default_value``."""
        column = self.quote_identifier(column_name)
        return (
            f"UPDATE {self.quote_identifier(table_name)} SET {column} = :default_value\n"
            f"WHERE {column} IS NULL"
        )
