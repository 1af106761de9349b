"""Live catalog introspection through a dialect's information_schema queries.

This module reads the connected database into the schema model:
- Tables (base tables of the active schema, vendor listing order)
- Columns in ordinal order: data type, nullability, default, size metadata
- Single-column foreign keys with their update/delete rules

It also answers the existence probes the validator and fixer run before
their data queries.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from db_migrator.adapters.base import DatabaseClient
from db_migrator.dialects.base import Dialect
from db_migrator.exceptions import IntrospectionError
from db_migrator.schema.models import Column, ForeignKey, Schema, Table

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Introspects the live schema of one database.

    The introspector holds no state beyond its client and dialect; every
    call queries the catalog afresh.

    Usage:
        introspector = SchemaIntrospector(client, get_dialect("postgres"))
        schema = introspector.get_current_schema()
        if introspector.table_exists("orders"):
            ...
    """

    def __init__(self, client: DatabaseClient, dialect: Dialect):
        self.client = client
        self.dialect = dialect

    def get_current_schema(self) -> Schema:
        """Read every table with its columns and foreign keys.

        Returns:
            Schema in the order the catalog lists tables.

        Raises:
            IntrospectionError: If any catalog query fails.  No partial
                schema is returned.
        """
        tables = []
        for table_name in self.get_table_names():
            tables.append(
                Table(
                    table_name=table_name,
                    columns=self.get_table_columns(table_name),
                    foreign_keys=self.get_table_foreign_keys(table_name),
                )
            )

        logger.info("Introspected %d table(s)", len(tables))
        return Schema(tables)

    def get_table_names(self) -> list[str]:
        """Get base table names in the active schema."""
        try:
            rows = self.client.fetch_all(self.dialect.tables_query())
        except SQLAlchemyError as e:
            raise IntrospectionError(f"failed to get tables: {e}") from e
        return [row["table_name"] for row in rows]

    def get_table_columns(self, table_name: str) -> list[Column]:
        """Get columns for a table in ordinal order."""
        try:
            rows = self.client.fetch_all(
                self.dialect.columns_query(), {"table_name": table_name}
            )
        except SQLAlchemyError as e:
            raise IntrospectionError(
                f"failed to get columns for table {table_name}: {e}"
            ) from e

        return [
            Column(
                column_name=row["column_name"],
                data_type=row["data_type"] or "",
                default_value=row["column_default"],
                is_nullable=row["is_nullable"] or "YES",
                character_max_length=row["character_maximum_length"],
                numeric_precision=row["numeric_precision"],
                numeric_scale=row["numeric_scale"],
                datetime_precision=row["datetime_precision"],
            )
            for row in rows
        ]

    def get_table_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        """Get foreign keys owned by a table."""
        try:
            rows = self.client.fetch_all(
                self.dialect.foreign_keys_query(), {"table_name": table_name}
            )
        except SQLAlchemyError as e:
            raise IntrospectionError(
                f"failed to get foreign keys for table {table_name}: {e}"
            ) from e

        return [
            ForeignKey(
                constraint_name=row["constraint_name"] or "",
                table_name=row["table_name"],
                column_name=row["column_name"],
                referenced_table=row["referenced_table"],
                referenced_column=row["referenced_column"],
                update_rule=row["update_rule"] or "",
                delete_rule=row["delete_rule"] or "",
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Existence probes (driver errors propagate to the caller)
    # ------------------------------------------------------------------

    def table_exists(self, table_name: str) -> bool:
        rows = self.client.fetch_all(
            self.dialect.table_exists_query(), {"table_name": table_name}
        )
        return bool(rows)

    def column_exists(self, table_name: str, column_name: str) -> bool:
        rows = self.client.fetch_all(
            self.dialect.column_exists_query(),
            {"table_name": table_name, "column_name": column_name},
        )
        return bool(rows)

    def get_table_row_count(self, table_name: str) -> int:
        """Count rows in a table."""
        count = self.client.fetch_scalar(self.dialect.table_row_count_query(table_name))
        return int(count or 0)
