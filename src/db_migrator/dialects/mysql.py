"""MySQL dialect (mysql-connector-python driver).

The column query does not report size metadata: MySQL's
information_schema exposes it in vendor-specific shapes, so
``character_max_length`` and friends are always NULL and ``full_type()``
yields the bare type for MySQL catalogs.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy.engine import URL

from db_migrator.dialects.base import Dialect

if TYPE_CHECKING:
    from db_migrator.config.models import DBConfig
    from db_migrator.schema.models import ForeignKey

CONNECT_TIMEOUT_SECONDS = 10


class MySQLDialect(Dialect):
    name = "mysql"
    quote_char = "`"

    def driver_name(self) -> str:
        return "mysql+mysqlconnector"

    def build_connection_string(self, config: "DBConfig") -> str:
        url = URL.create(
            self.driver_name(),
            username=config.username or None,
            password=config.password or None,
            host=config.host or None,
            port=config.port or None,
            database=config.database or None,
        )
        return url.render_as_string(hide_password=False)

    def connect_args(self) -> dict[str, Any]:
        return {"connection_timeout": CONNECT_TIMEOUT_SECONDS}

    def tables_query(self) -> str:
        return """
            SELECT TABLE_NAME AS table_name
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """

    def columns_query(self) -> str:
        return """
            SELECT
                COLUMN_NAME AS column_name,
                DATA_TYPE AS data_type,
                COLUMN_DEFAULT AS column_default,
                IS_NULLABLE AS is_nullable,
                NULL AS character_maximum_length,
                NULL AS numeric_precision,
                NULL AS numeric_scale,
                NULL AS datetime_precision
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_NAME = :table_name
            ORDER BY ORDINAL_POSITION
        """

    def foreign_keys_query(self) -> str:
        return """
            SELECT
                kcu.CONSTRAINT_NAME AS constraint_name,
                kcu.TABLE_NAME AS table_name,
                kcu.COLUMN_NAME AS column_name,
                kcu.REFERENCED_TABLE_NAME AS referenced_table,
                kcu.REFERENCED_COLUMN_NAME AS referenced_column,
                rc.UPDATE_RULE AS update_rule,
                rc.DELETE_RULE AS delete_rule
            FROM information_schema.KEY_COLUMN_USAGE AS kcu
            JOIN information_schema.REFERENTIAL_CONSTRAINTS AS rc
                ON kcu.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
                AND kcu.CONSTRAINT_SCHEMA = rc.CONSTRAINT_SCHEMA
            WHERE kcu.TABLE_SCHEMA = DATABASE()
              AND kcu.TABLE_NAME = :table_name
              AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """

    def table_exists_query(self) -> str:
        return """
            SELECT 1
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_NAME = :table_name
        """

    def column_exists_query(self) -> str:
        return """
            SELECT 1
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_NAME = :table_name
              AND COLUMN_NAME = :column_name
        """

    # MySQL rejects a subquery on the table being modified, so repairs use
    # the multi-table LEFT JOIN forms; this keeps self-references repairable.

    def _orphan_join(self, fk: "ForeignKey") -> str:
        return (
            f"{self.quote_identifier(fk.table_name)} AS t1\n"
            f"LEFT JOIN {self.quote_identifier(fk.referenced_table)} AS t2\n"
            f"  ON t2.{self.quote_identifier(fk.referenced_column)} = "
            f"t1.{self.quote_identifier(fk.column_name)}"
        )

    def _orphan_join_condition(self, fk: "ForeignKey") -> str:
        return (
            f"t1.{self.quote_identifier(fk.column_name)} IS NOT NULL\n"
            f"  AND t2.{self.quote_identifier(fk.referenced_column)} IS NULL"
        )

    def delete_foreign_key_violations_query(self, fk: "ForeignKey") -> str:
        return (
            f"DELETE t1 FROM {self._orphan_join(fk)}\n"
            f"WHERE {self._orphan_join_condition(fk)}"
        )

    def nullify_foreign_key_violations_query(self, fk: "ForeignKey") -> str:
        return (
            f"UPDATE {self._orphan_join(fk)}\n"
            f"SET t1.{self.quote_identifier(fk.column_name)} = NULL\n"
            f"WHERE {self._orphan_join_condition(fk)}"
        )
