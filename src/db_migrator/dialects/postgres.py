"""PostgreSQL dialect (psycopg 3 driver)."""

from typing import TYPE_CHECKING, Any

from sqlalchemy.engine import URL

from db_migrator.dialects.base import Dialect

if TYPE_CHECKING:
    from db_migrator.config.models import DBConfig

CONNECT_TIMEOUT_SECONDS = 10


class PostgresDialect(Dialect):
    """Catalog queries against ``information_schema`` in the ``public`` schema.

    Size metadata is cast to integer: information_schema exposes it through
    the ``cardinal_number`` domain, which the driver would return as text.
    """

    name = "postgres"
    quote_char = '"'

    def driver_name(self) -> str:
        return "postgresql+psycopg"

    def build_connection_string(self, config: "DBConfig") -> str:
        url = URL.create(
            self.driver_name(),
            username=config.username or None,
            password=config.password or None,
            host=config.host or None,
            port=config.port or None,
            database=config.database or None,
            query={"sslmode": config.sslmode or "disable"},
        )
        return url.render_as_string(hide_password=False)

    def connect_args(self) -> dict[str, Any]:
        return {"connect_timeout": CONNECT_TIMEOUT_SECONDS}

    def tables_query(self) -> str:
        return """
            SELECT table_name AS table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """

    def columns_query(self) -> str:
        return """
            SELECT
                column_name AS column_name,
                data_type AS data_type,
                column_default AS column_default,
                is_nullable AS is_nullable,
                CAST(character_maximum_length AS integer) AS character_maximum_length,
                CAST(numeric_precision AS integer) AS numeric_precision,
                CAST(numeric_scale AS integer) AS numeric_scale,
                CAST(datetime_precision AS integer) AS datetime_precision
            FROM information_schema.columns
            WHERE table_schema = 'public'
              AND table_name = :table_name
            ORDER BY ordinal_position
        """

    def foreign_keys_query(self) -> str:
        return """
            SELECT
                tc.constraint_name AS constraint_name,
                tc.table_name AS table_name,
                kcu.column_name AS column_name,
                ccu.table_name AS referenced_table,
                ccu.column_name AS referenced_column,
                rc.update_rule AS update_rule,
                rc.delete_rule AS delete_rule
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            JOIN information_schema.constraint_column_usage AS ccu
                ON ccu.constraint_name = tc.constraint_name
                AND ccu.constraint_schema = tc.table_schema
            JOIN information_schema.referential_constraints AS rc
                ON rc.constraint_name = tc.constraint_name
                AND rc.constraint_schema = tc.table_schema
            WHERE tc.constraint_type = 'FOREIGN KEY'
              AND tc.table_schema = 'public'
              AND tc.table_name = :table_name
            ORDER BY tc.constraint_name, kcu.ordinal_position
        """

    def table_exists_query(self) -> str:
        return """
            SELECT 1
            FROM information_schema.tables
            WHERE table_schema = 'public'
              AND table_name = :table_name
        """

    def column_exists_query(self) -> str:
        return """
            SELECT 1
            FROM information_schema.columns
            WHERE table_schema = 'public'
              AND table_name = :table_name
              AND column_name = :column_name
        """
