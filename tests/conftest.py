"""Shared fixtures: an in-memory SQLite database behind the real adapter.

``SQLiteTestDialect`` keeps the PostgreSQL violation and repair SQL (which
SQLite accepts as written) and swaps the information_schema catalog queries
for ``sqlite_master`` and the ``pragma_*`` table-valued functions.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from db_migrator.adapters.sql import SQLAdapter
from db_migrator.config.models import ValidationConfig
from db_migrator.dialects.postgres import PostgresDialect
from db_migrator.schema.introspector import SchemaIntrospector
from db_migrator.schema.models import Column, ForeignKey, Schema, Table
from db_migrator.schema.validator import ConstraintValidator


class SQLiteTestDialect(PostgresDialect):
    """PostgreSQL SQL with SQLite catalog queries."""

    name = "sqlite"

    def driver_name(self) -> str:
        return "sqlite"

    def build_connection_string(self, config) -> str:
        return "sqlite://"

    def connect_args(self) -> dict:
        return {}

    def tables_query(self) -> str:
        return """
            SELECT name AS table_name
            FROM sqlite_master
            WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
            ORDER BY name
        """

    def columns_query(self) -> str:
        return """
            SELECT
                name AS column_name,
                lower(type) AS data_type,
                dflt_value AS column_default,
                CASE WHEN "notnull" = 1 OR pk = 1 THEN 'NO' ELSE 'YES' END AS is_nullable,
                NULL AS character_maximum_length,
                NULL AS numeric_precision,
                NULL AS numeric_scale,
                NULL AS datetime_precision
            FROM pragma_table_info(:table_name)
            ORDER BY cid
        """

    def foreign_keys_query(self) -> str:
        return """
            SELECT
                'fk_' || :table_name || '_' || "from" AS constraint_name,
                :table_name AS table_name,
                "from" AS column_name,
                "table" AS referenced_table,
                "to" AS referenced_column,
                on_update AS update_rule,
                on_delete AS delete_rule
            FROM pragma_foreign_key_list(:table_name)
            ORDER BY id
        """

    def table_exists_query(self) -> str:
        return """
            SELECT 1 FROM sqlite_master
            WHERE type = 'table' AND name = :table_name
        """

    def column_exists_query(self) -> str:
        return """
            SELECT 1 FROM pragma_table_info(:table_name)
            WHERE name = :column_name
        """


# Foreign keys are declared but not enforced (SQLite default), so orphan
# rows can be inserted.
SETUP_SQL = [
    "CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT)",
    (
        "CREATE TABLE orders ("
        "id INTEGER PRIMARY KEY, "
        "customer_id INTEGER REFERENCES customers(id), "
        "note TEXT)"
    ),
    "INSERT INTO customers (id, name, email) VALUES (1, 'Ada', 'ada@example.com')",
    "INSERT INTO customers (id, name, email) VALUES (2, 'Grace', NULL)",
    "INSERT INTO orders (id, customer_id, note) VALUES (10, 1, 'first')",
    "INSERT INTO orders (id, customer_id, note) VALUES (11, 99, 'orphan')",
    "INSERT INTO orders (id, customer_id, note) VALUES (12, NULL, NULL)",
]


@pytest.fixture
def dialect():
    return SQLiteTestDialect()


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    adapter = SQLAdapter(engine)
    for statement in SETUP_SQL:
        adapter.execute(statement)
    yield adapter
    adapter.close()


@pytest.fixture
def introspector(client, dialect):
    return SchemaIntrospector(client, dialect)


@pytest.fixture
def validator(introspector):
    return ConstraintValidator(introspector, ValidationConfig())


@pytest.fixture
def orders_fk():
    return ForeignKey(
        constraint_name="orders_customer_id_fkey",
        table_name="orders",
        column_name="customer_id",
        referenced_table="customers",
        referenced_column="id",
    )


@pytest.fixture
def target_schema(orders_fk):
    """Target where orders.customer_id is a NOT NULL foreign key."""
    return Schema(
        [
            Table(
                table_name="customers",
                columns=[
                    Column(column_name="id", data_type="integer", is_nullable="NO"),
                    Column(column_name="name", data_type="text", is_nullable="NO"),
                    Column(column_name="email", data_type="text", is_nullable="YES"),
                ],
            ),
            Table(
                table_name="orders",
                columns=[
                    Column(column_name="id", data_type="integer", is_nullable="NO"),
                    Column(column_name="customer_id", data_type="integer", is_nullable="NO"),
                    Column(column_name="note", data_type="text", is_nullable="YES"),
                ],
                foreign_keys=[orders_fk],
            ),
        ]
    )
