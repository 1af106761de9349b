"""Tests for the connection factory and the SQLAlchemy adapter.

Verifies:
- ``connect()`` resolves the dialect before any I/O, pings, yields a
  bound ``Database``, and always disposes the engine
- ``create_engine_pooled()`` defaults and overrides
- ``SQLAdapter`` query helpers and value serialization
"""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import NoSuchModuleError, OperationalError

from db_migrator.adapters.sql import SQLAdapter, create_engine_pooled
from db_migrator.config.models import DBConfig
from db_migrator.dialects import MySQLDialect, PostgresDialect
from db_migrator.exceptions import ConnectionFailedError, UnsupportedDialectError
from db_migrator.factory import connect, describe


@pytest.fixture
def db_config():
    return DBConfig(host="db", port=5432, username="app", password="pw", database="shop")


# ------------------------------------------------------------------
# connect()
# ------------------------------------------------------------------


class TestConnect:
    """Opening and closing connections."""

    def test_yields_bound_database(self, db_config):
        """The yielded bundle shares one client and dialect."""
        engine = create_engine("sqlite://")
        with patch("db_migrator.factory.create_engine_pooled", return_value=engine) as mock_create:
            with connect(db_config) as db:
                assert isinstance(db.dialect, PostgresDialect)
                assert db.introspector.client is db.client
                assert db.client.engine is engine
                assert db.config is db_config

        url = mock_create.call_args.args[0]
        assert url.startswith("postgresql+psycopg://app:pw@db:5432/shop")
        assert mock_create.call_args.kwargs["connect_args"] == {"connect_timeout": 10}

    def test_mysql_dialect(self, db_config):
        """type = mysql selects the MySQL dialect."""
        config = db_config.model_copy(update={"type": "mysql", "port": 3306})
        with patch("db_migrator.factory.create_engine_pooled", return_value=create_engine("sqlite://")):
            with connect(config) as db:
                assert isinstance(db.dialect, MySQLDialect)

    def test_unsupported_type_before_io(self, db_config):
        """An unknown type fails without creating an engine."""
        config = db_config.model_copy(update={"type": "oracle"})
        with patch("db_migrator.factory.create_engine_pooled") as mock_create:
            with pytest.raises(UnsupportedDialectError):
                with connect(config):
                    pass
        mock_create.assert_not_called()

    def test_ping_failure(self, db_config):
        """A failed ping raises ConnectionFailedError and disposes the engine."""
        engine = MagicMock()
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
        with patch("db_migrator.factory.create_engine_pooled", return_value=engine):
            with pytest.raises(ConnectionFailedError, match="db:5432/shop"):
                with connect(db_config):
                    pass
        engine.dispose.assert_called_once()

    def test_engine_creation_failure(self, db_config):
        """A missing driver surfaces as ConnectionFailedError."""
        error = NoSuchModuleError("Can't load plugin: sqlalchemy.dialects:postgresql.psycopg")
        with patch("db_migrator.factory.create_engine_pooled", side_effect=error):
            with pytest.raises(ConnectionFailedError, match="failed to create engine"):
                with connect(db_config):
                    pass

    def test_disposed_on_error_inside_block(self, db_config):
        """Errors in the caller's block still dispose the engine."""
        engine = MagicMock()
        with patch("db_migrator.factory.create_engine_pooled", return_value=engine):
            with pytest.raises(RuntimeError):
                with connect(db_config):
                    raise RuntimeError("boom")
        engine.dispose.assert_called_once()

    def test_describe_hides_password(self, db_config):
        """describe() never includes the password."""
        assert describe(db_config) == "postgres://app@db:5432/shop"


# ------------------------------------------------------------------
# Adapter
# ------------------------------------------------------------------


class TestCreateEnginePooled:
    """Engine creation defaults."""

    def test_defaults_and_overrides(self):
        """Pool defaults apply; caller kwargs win."""
        with patch("db_migrator.adapters.sql.create_engine") as mock_create:
            create_engine_pooled("postgresql+psycopg://u@h/d", pool_size=2, connect_args={"x": 1})

        kwargs = mock_create.call_args.kwargs
        assert kwargs["pool_size"] == 2
        assert kwargs["pool_pre_ping"] is True
        assert kwargs["pool_recycle"] == 300
        assert kwargs["connect_args"] == {"x": 1}


class TestSQLAdapter:
    """Query helpers over a real engine."""

    def test_fetch_all_returns_dicts(self, client):
        """Rows come back as dicts keyed by column name."""
        rows = client.fetch_all("SELECT id, name FROM customers WHERE id = :id", {"id": 1})
        assert rows == [{"id": 1, "name": "Ada"}]

    def test_fetch_scalar(self, client):
        """First column of the first row."""
        assert client.fetch_scalar("SELECT COUNT(*) FROM orders") == 3

    def test_execute_commits_and_returns_rowcount(self, client):
        """execute() commits and reports affected rows."""
        assert client.execute("UPDATE orders SET note = 'x' WHERE note IS NULL") == 1
        assert client.fetch_scalar("SELECT note FROM orders WHERE id = 12") == "x"

    def test_test_connection(self, client):
        """SELECT 1 succeeds on a live engine."""
        assert client.test_connection() is True

    def test_serialize_value(self):
        """Driver types become JSON-friendly values."""
        adapter = SQLAdapter(MagicMock())
        uid = UUID("12345678-1234-5678-1234-567812345678")
        assert adapter._serialize_value(uid) == str(uid)
        assert adapter._serialize_value(Decimal("1.50")) == "1.50"
        assert adapter._serialize_value(date(2024, 1, 2)) == "2024-01-02"
        assert adapter._serialize_value(datetime(2024, 1, 2, 3, 4)) == "2024-01-02T03:04:00"
        assert adapter._serialize_value(b"orders") == "orders"
        assert adapter._serialize_value(7) == 7
