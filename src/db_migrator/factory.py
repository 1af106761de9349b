"""Database connection factory.

Turns a resolved ``DBConfig`` into a live, pinged connection bundle:
dialect, adapter, and introspector.  The bundle is only available inside
``connect()``; the engine is disposed on every exit path.

Usage:
    from db_migrator.config import load_config
    from db_migrator.factory import connect

    config = load_config()
    with connect(config.get_connection_config("reporting")) as db:
        schema = db.introspector.get_current_schema()
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from db_migrator.adapters.sql import SQLAdapter, create_engine_pooled
from db_migrator.config.models import DBConfig
from db_migrator.dialects import Dialect, get_dialect
from db_migrator.exceptions import ConnectionFailedError
from db_migrator.schema.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)


@dataclass
class Database:
    """An open database connection and the objects bound to it."""

    config: DBConfig
    dialect: Dialect
    client: SQLAdapter
    introspector: SchemaIntrospector


def describe(config: DBConfig) -> str:
    """``type://user@host:port/database`` without the password."""
    return (
        f"{config.type or 'postgres'}://{config.username}@"
        f"{config.host}:{config.port}/{config.database}"
    )


@contextmanager
def connect(config: DBConfig) -> Iterator[Database]:
    """Open, ping, and yield a database connection.

    The dialect is resolved before any I/O, so an unsupported type fails
    without touching the network.

    Args:
        config: Resolved connection settings.

    Yields:
        ``Database`` bundle.

    Raises:
        UnsupportedDialectError: If ``config.type`` has no dialect.
        ConnectionFailedError: If the database cannot be reached.
    """
    dialect = get_dialect(config.type)
    try:
        engine = create_engine_pooled(
            dialect.build_connection_string(config),
            connect_args=dialect.connect_args(),
        )
    except (SQLAlchemyError, ImportError) as e:
        # missing driver or unusable URL
        raise ConnectionFailedError(
            f"failed to create engine for {describe(config)}: {e}"
        ) from e
    client = SQLAdapter(engine)

    try:
        try:
            client.test_connection()
        except SQLAlchemyError as e:
            raise ConnectionFailedError(
                f"failed to connect to {describe(config)}: {e}"
            ) from e

        logger.info("Connected to %s", describe(config))
        yield Database(
            config=config,
            dialect=dialect,
            client=client,
            introspector=SchemaIntrospector(client, dialect),
        )
    finally:
        client.close()
        logger.debug("Closed connection to %s", describe(config))
