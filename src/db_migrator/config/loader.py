"""TOML configuration loader.

Reads connection records, the target schema path, and validation tunables
from a ``db-migrator.toml`` file.

Example file::

    [default]
    type = "postgres"
    host = "localhost"
    port = 5432
    username = "app"
    password = "secret"
    database = "app"

    [connections.reporting]
    database = "reporting"

    [schema]
    file = "schema.json"

    [validation]
    ignore_missing_tables = false
    max_issues_per_table = 1000
"""

import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from db_migrator.config.models import AppConfig
from db_migrator.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "db-migrator.toml"


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the config file (default: ``./db-migrator.toml``).

    Returns:
        AppConfig with the default connection, named connections, schema
        file path, and validation settings.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigError: If the file is not valid TOML or a value has the
            wrong type.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_FILE} or pass --config."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {config_path.name}: {e}") from e

    schema_settings = data.get("schema", {})

    try:
        config = AppConfig(
            default=data.get("default", {}),
            connections=data.get("connections", {}),
            schema_file=schema_settings.get("file", "schema.json"),
            validation=data.get("validation", {}),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path.name}:\n{e}") from e

    logger.debug(
        "Loaded %s with %d named connection(s)", config_path, len(config.connections)
    )
    return config
