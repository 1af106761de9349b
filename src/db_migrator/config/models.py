"""Pydantic models for connection and validation configuration."""

from pydantic import BaseModel, Field

from db_migrator.exceptions import ConfigError, ConnectionNotFoundError


# ============================================================================
# Connection Models
# ============================================================================


class DBConfig(BaseModel):
    """Resolved connection settings for one database."""

    type: str = "postgres"  # postgres | mysql
    host: str = ""
    port: int = 0
    username: str = ""
    password: str = ""
    database: str = ""
    sslmode: str | None = None  # PostgreSQL only


class NamedConnection(BaseModel):
    """A ``[connections.<name>]`` entry.  Empty fields fall back to the default."""

    type: str | None = None
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    database: str | None = None
    sslmode: str | None = None


# ============================================================================
# Validation Settings
# ============================================================================


class ValidationConfig(BaseModel):
    """Tunables for the constraint validator and fixer.

    Example:
        >>> ValidationConfig().max_issues_per_table
        1000
    """

    ignore_missing_tables: bool = False
    ignore_missing_columns: bool = False
    stop_on_first_error: bool = False
    max_issues_per_table: int = Field(default=1000, ge=1)


# ============================================================================
# Application Config
# ============================================================================


class AppConfig(BaseModel):
    """Complete configuration from the TOML file."""

    default: DBConfig = Field(default_factory=DBConfig)
    connections: dict[str, NamedConnection] = Field(default_factory=dict)
    schema_file: str = "schema.json"
    validation: ValidationConfig = Field(default_factory=ValidationConfig)

    def get_connection_config(self, name: str | None = None) -> DBConfig:
        """Resolve a connection by name.

        An empty name returns the default record.  A named connection is
        laid over a copy of the default: only the fields it sets (non-empty,
        non-zero) replace default values.

        Raises:
            ConnectionNotFoundError: If ``name`` is not defined.
        """
        if not name:
            return self.default.model_copy()

        if name not in self.connections:
            available = ", ".join(self.connections) or "(none)"
            raise ConnectionNotFoundError(
                f"connection '{name}' not found in configuration. "
                f"Available connections: {available}"
            )

        overrides = {
            key: value
            for key, value in self.connections[name].model_dump().items()
            if value
        }
        return self.default.model_copy(update=overrides)

    def ensure_valid(self) -> None:
        """Check the default connection has the fields every command needs.

        Raises:
            ConfigError: Listing every missing field.
        """
        missing = []
        if not self.default.host:
            missing.append("default database host is required")
        if self.default.port <= 0:
            missing.append("default database port must be greater than 0")
        if not self.default.username:
            missing.append("default database username is required")
        if not self.default.database:
            missing.append("default database name is required")

        if missing:
            raise ConfigError("Invalid configuration:\n  - " + "\n  - ".join(missing))
