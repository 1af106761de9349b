"""Tests for the db-migrator CLI.

Commands run through ``main(argv)`` against the in-memory SQLite fixture
database: ``connect`` is patched to hand out the fixture connection, and
the config and schema files are written to a temp directory.

Verifies:
- Global options (--config, -c, -s, -f, -o) reach every command
- Exit codes: 0 on success, 1 on error issues, config or connection errors
- fix commands default to dry run and only write with --confirm
"""

import json
import textwrap
from contextlib import contextmanager
from unittest.mock import patch

import pytest

from db_migrator import __version__
from db_migrator.cli import build_parser, main
from db_migrator.exceptions import ConnectionFailedError
from db_migrator.factory import Database
from db_migrator.schema.loader import dump_schema

CONFIG_TOML = textwrap.dedent(
    """\
    [default]
    type = "postgres"
    host = "localhost"
    port = 5432
    username = "app"
    password = "secret"
    database = "shop"

    [connections.reporting]
    database = "reporting"
    """
)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "db-migrator.toml"
    path.write_text(CONFIG_TOML)
    return path


@pytest.fixture
def schema_path(tmp_path, target_schema):
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(dump_schema(target_schema)))
    return path


@pytest.fixture
def fake_connect(client, dialect, introspector):
    """Patch the CLI's connect() to yield the fixture database."""

    @contextmanager
    def _connect(config):
        yield Database(config=config, dialect=dialect, client=client, introspector=introspector)

    with patch("db_migrator.cli.connect", side_effect=_connect) as mock_connect:
        yield mock_connect


@pytest.fixture
def run(config_path, schema_path):
    """Run the CLI with --config and --schema pointing at temp files."""

    def _run(*argv):
        return main(["--config", str(config_path), "-s", str(schema_path), *argv])

    return _run


def _order_ids(client):
    return [row["id"] for row in client.fetch_all("SELECT id FROM orders ORDER BY id")]


# ------------------------------------------------------------------
# Parser
# ------------------------------------------------------------------


class TestParser:
    """Argument parsing."""

    def test_global_options(self):
        """Global options parse ahead of the command."""
        args = build_parser().parse_args(
            ["-c", "reporting", "-f", "yaml", "-o", "out.yaml", "-v", "validate", "fk"]
        )
        assert args.connection == "reporting"
        assert args.format == "yaml"
        assert args.output == "out.yaml"
        assert args.verbose
        assert args.check == "fk"

    def test_fix_flags_default_to_none(self):
        """Unset --dry-run/--confirm stay None so the mode resolver sees them as absent."""
        args = build_parser().parse_args(["fix", "fk", "--action", "remove"])
        assert args.dry_run is None
        assert args.confirm is None
        assert args.action == "remove"

    def test_action_is_required(self, capsys):
        """fix without --action is a usage error, not a silent remove."""
        for command in ("fk", "null"):
            with pytest.raises(SystemExit) as exc_info:
                build_parser().parse_args(["fix", command, "--confirm"])
            assert exc_info.value.code == 2
        assert "--action" in capsys.readouterr().err

    def test_invalid_action(self):
        """An unknown fix action is rejected by argparse."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["fix", "null", "--action", "set-null"])

    def test_max_issues_must_be_positive(self):
        """--max-issues below 1 is rejected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["validate", "all", "--max-issues", "0"])


# ------------------------------------------------------------------
# validate
# ------------------------------------------------------------------


class TestValidateCommand:
    """db-migrator validate."""

    def test_all_reports_errors(self, run, fake_connect, capsys):
        """The fixture data has errors, so the exit code is 1."""
        assert run("-f", "json", "validate", "all") == 1
        data = json.loads(capsys.readouterr().out)
        assert data["connection_name"] == "default"
        assert data["summary"]["error_count"] == 2

    def test_fk_only(self, run, fake_connect, capsys):
        """validate fk checks foreign keys only."""
        run("-f", "json", "validate", "fk")
        data = json.loads(capsys.readouterr().out)
        assert [issue["type"] for issue in data["issues"]] == ["foreign_key_violation"]

    def test_clean_database_exits_zero(self, run, fake_connect, client, capsys):
        """No error issues means exit 0."""
        client.execute("DELETE FROM orders WHERE id IN (11, 12)")
        assert run("validate", "null") == 0
        assert "No validation issues found!" in capsys.readouterr().out

    def test_output_file(self, run, fake_connect, tmp_path):
        """-o writes the report to a file."""
        out = tmp_path / "report.csv"
        run("-f", "csv", "-o", str(out), "validate", "all")
        assert out.read_text().startswith('"Severity","Type"')

    def test_named_connection(self, run, fake_connect):
        """-c resolves the named connection before connecting."""
        run("-c", "reporting", "validate", "fk")
        config = fake_connect.call_args.args[0]
        assert config.database == "reporting"
        assert config.host == "localhost"

    def test_missing_config(self, tmp_path, capsys):
        """A missing config file exits 1 with a message."""
        assert main(["--config", str(tmp_path / "none.toml"), "validate", "all"]) == 1
        assert "Configuration not found" in capsys.readouterr().err

    def test_unknown_connection(self, run, fake_connect, capsys):
        """An unknown -c name exits 1 without connecting."""
        assert run("-c", "staging", "validate", "all") == 1
        assert "staging" in capsys.readouterr().err
        fake_connect.assert_not_called()

    def test_connection_failure(self, run, capsys):
        """A connection failure exits 1 with the error."""
        with patch("db_migrator.cli.connect", side_effect=ConnectionFailedError("refused")):
            assert run("validate", "all") == 1
        assert "refused" in capsys.readouterr().err


# ------------------------------------------------------------------
# schema
# ------------------------------------------------------------------


class TestSchemaCommands:
    """db-migrator schema ..."""

    def test_validate_offline(self, run, capsys):
        """schema validate needs no database."""
        assert run("schema", "validate") == 0
        assert "No validation issues found!" in capsys.readouterr().out

    def test_info_json(self, run, capsys):
        """schema info summarizes the schema file."""
        assert run("-f", "json", "schema", "info") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["total_tables"] == 2
        assert data["total_foreign_keys"] == 1

    def test_compare(self, run, fake_connect, capsys):
        """schema compare diffs the live schema against the file."""
        assert run("-f", "json", "schema", "compare") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["missing_tables"] == []
        assert "customer_id" in data["table_differences"]["orders"]["modified_columns"]

    def test_compare_csv_unsupported(self, run, fake_connect, capsys):
        """Unsupported format combinations exit 1."""
        assert run("-f", "csv", "schema", "compare") == 1
        assert "unsupported output format" in capsys.readouterr().err

    def test_export_reloads(self, run, fake_connect, tmp_path, capsys):
        """An exported schema can be used as --schema."""
        out = tmp_path / "exported.json"
        assert run("-f", "json", "-o", str(out), "schema", "export") == 0
        assert main(["-s", str(out), "schema", "validate"]) == 0

    def test_snapshot(self, run, fake_connect, capsys):
        """schema snapshot lists tables with full types."""
        assert run("-f", "json", "schema", "snapshot") == 0
        data = json.loads(capsys.readouterr().out)
        assert [table["TableName"] for table in data] == ["customers", "orders"]


# ------------------------------------------------------------------
# connection
# ------------------------------------------------------------------


class TestConnectionCommands:
    """db-migrator connection ..."""

    def test_test(self, run, fake_connect, capsys):
        """connection test reports success and the table count."""
        assert run("connection", "test") == 0
        out = capsys.readouterr().out
        assert "Connection successful" in out
        assert "Tables: 2" in out

    def test_list(self, run, capsys):
        """connection list shows default and named connections."""
        assert run("connection", "list") == 0
        out = capsys.readouterr().out
        assert "default" in out
        assert "reporting" in out

    def test_info_masks_password(self, run, fake_connect, capsys):
        """connection info never prints the password."""
        assert run("connection", "info") == 0
        out = capsys.readouterr().out
        assert "secret" not in out
        assert "********" in out


# ------------------------------------------------------------------
# fix
# ------------------------------------------------------------------


class TestFixCommands:
    """db-migrator fix ..."""

    def test_default_is_dry_run(self, run, fake_connect, client, capsys):
        """Without --confirm nothing is written."""
        assert run("fix", "fk", "--action", "remove") == 0
        captured = capsys.readouterr()
        assert "dry run" in captured.out
        assert "--confirm" in captured.err
        assert _order_ids(client) == [10, 11, 12]

    def test_dry_run_beats_confirm(self, run, fake_connect, client):
        """--dry-run with --confirm is still a dry run."""
        run("fix", "fk", "--action", "remove", "--dry-run", "--confirm")
        assert _order_ids(client) == [10, 11, 12]

    def test_confirm_removes_orphans(self, run, fake_connect, client, capsys):
        """--confirm deletes the orphan order."""
        assert run("-f", "json", "fix", "fk", "--action", "remove", "--confirm") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["dry_run"] is False
        assert data["results"]["orders"]["records_affected"] == 1
        assert _order_ids(client) == [10, 12]

    def test_set_default(self, run, fake_connect, client):
        """fix null --action set-default fills in the value."""
        assert run("fix", "null", "--action", "set-default", "--default-value", "2", "--confirm") == 0
        assert client.fetch_scalar("SELECT customer_id FROM orders WHERE id = 12") == 2

    def test_set_default_requires_value(self, run, fake_connect, capsys):
        """set-default without --default-value exits 1."""
        assert run("fix", "null", "--action", "set-default", "--confirm") == 1
        assert "--default-value" in capsys.readouterr().err

    def test_set_default_checked_before_connecting(self, run, capsys):
        """A missing --default-value is reported without opening a connection."""
        with patch("db_migrator.cli.connect") as mock_connect:
            assert run("fix", "null", "--action", "set-default", "--confirm") == 1
        mock_connect.assert_not_called()
        err = capsys.readouterr().err
        assert "--default-value" in err
        assert "Connection failed" not in err


class TestVersion:
    """db-migrator version."""

    def test_version(self, capsys):
        """Prints the package version."""
        assert main(["version"]) == 0
        assert __version__ in capsys.readouterr().out
