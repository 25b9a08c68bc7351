"""
Integration tests for the CLI.

Tests cover:
- Version output
- The full row lifecycle against a SQLite file
- JSON output structure
- Value parsing for --value
- Error exit codes
- Configuration files
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from sheetstore import __version__
from sheetstore.backend import SqliteBackend
from sheetstore.cli import _parse_value, app

runner = CliRunner()


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def db(temp_dir: Path) -> Path:
    """Database file for CLI runs."""
    return temp_dir / "cli.db"


@pytest.fixture(autouse=True)
def cli_user(monkeypatch: pytest.MonkeyPatch) -> str:
    """Pin the identity the CLI stamps."""
    monkeypatch.setenv("SHEETSTORE_USER", "cli@example.com")
    return "cli@example.com"


def invoke(db: Path, *args: str):
    """Run the CLI against db in workbook crm."""
    return runner.invoke(app, [*args, "--db", str(db), "--workbook", "crm"])


def invoke_json(db: Path, *args: str) -> dict:
    """Run the CLI with --json and parse a successful report."""
    result = invoke(db, *args, "--json")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


# =============================================================================
# Tests
# =============================================================================


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestLifecycle:
    """Tests running every data command in sequence."""

    def test_create_read_update_delete_undo(self, db: Path) -> None:
        """Rows move through their whole lifecycle from the command line."""
        report = invoke_json(db, "create-sheet", "Contacts", "--column", "name")
        assert report["success"] is True
        assert report["data"] == "Contacts"

        report = invoke_json(db, "create", "Contacts", "--data", '{"name": "Ada"}')
        assert report["operation"] == "CREATE"
        (row_id,) = report["data"]
        created = report["data"][row_id]
        assert created["CreatedBy"] == "cli@example.com"
        assert created["Valid"] is True

        report = invoke_json(db, "read", "Contacts", "--column", "name", "--value", "Ada")
        assert list(report["data"]) == [row_id]

        report = invoke_json(db, "update", "Contacts", "--data", json.dumps({"ID": row_id, "name": "Ada L."}))
        assert report["data"][row_id]["name"] == "Ada L."
        assert report["data"][row_id]["DateCreated"] == created["DateCreated"]

        report = invoke_json(db, "delete", "Contacts", "--column", "ID", "--value", row_id)
        assert report["data"][row_id]["Valid"] is False
        assert invoke_json(db, "read", "Contacts")["data"] == {}

        report = invoke_json(db, "undo-delete", "Contacts", "--column", "ID", "--value", row_id)
        assert [r["name"] for r in report["data"]] == ["Ada L."]
        assert list(invoke_json(db, "read", "Contacts")["data"]) == [row_id]

    def test_clean(self, db: Path) -> None:
        """clean with zero retention removes deleted rows at once."""
        invoke_json(db, "create-sheet", "Contacts")
        (row_id,) = invoke_json(db, "create", "Contacts", "--data", '[{"n": 1}]')["data"]
        invoke_json(db, "delete", "Contacts", "--column", "ID", "--value", row_id)

        assert invoke_json(db, "clean", "Contacts")["data"] == 0
        assert invoke_json(db, "clean", "--retention-hours", "0")["data"] == 1

    def test_console_output(self, db: Path) -> None:
        """Without --json results are printed as a table."""
        invoke(db, "create-sheet", "Contacts")
        invoke(db, "create", "Contacts", "--data", '{"name": "Ada"}')
        result = invoke(db, "read", "Contacts")
        assert result.exit_code == 0
        assert "READ: 1 row(s)" in result.output

    def test_list_sheets(self, db: Path) -> None:
        """list-sheets reports each sheet with its row count."""
        invoke_json(db, "create-sheet", "Contacts")
        invoke_json(db, "create", "Contacts", "--data", '{"name": "Ada"}')
        invoke_json(db, "create-sheet", "Orders")

        result = invoke(db, "list-sheets", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "workbook": "crm",
            "sheets": [{"name": "Contacts", "rows": 2}, {"name": "Orders", "rows": 1}],
        }

    def test_list_sheets_empty(self, db: Path) -> None:
        """An empty workbook is reported as such."""
        result = invoke(db, "list-sheets")
        assert result.exit_code == 0
        assert "No sheets" in result.output


class TestValues:
    """Tests for --value parsing."""

    def test_numbers_match_numbers(self, db: Path) -> None:
        """--value 42 matches a numeric cell."""
        invoke_json(db, "create-sheet", "Contacts")
        (row_id,) = invoke_json(db, "create", "Contacts", "--data", '{"age": 42}')["data"]
        assert list(invoke_json(db, "read", "Contacts", "--column", "age", "--value", "42")["data"]) == [row_id]

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("42", 42),
            ("4.5", 4.5),
            ("true", True),
            ("Ada", "Ada"),
            ("", ""),
            ("[1, 2]", "[1, 2]"),
            ("key: value", "key: value"),
            ("TRUE", True),
            ("False", False),
            ("-7", -7),
            ("1e3", 1000.0),
            ("no", "no"),
            ("on", "on"),
            ("yes", "yes"),
            ("0123", "0123"),
            ("null", "null"),
            ("2024-03-01", "2024-03-01"),
        ],
    )
    def test_parse_value(self, text: str, expected: object) -> None:
        """Booleans and plain decimals are typed; everything else stays text."""
        assert _parse_value(text) == expected
        assert type(_parse_value(text)) is type(expected)

    def test_text_that_looks_like_yaml(self, db: Path) -> None:
        """--value no matches the text "no", and 0123 keeps its leading zero."""
        invoke_json(db, "create-sheet", "Contacts")
        created = invoke_json(db, "create", "Contacts", "--data", '[{"answer": "no"}, {"answer": "0123"}]')["data"]
        by_answer = {fields["answer"]: row_id for row_id, fields in created.items()}

        report = invoke_json(db, "read", "Contacts", "--column", "answer", "--value", "no")
        assert list(report["data"]) == [by_answer["no"]]
        report = invoke_json(db, "read", "Contacts", "--column", "answer", "--value", "0123")
        assert list(report["data"]) == [by_answer["0123"]]


class TestErrors:
    """Tests for error exit codes."""

    def test_delete_without_values(self, db: Path) -> None:
        """delete with no --value fails."""
        invoke_json(db, "create-sheet", "Contacts")
        result = invoke(db, "delete", "Contacts", "--column", "ID", "--json")
        assert result.exit_code == 1
        assert "EmptyValuesError" in result.output

    def test_missing_sheet(self, db: Path) -> None:
        """Writing to an unknown sheet fails."""
        result = invoke(db, "create", "Nope", "--data", '{"name": "Ada"}', "--json")
        assert result.exit_code == 1
        assert "SheetNotFoundError" in result.output

    def test_invalid_json_data(self, db: Path) -> None:
        """--data must be JSON."""
        result = invoke(db, "create", "Contacts", "--data", "{name: Ada")
        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_misformatted_sheet(self, db: Path) -> None:
        """A sheet without the reserved header is a fatal error."""
        with SqliteBackend(db) as backend:
            backend.open_workbook("crm").insert_sheet("Legacy").append_row(["name"])
        result = invoke(db, "create", "Legacy", "--data", '{"name": "Ada"}', "--json")
        assert result.exit_code == 1
        assert "SchemaError" in result.output

    def test_unknown_config_file(self, db: Path, temp_dir: Path) -> None:
        """A missing --config path is rejected."""
        result = runner.invoke(app, ["read", "Contacts", "--config", str(temp_dir / "absent.yaml")])
        assert result.exit_code != 0


class TestConfigFile:
    """Tests for --config."""

    def test_config_applied(self, temp_dir: Path) -> None:
        """Database, identity and ID prefixes come from the config file."""
        config_path = temp_dir / "sheetstore.yaml"
        config_path.write_text(
            f"database: {temp_dir / 'configured.db'}\n"
            "identity: robot@example.com\n"
            "id_prefixes:\n"
            "  Contacts: CON\n"
        )
        base = ["--config", str(config_path), "--workbook", "crm", "--json"]
        assert runner.invoke(app, ["create-sheet", "Contacts", *base]).exit_code == 0

        result = runner.invoke(app, ["create", "Contacts", "--data", '{"name": "Ada"}', *base])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)["data"]
        (row_id,) = data
        assert row_id.startswith("CON-")
        assert data[row_id]["CreatedBy"] == "robot@example.com"
        assert (temp_dir / "configured.db").exists()

    def test_invalid_config(self, temp_dir: Path) -> None:
        """Invalid configuration exits with an error."""
        config_path = temp_dir / "bad.yaml"
        config_path.write_text("id_length: 2\n")
        result = runner.invoke(app, ["read", "Contacts", "--config", str(config_path), "--json"])
        assert result.exit_code == 1
        assert "config_error" in result.output
