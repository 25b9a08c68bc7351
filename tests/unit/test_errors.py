"""
Unit tests for error hierarchy.

Tests cover:
- Base SheetStoreError behavior
- Coordination errors (lock timeout, unknown operation)
- Input errors and their codes
- Schema errors and the fatal flag
- Collection and storage errors
- Error serialization
"""

import pytest

from sheetstore.errors import (
    ERROR_COLUMN_NOT_FOUND,
    ERROR_EMPTY_VALUES,
    ERROR_INVALID_PARAMS,
    ERROR_INVALID_RECORD,
    ERROR_LOCK_TIMEOUT,
    ERROR_MALFORMED_ROW,
    ERROR_MISSING_INPUT,
    ERROR_SCHEMA_INVALID,
    ERROR_SHEET_EXISTS,
    ERROR_SHEET_NOT_FOUND,
    ERROR_STORAGE_CONNECTION,
    ERROR_STORAGE_WRITE,
    ERROR_UNKNOWN_OPERATION,
    ColumnNotFoundError,
    EmptyValuesError,
    InvalidInputError,
    InvalidParamsError,
    InvalidRecordError,
    LockTimeoutError,
    MalformedRowError,
    MissingInputError,
    SchemaError,
    SheetExistsError,
    SheetNotFoundError,
    SheetStoreError,
    StorageConnectionError,
    StorageError,
    StorageWriteError,
    UnknownOperationError,
)


class TestSheetStoreError:
    """Tests for base SheetStoreError."""

    def test_basic_error(self) -> None:
        """Create a basic error with message."""
        err = SheetStoreError(message="Something went wrong", code=9999)
        assert err.message == "Something went wrong"
        assert err.code == 9999
        assert err.suggestion is None
        assert err.context == {}

    def test_str_format(self) -> None:
        """String format includes code and message."""
        err = SheetStoreError(message="Test error", code=1234)
        assert str(err) == "[E1234] Test error"

    def test_str_includes_suggestion(self) -> None:
        """Suggestion is appended on its own line."""
        err = SheetStoreError(message="Failed", code=1, suggestion="Try again")
        assert "Suggestion: Try again" in str(err)

    def test_repr_format(self) -> None:
        """Repr includes class name and details."""
        err = SheetStoreError(message="Test", code=1)
        assert "SheetStoreError" in repr(err)
        assert "message='Test'" in repr(err)

    def test_to_dict(self) -> None:
        """Convert error to dictionary."""
        err = SheetStoreError(
            message="Test",
            code=1,
            suggestion="Try again",
            context={"foo": "bar"},
        )
        d = err.to_dict()
        assert d["error_type"] == "SheetStoreError"
        assert d["message"] == "Test"
        assert d["code"] == 1
        assert d["suggestion"] == "Try again"
        assert d["context"]["foo"] == "bar"

    def test_not_fatal_by_default(self) -> None:
        """Only schema errors escape the coordinator."""
        assert SheetStoreError.fatal is False

    def test_is_exception(self) -> None:
        """SheetStoreError is a proper exception."""
        with pytest.raises(SheetStoreError):
            raise SheetStoreError(message="Test", code=1)


class TestCoordinationErrors:
    """Tests for errors raised before the engine runs."""

    def test_lock_timeout(self) -> None:
        """Lock timeout names the operation and the wait."""
        err = LockTimeoutError(operation="CREATE", timeout_seconds=30.0)
        assert err.code == ERROR_LOCK_TIMEOUT
        assert "30s" in err.message
        assert "CREATE" in err.message
        assert err.context["timeout_seconds"] == 30.0
        assert err.suggestion

    def test_unknown_operation(self) -> None:
        """Unknown operation lists the valid names."""
        err = UnknownOperationError(operation="UPSERT")
        assert err.code == ERROR_UNKNOWN_OPERATION
        assert "UPSERT" in str(err)
        assert "UNDO_DELETE" in err.suggestion


class TestInputErrors:
    """Tests for rejected input."""

    def test_missing_input(self) -> None:
        """Missing input names the parameter."""
        err = MissingInputError(parameter="rows", operation="create", sheet="Contacts")
        assert err.code == ERROR_MISSING_INPUT
        assert "rows" in err.message
        assert err.context["sheet"] == "Contacts"
        assert err.context["parameter"] == "rows"

    def test_empty_values(self) -> None:
        """Empty values error mentions the operation."""
        err = EmptyValuesError(operation="delete", sheet="Contacts")
        assert err.code == ERROR_EMPTY_VALUES
        assert "delete" in err.message

    def test_column_not_found(self) -> None:
        """Missing column names column and sheet."""
        err = ColumnNotFoundError(column="phone", sheet="Contacts", operation="read")
        assert err.code == ERROR_COLUMN_NOT_FOUND
        assert err.message == "phone does not exist as a column name in Contacts"
        assert err.context["column"] == "phone"

    def test_invalid_record_with_index(self) -> None:
        """Invalid record reports its position in the batch."""
        err = InvalidRecordError(validation_error="bad", index=2)
        assert err.code == ERROR_INVALID_RECORD
        assert "position 2" in err.message
        assert err.context["index"] == 2

    def test_invalid_params(self) -> None:
        """Invalid params shows expected and actual shapes."""
        err = InvalidParamsError(operation="DELETE", expected="[column, values]", actual="1 value(s)")
        assert err.code == ERROR_INVALID_PARAMS
        assert "[column, values]" in err.message

    def test_subclasses_share_base(self) -> None:
        """All input errors can be caught together."""
        for err in (
            MissingInputError(),
            EmptyValuesError(),
            ColumnNotFoundError(),
            InvalidRecordError(),
            InvalidParamsError(),
        ):
            assert isinstance(err, InvalidInputError)

    def test_explicit_message_kept(self) -> None:
        """A caller-supplied message is not overwritten."""
        err = MissingInputError(parameter="ID", message="update requires the ID")
        assert err.message == "update requires the ID"
        assert err.code == ERROR_MISSING_INPUT


class TestSchemaErrors:
    """Tests for header and row errors."""

    def test_schema_error_is_fatal(self) -> None:
        """SchemaError escapes the coordinator."""
        err = SchemaError(sheet="Contacts", expected=["ID"], actual=["name"])
        assert err.fatal is True
        assert err.code == ERROR_SCHEMA_INVALID
        assert "formatted incorrectly" in err.message
        assert err.context["actual"] == ["name"]

    def test_malformed_row_not_fatal(self) -> None:
        """Malformed rows are skipped, not fatal."""
        err = MalformedRowError(sheet="Contacts", row_index=4, validation_error="Valid: bad")
        assert err.fatal is False
        assert err.code == ERROR_MALFORMED_ROW
        assert "4" in err.message


class TestCollectionErrors:
    """Tests for sheet lookup errors."""

    def test_sheet_not_found(self) -> None:
        """Sheet not found suggests creating it."""
        err = SheetNotFoundError(sheet="Orders", workbook="crm")
        assert err.code == ERROR_SHEET_NOT_FOUND
        assert "Orders" in err.message
        assert "CREATE_SHEET" in err.suggestion

    def test_sheet_exists(self) -> None:
        """Sheet exists names the workbook."""
        err = SheetExistsError(sheet="Orders", workbook="crm")
        assert err.code == ERROR_SHEET_EXISTS
        assert err.context["workbook"] == "crm"


class TestStorageErrors:
    """Tests for storage errors."""

    def test_connection_error(self) -> None:
        """Connection error includes the path."""
        err = StorageConnectionError(db_path="/nope/store.db", operation="connect")
        assert err.code == ERROR_STORAGE_CONNECTION
        assert err.context["db_path"] == "/nope/store.db"
        assert err.context["operation"] == "connect"
        assert isinstance(err, StorageError)

    def test_write_error(self) -> None:
        """Write error carries the underlying message."""
        err = StorageWriteError(operation="append_row", underlying_error="disk full")
        assert err.code == ERROR_STORAGE_WRITE
        assert "disk full" in err.message
