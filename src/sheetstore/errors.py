"""
Exception hierarchy for sheetstore.

All sheetstore exceptions inherit from SheetStoreError, allowing callers to
catch every store-specific failure with a single except clause.

Exception Categories:
    - LockTimeoutError / UnknownOperationError: dispatch never reached the engine
    - InvalidInputError and subclasses: rejected before any backend mutation
    - SchemaError: reserved header missing or misordered (fatal)
    - MalformedRowError: a physical row could not be decoded (row is skipped)
    - SheetNotFoundError / SheetExistsError: collection lookup failures
    - StorageError and subclasses: the SQLite backend failed

Every error carries a numeric code for programmatic handling and a context
dict naming the operation, sheet and offending values.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Coordination errors: 1xxx
ERROR_LOCK_TIMEOUT = 1001
ERROR_UNKNOWN_OPERATION = 1002

# Input errors: 2xxx
ERROR_INVALID_INPUT = 2001
ERROR_MISSING_INPUT = 2002
ERROR_EMPTY_VALUES = 2003
ERROR_COLUMN_NOT_FOUND = 2004
ERROR_INVALID_RECORD = 2005
ERROR_INVALID_PARAMS = 2006

# Schema errors: 3xxx
ERROR_SCHEMA_INVALID = 3001
ERROR_MALFORMED_ROW = 3002

# Collection errors: 4xxx
ERROR_SHEET_NOT_FOUND = 4001
ERROR_SHEET_EXISTS = 4002

# Storage errors: 5xxx
ERROR_STORAGE_CONNECTION = 5001
ERROR_STORAGE_WRITE = 5002
ERROR_STORAGE_READ = 5003


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class SheetStoreError(Exception):
    """
    Base exception for all sheetstore errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    # Fatal errors escape the coordinator instead of becoming a failed result
    fatal = False

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Coordination Errors
# =============================================================================


@dataclass
class LockTimeoutError(SheetStoreError):
    """
    Raised when the global store lock could not be acquired in time.

    The operation was skipped entirely; nothing was written. Callers may
    re-invoke it, the store never retries on its own.

    Attributes:
        operation: Name of the operation that was abandoned
        timeout_seconds: How long the caller waited
    """

    operation: str = ""
    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Timed out after {self.timeout_seconds:g}s waiting for the store lock"
                + (f" ({self.operation})" if self.operation else "")
            )
        if self.code == 0:
            self.code = ERROR_LOCK_TIMEOUT
        if not self.suggestion:
            self.suggestion = "Retry once the competing operation has finished"
        self.context.update({
            "operation": self.operation,
            "timeout_seconds": self.timeout_seconds,
        })


@dataclass
class UnknownOperationError(SheetStoreError):
    """Raised when dispatch is asked for an operation it does not know."""

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown operation: {self.operation}"
        if self.code == 0:
            self.code = ERROR_UNKNOWN_OPERATION
        if not self.suggestion:
            self.suggestion = (
                "Use one of CREATE_SHEET, CLEAN_SHEET, CREATE, READ, UPDATE, "
                "DELETE, UNDO_DELETE"
            )
        self.context["operation"] = self.operation


# =============================================================================
# Input Errors
# =============================================================================


@dataclass
class InvalidInputError(SheetStoreError):
    """
    Base class for rejected input.

    These are always detected before the backend is touched, so a caller
    seeing one knows the sheet is unchanged.

    Attributes:
        operation: The engine operation that rejected the input
        sheet: Name of the sheet being accessed
    """

    operation: str = ""
    sheet: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid input for {self.operation or 'operation'}"
        if self.code == 0:
            self.code = ERROR_INVALID_INPUT
        self.context.update({
            "operation": self.operation,
            "sheet": self.sheet,
        })


@dataclass
class MissingInputError(InvalidInputError):
    """Raised when a required parameter is None or absent."""

    parameter: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Missing required input: {self.parameter}"
        if self.code == 0:
            self.code = ERROR_MISSING_INPUT
        super().__post_init__()
        self.context["parameter"] = self.parameter


@dataclass
class EmptyValuesError(InvalidInputError):
    """Raised when an operation needs at least one match value and got none."""

    parameter: str = "values"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.operation or 'Operation'} requires a non-empty {self.parameter} list"
        if self.code == 0:
            self.code = ERROR_EMPTY_VALUES
        super().__post_init__()
        self.context["parameter"] = self.parameter


@dataclass
class ColumnNotFoundError(InvalidInputError):
    """Raised when a column name is not present in the sheet header."""

    column: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.column} does not exist as a column name in {self.sheet or 'the sheet'}"
        if self.code == 0:
            self.code = ERROR_COLUMN_NOT_FOUND
        super().__post_init__()
        self.context["column"] = self.column


@dataclass
class InvalidRecordError(InvalidInputError):
    """Raised when a field map cannot be turned into a Record."""

    validation_error: str = ""
    index: int | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            where = f" at position {self.index}" if self.index is not None else ""
            self.message = f"Invalid record{where}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_INVALID_RECORD
        super().__post_init__()
        self.context.update({
            "validation_error": self.validation_error,
            "index": self.index,
        })


@dataclass
class InvalidParamsError(InvalidInputError):
    """Raised when the dispatch params list does not fit the operation."""

    expected: str = ""
    actual: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.operation} expects params {self.expected}, got {self.actual}"
        if self.code == 0:
            self.code = ERROR_INVALID_PARAMS
        super().__post_init__()
        self.context.update({
            "expected": self.expected,
            "actual": self.actual,
        })


# =============================================================================
# Schema Errors
# =============================================================================


@dataclass
class SchemaError(SheetStoreError):
    """
    Raised when a non-empty sheet lacks the reserved header.

    This is a configuration problem with the sheet, not a retryable
    condition. It is the one error the coordinator lets escape.

    Attributes:
        sheet: Name of the offending sheet
        expected: The reserved header that was required
        actual: The header cells actually found
    """

    sheet: str = ""
    expected: list[str] = field(default_factory=list)
    actual: list[Any] = field(default_factory=list)

    fatal = True

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Sheet {self.sheet} is formatted incorrectly"
        if self.code == 0:
            self.code = ERROR_SCHEMA_INVALID
        if not self.suggestion:
            self.suggestion = (
                "The first six header cells must be "
                "ID, CreatedBy, ModifiedBy, DateCreated, DateModified, Valid"
            )
        self.context.update({
            "sheet": self.sheet,
            "expected": self.expected,
            "actual": self.actual,
        })


@dataclass
class MalformedRowError(SheetStoreError):
    """Raised when a physical row holds values its reserved columns cannot hold."""

    sheet: str = ""
    row_index: int | None = None
    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            where = f" {self.row_index}" if self.row_index is not None else ""
            self.message = f"Malformed row{where} in {self.sheet or 'sheet'}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_MALFORMED_ROW
        self.context.update({
            "sheet": self.sheet,
            "row_index": self.row_index,
            "validation_error": self.validation_error,
        })


# =============================================================================
# Collection Errors
# =============================================================================


@dataclass
class SheetNotFoundError(SheetStoreError):
    """Raised when a workbook has no sheet with the requested name."""

    sheet: str = ""
    workbook: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Sheet not found: {self.sheet} (workbook {self.workbook})"
        if self.code == 0:
            self.code = ERROR_SHEET_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Create it first with CREATE_SHEET"
        self.context.update({
            "sheet": self.sheet,
            "workbook": self.workbook,
        })


@dataclass
class SheetExistsError(SheetStoreError):
    """Raised when CREATE_SHEET names a sheet that already exists."""

    sheet: str = ""
    workbook: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Sheet already exists: {self.sheet} (workbook {self.workbook})"
        if self.code == 0:
            self.code = ERROR_SHEET_EXISTS
        self.context.update({
            "sheet": self.sheet,
            "workbook": self.workbook,
        })


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(SheetStoreError):
    """
    Base class for storage/database errors.

    Attributes:
        operation: The backend call that failed (e.g., "append_row")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StorageConnectionError(StorageError):
    """Raised when database connection fails."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to database: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when a write operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when a read operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error
