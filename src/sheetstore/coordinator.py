"""
Access coordinator: the single entry point for store operations.

Every operation is dispatched by name and runs entirely inside the global
store lock, so concurrent callers never interleave partial writes.

Dispatch flow:
    1. Resolve the operation name and check the params list
    2. Acquire the store lock (bounded wait; timeout skips the operation)
    3. Resolve the workbook and sheet at the backend boundary
    4. Run the handler and release the lock
    5. Wrap the outcome in an OperationResult

Design Decisions:
    - Expected failures come back as OperationResult.fail(); nothing is
      retried by the coordinator
    - SchemaError is the exception: a misformatted sheet is a
      configuration fault and propagates to the caller once the lock
      is released
    - Unexpected exceptions propagate unchanged
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from sheetstore import compactor
from sheetstore.backend.base import Backend, Sheet
from sheetstore.context import OperationContext
from sheetstore.crud import RowStore
from sheetstore.errors import InvalidParamsError, SheetStoreError, UnknownOperationError
from sheetstore.lock import DEFAULT_LOCK_TIMEOUT, StoreLock, default_lock
from sheetstore.schema import Operation, StoreConfig
from sheetstore.sheets import create_collection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a dispatched operation.

    Attributes:
        success: Whether the operation completed
        data: The operation's return value
        error: The failure if success is False
        metadata: Operation name and location of the call
    """

    success: bool
    data: Any = None
    error: SheetStoreError | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any, **metadata: Any) -> "OperationResult":
        """Create a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: SheetStoreError, **metadata: Any) -> "OperationResult":
        """Create a failed result."""
        return cls(success=False, error=error, metadata=metadata)

    def unwrap(self) -> Any:
        """Return data, raising the recorded error if the operation failed."""
        if not self.success and self.error is not None:
            raise self.error
        return self.data


# Accepted params length per operation: (min, max, description)
PARAM_SPECS: dict[Operation, tuple[int, int, str]] = {
    Operation.CREATE_SHEET: (0, 1, "[extra_columns]"),
    Operation.CLEAN_SHEET: (0, 0, "[]"),
    Operation.CREATE: (1, 1, "[rows]"),
    Operation.READ: (1, 2, "[column, values]"),
    Operation.UPDATE: (1, 1, "[fields]"),
    Operation.DELETE: (2, 2, "[column, values]"),
    Operation.UNDO_DELETE: (2, 2, "[column, values]"),
}


def parse_operation(name: str | Operation) -> Operation:
    """
    Resolve an operation name.

    Raises:
        UnknownOperationError: If name is not a known operation
    """
    if isinstance(name, Operation):
        return name
    try:
        return Operation(name)
    except ValueError:
        raise UnknownOperationError(operation=str(name)) from None


def check_params(operation: Operation, params: Sequence[Any] | None) -> list[Any]:
    """
    Validate the params list for an operation.

    Returns:
        The params as a list (None becomes an empty list)

    Raises:
        InvalidParamsError: If params is not a list or has the wrong length
    """
    minimum, maximum, expected = PARAM_SPECS[operation]
    if params is None:
        params = []
    if isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
        raise InvalidParamsError(
            operation=operation.value,
            expected=expected,
            actual=type(params).__name__,
        )
    if not minimum <= len(params) <= maximum:
        raise InvalidParamsError(
            operation=operation.value,
            expected=expected,
            actual=f"{len(params)} value(s)",
        )
    return list(params)


class AccessCoordinator:
    """
    Serializes store operations over one backend.

    Usage:
        coordinator = AccessCoordinator(SqliteBackend("store.db"))
        result = coordinator.dispatch("CREATE", "crm", "Contacts", [[{"name": "Ada"}]])
        if result.success:
            print(result.data)

    Attributes:
        backend: Backend resolving workbook references
        store: Row-store engine
        lock: Lock shared with every other coordinator in the process
        lock_timeout: Seconds to wait for the lock
        retention: Age after which CLEAN_SHEET drops invalid rows
    """

    def __init__(
        self,
        backend: Backend,
        store: RowStore | None = None,
        lock: StoreLock | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        retention: timedelta = compactor.DEFAULT_RETENTION,
    ) -> None:
        self.backend = backend
        self.store = store or RowStore()
        self.lock = lock or default_lock
        self.lock_timeout = lock_timeout
        self.retention = retention
        self._handlers: dict[Operation, Callable[..., Any]] = {
            Operation.CREATE_SHEET: self._create_sheet,
            Operation.CLEAN_SHEET: self._clean_sheet,
            Operation.CREATE: self._create,
            Operation.READ: self._read,
            Operation.UPDATE: self._update,
            Operation.DELETE: self._delete,
            Operation.UNDO_DELETE: self._undo_delete,
        }

    @classmethod
    def from_config(
        cls,
        config: StoreConfig,
        backend: Backend,
        lock: StoreLock | None = None,
    ) -> "AccessCoordinator":
        """Build a coordinator honoring the configured timeouts, identity and IDs."""
        return cls(
            backend,
            store=RowStore(OperationContext.from_config(config)),
            lock=lock,
            lock_timeout=config.lock_timeout_seconds,
            retention=timedelta(hours=config.retention_hours),
        )

    def dispatch(
        self,
        operation: str | Operation,
        workbook_ref: str,
        sheet_name: str,
        params: Sequence[Any] | None = None,
    ) -> OperationResult:
        """
        Run one operation under the store lock.

        Args:
            operation: Operation name (CREATE_SHEET, CLEAN_SHEET, CREATE,
                READ, UPDATE, DELETE, UNDO_DELETE)
            workbook_ref: Workbook reference, resolved by the backend
            sheet_name: Target sheet (CLEAN_SHEET: empty means every sheet)
            params: Operation-specific positional arguments

        Returns:
            OperationResult with the operation's return value or its error

        Raises:
            SchemaError: If the target sheet lacks the reserved header
        """
        try:
            op = parse_operation(operation)
            args = check_params(op, params)
        except SheetStoreError as e:
            logger.warning(f"Rejected call to {operation}: {e.message}")
            return OperationResult.fail(e, operation=str(operation))

        metadata = {"operation": op.value, "workbook": workbook_ref, "sheet": sheet_name}
        logger.debug(f"Dispatching {op.value} on {workbook_ref}/{sheet_name}")
        try:
            with self.lock.hold(self.lock_timeout, operation=op.value):
                data = self._handlers[op](workbook_ref, sheet_name, *args)
        except SheetStoreError as e:
            if e.fatal:
                raise
            logger.warning(f"{op.value} on {workbook_ref}/{sheet_name} failed: {e.message}")
            return OperationResult.fail(e, **metadata)
        return OperationResult.ok(data, **metadata)

    # =========================================================================
    # Handlers (called with the lock held)
    # =========================================================================

    def _sheet(self, workbook_ref: str, sheet_name: str) -> Sheet:
        return self.backend.open_workbook(workbook_ref).get_sheet(sheet_name)

    def _create_sheet(self, workbook_ref: str, sheet_name: str, extra_columns: Sequence[str] | None = None) -> str:
        workbook = self.backend.open_workbook(workbook_ref)
        return create_collection(workbook, sheet_name, extra_columns)

    def _clean_sheet(self, workbook_ref: str, sheet_name: str) -> int:
        workbook = self.backend.open_workbook(workbook_ref)
        now = self.store.context.clock()
        if sheet_name:
            return compactor.compact([workbook.get_sheet(sheet_name)], retention=self.retention, now=now)
        return compactor.compact_workbook(workbook, retention=self.retention, now=now)

    def _create(self, workbook_ref: str, sheet_name: str, rows: Any) -> Any:
        return self.store.create(self._sheet(workbook_ref, sheet_name), rows)

    def _read(self, workbook_ref: str, sheet_name: str, column: str, values: Any = None) -> Any:
        return self.store.read(self._sheet(workbook_ref, sheet_name), column, values)

    def _update(self, workbook_ref: str, sheet_name: str, fields: Any) -> Any:
        return self.store.update(self._sheet(workbook_ref, sheet_name), fields)

    def _delete(self, workbook_ref: str, sheet_name: str, column: str, values: Any) -> Any:
        return self.store.delete(self._sheet(workbook_ref, sheet_name), column, values)

    def _undo_delete(self, workbook_ref: str, sheet_name: str, column: str, values: Any) -> Any:
        return self.store.undo_delete(self._sheet(workbook_ref, sheet_name), column, values)
