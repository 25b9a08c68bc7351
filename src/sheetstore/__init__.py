"""
sheetstore - Versioned, soft-delete row store over sheet-like grids.

Each sheet is a table whose header row is its schema. Rows carry an ID,
audit columns (CreatedBy, ModifiedBy, DateCreated, DateModified) and a
Valid flag. Updates append a new version and retire the old one, deletes
only clear the flag, and a compactor removes retired rows once they age
past a retention window.

Example usage:
    from sheetstore import AccessCoordinator, MemoryBackend

    coordinator = AccessCoordinator(MemoryBackend())
    coordinator.dispatch("CREATE_SHEET", "crm", "Contacts", [["name"]])
    created = coordinator.dispatch("CREATE", "crm", "Contacts", [[{"name": "Ada"}]]).unwrap()

    $ sheetstore create-sheet Contacts --column name
    $ sheetstore create Contacts --data '{"name": "Ada"}'
"""

__version__ = "0.1.0"
__author__ = "sheetstore Contributors"

from sheetstore.backend import Backend, MemoryBackend, Sheet, SqliteBackend, Workbook, open_backend
from sheetstore.compactor import compact, compact_workbook, compact_workbooks
from sheetstore.context import OperationContext
from sheetstore.coordinator import AccessCoordinator, OperationResult
from sheetstore.crud import RowStore
from sheetstore.errors import SheetStoreError
from sheetstore.schema import Operation, Record, StoreConfig, load_config
from sheetstore.sheets import create_collection

__all__ = [
    "__version__",
    "__author__",
    "AccessCoordinator",
    "Backend",
    "MemoryBackend",
    "Operation",
    "OperationContext",
    "OperationResult",
    "Record",
    "RowStore",
    "Sheet",
    "SheetStoreError",
    "SqliteBackend",
    "StoreConfig",
    "Workbook",
    "compact",
    "compact_workbook",
    "compact_workbooks",
    "create_collection",
    "load_config",
    "open_backend",
]
