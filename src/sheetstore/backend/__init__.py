"""
Tabular backends for sheetstore.

The row store never talks to storage directly; it works on Sheet handles
obtained from a Backend. Two backends ship with the package:

    - memory: process-local grids, for tests and embedding
    - sqlite: one SQLite file holding every workbook

Architecture:
    - Backend: resolves a workbook reference to a Workbook handle
    - Workbook: named group of sheets (insert / look up by name)
    - Sheet: growable grid of cells with whole-row and whole-grid writes
"""

from sheetstore.backend.base import Backend, Cell, Sheet, Workbook, is_blank
from sheetstore.backend.memory import MemoryBackend, MemorySheet, MemoryWorkbook
from sheetstore.backend.sqlite import SqliteBackend, SqliteSheet, SqliteWorkbook
from sheetstore.schema import BackendKind, StoreConfig


def open_backend(config: StoreConfig) -> Backend:
    """
    Open the backend named by the configuration.

    Args:
        config: Store configuration

    Returns:
        A ready-to-use Backend
    """
    if config.backend == BackendKind.MEMORY:
        return MemoryBackend()
    return SqliteBackend(config.database)


__all__ = [
    "Backend",
    "Cell",
    "MemoryBackend",
    "MemorySheet",
    "MemoryWorkbook",
    "Sheet",
    "SqliteBackend",
    "SqliteSheet",
    "SqliteWorkbook",
    "Workbook",
    "is_blank",
    "open_backend",
]
