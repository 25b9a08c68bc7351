"""
Base classes for the tabular backend.

This module defines the grid abstraction the row store is built on:
- Sheet: an ordered, growable grid of cells addressed by row and column
- Workbook: a named group of sheets
- Backend: resolves workbook references to Workbook handles

Conventions:
    - Rows and columns are 0-indexed; row 0 is the header
    - The data range is height x width, where width is the longest row
    - A blank cell is None or the empty string; get_values() pads with None
    - Backends do no typing and no locking; the coordinator serializes access
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

Cell = Any


def is_blank(value: Cell) -> bool:
    """Whether a cell value counts as empty."""
    return value is None or (isinstance(value, str) and value == "")


class Sheet(ABC):
    """
    Abstract grid of cells.

    Subclasses must implement the storage primitives; the helpers in this
    class are written in terms of them.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The sheet's name within its workbook."""
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        """Number of physical rows, header included."""
        ...

    @property
    @abstractmethod
    def width(self) -> int:
        """Number of columns in the data range."""
        ...

    @abstractmethod
    def get_values(self) -> list[list[Cell]]:
        """
        Return a rectangular copy of the data range.

        Mutating the returned lists never changes the sheet.
        """
        ...

    @abstractmethod
    def set_cell(self, row: int, col: int, value: Cell) -> None:
        """Write one cell, growing the grid if needed."""
        ...

    @abstractmethod
    def append_row(self, values: Sequence[Cell]) -> int:
        """Append a row after the last one and return its index."""
        ...

    @abstractmethod
    def insert_column(self, index: int) -> None:
        """Insert a blank column at index, shifting later cells right."""
        ...

    @abstractmethod
    def update_rows(self, rows: Mapping[int, Sequence[Cell]]) -> None:
        """Overwrite whole existing rows, keyed by row index."""
        ...

    @abstractmethod
    def replace_values(self, values: Sequence[Sequence[Cell]]) -> None:
        """Clear all contents and write values starting at the top-left cell."""
        ...

    @abstractmethod
    def format_header(self) -> None:
        """Freeze and embolden the header row. Presentation only."""
        ...

    def get_row(self, index: int) -> list[Cell]:
        """Return one row padded to the sheet width (empty if out of range)."""
        values = self.get_values()
        if 0 <= index < len(values):
            return values[index]
        return []

    def get_header(self) -> list[Cell]:
        """Return the header row."""
        return self.get_row(0)

    def clear(self) -> None:
        """Remove every cell's contents."""
        self.replace_values([])

    def is_empty(self) -> bool:
        """Whether every cell in the sheet is blank."""
        return all(is_blank(cell) for row in self.get_values() for cell in row)

    def __repr__(self) -> str:
        """String representation of the sheet."""
        return f"<{self.__class__.__name__}: {self.name} ({self.height}x{self.width})>"


class Workbook(ABC):
    """A named group of sheets."""

    @property
    @abstractmethod
    def workbook_id(self) -> str:
        """Reference this workbook was opened with."""
        ...

    @abstractmethod
    def get_sheet(self, name: str) -> Sheet:
        """
        Look up a sheet by name.

        Raises:
            SheetNotFoundError: If the workbook has no such sheet
        """
        ...

    @abstractmethod
    def insert_sheet(self, name: str) -> Sheet:
        """
        Create a new empty sheet.

        Raises:
            SheetExistsError: If a sheet with that name already exists
        """
        ...

    @abstractmethod
    def sheet_names(self) -> list[str]:
        """Names of all sheets in creation order."""
        ...

    def has_sheet(self, name: str) -> bool:
        """Whether a sheet with that name exists."""
        return name in self.sheet_names()

    def sheets(self) -> list[Sheet]:
        """All sheets in creation order."""
        return [self.get_sheet(name) for name in self.sheet_names()]

    def __repr__(self) -> str:
        """String representation of the workbook."""
        return f"<{self.__class__.__name__}: {self.workbook_id}>"


class Backend(ABC):
    """
    Resolves workbook references to handles.

    Usage:
        with SqliteBackend("store.db") as backend:
            sheet = backend.open_workbook("crm").get_sheet("clients")
    """

    @abstractmethod
    def open_workbook(self, ref: str) -> Workbook:
        """Return the workbook for ref, creating an empty one on first use."""
        ...

    @abstractmethod
    def workbook_ids(self) -> list[str]:
        """References of every known workbook."""
        ...

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> "Backend":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    def __iter__(self) -> Iterator[Workbook]:
        """Iterate over every known workbook."""
        return iter([self.open_workbook(ref) for ref in self.workbook_ids()])
