"""
Header inspection and schema growth.

The header row is the only schema a sheet has. This module maps field
names to column positions, appends columns when new field names show up,
and checks that the six reserved bookkeeping columns sit at positions 0-5
before anything is written.

Invariants:
    - Header names are unique; columns are never removed
    - New columns are appended at the current width, in first-seen order
    - A non-empty sheet without the reserved header is never written to
"""

import logging
from collections.abc import Iterator, Sequence

from sheetstore.backend.base import Cell, Sheet, is_blank
from sheetstore.errors import ColumnNotFoundError, SchemaError
from sheetstore.schema import RESERVED_COLUMNS

logger = logging.getLogger(__name__)


class ColumnMap:
    """
    Field name to column index mapping for one sheet.

    The map is built from a header snapshot and grows the real header
    through ``ensure()``, so it stays in step with the sheet while a batch
    of rows is being written.
    """

    def __init__(self, sheet: Sheet, header: Sequence[Cell]) -> None:
        self._sheet = sheet
        self._indexes: dict[str, int] = {}
        for index, name in enumerate(header):
            if not is_blank(name) and str(name) not in self._indexes:
                self._indexes[str(name)] = index
        self._width = len(header)

    @property
    def sheet(self) -> Sheet:
        """The sheet this map describes."""
        return self._sheet

    @property
    def width(self) -> int:
        """Number of columns, including any appended through this map."""
        return self._width

    def index(self, name: str) -> int | None:
        """Column index of name, or None if the header lacks it."""
        return self._indexes.get(name)

    def require(self, name: str, operation: str = "") -> int:
        """
        Column index of name.

        Raises:
            ColumnNotFoundError: If the header lacks the column
        """
        index = self._indexes.get(name)
        if index is None:
            raise ColumnNotFoundError(
                column=name,
                sheet=self._sheet.name,
                operation=operation,
            )
        return index

    def ensure(self, name: str) -> int:
        """Column index of name, appending a new header column if needed."""
        index = self._indexes.get(name)
        if index is not None:
            return index
        index = self._width
        self._sheet.insert_column(index)
        self._sheet.set_cell(0, index, name)
        self._indexes[name] = index
        self._width += 1
        logger.info(f"Added column {name} at position {index} to sheet {self._sheet.name}")
        return index

    def names(self) -> list[str]:
        """Known column names in position order."""
        return sorted(self._indexes, key=self._indexes.__getitem__)

    def __contains__(self, name: object) -> bool:
        return name in self._indexes

    def __len__(self) -> int:
        return len(self._indexes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __repr__(self) -> str:
        return f"<ColumnMap: {self._sheet.name} {self.names()}>"


def resolve_columns(sheet: Sheet) -> ColumnMap:
    """Build the name to index mapping from the sheet's current header."""
    return ColumnMap(sheet, sheet.get_header())


def ensure_column(sheet: Sheet, name: str) -> int:
    """Return the column index of name, appending the column if it is new."""
    return resolve_columns(sheet).ensure(name)


def has_reserved_header(header: Sequence[Cell]) -> bool:
    """Whether the reserved columns occupy positions 0-5 in order."""
    return [str(c) if c is not None else None for c in header[: len(RESERVED_COLUMNS)]] == list(
        RESERVED_COLUMNS
    )


def check_header(sheet_name: str, header: Sequence[Cell]) -> None:
    """
    Validate a non-empty header.

    Raises:
        SchemaError: If the reserved columns are missing or misordered, or
            a column name appears twice
    """
    if not has_reserved_header(header):
        logger.error(f"Sheet {sheet_name} is missing the reserved header; refusing to write")
        raise SchemaError(
            sheet=sheet_name,
            expected=list(RESERVED_COLUMNS),
            actual=list(header[: len(RESERVED_COLUMNS)]),
        )
    seen: set[str] = set()
    for name in header:
        if is_blank(name):
            continue
        if str(name) in seen:
            logger.error(f"Sheet {sheet_name} has duplicate column {name}")
            raise SchemaError(
                sheet=sheet_name,
                expected=list(RESERVED_COLUMNS),
                actual=list(header),
                message=f"Sheet {sheet_name} has duplicate column name: {name}",
            )
        seen.add(str(name))


def validate_for_write(
    sheet: Sheet,
    values: Sequence[Sequence[Cell]] | None = None,
    bootstrap: bool = False,
) -> ColumnMap:
    """
    Check a sheet's header before writing to it.

    A completely blank sheet is bootstrapped with the reserved header when
    ``bootstrap`` is set; otherwise its (empty) mapping is returned and
    column lookups fail later as missing columns.

    Args:
        sheet: The sheet about to be written
        values: Snapshot of the sheet's values, read if not supplied
        bootstrap: Write the reserved header into a blank sheet

    Returns:
        ColumnMap for the validated header

    Raises:
        SchemaError: If the sheet has content but no valid reserved header
    """
    if values is None:
        values = sheet.get_values()
    header = list(values[0]) if values else []

    if all(is_blank(cell) for row in values for cell in row):
        if bootstrap:
            sheet.replace_values([list(RESERVED_COLUMNS)])
            logger.info(f"Bootstrapped reserved header in empty sheet {sheet.name}")
            return ColumnMap(sheet, RESERVED_COLUMNS)
        return ColumnMap(sheet, [])

    check_header(sheet.name, header)
    return ColumnMap(sheet, header)
