"""
In-memory tabular backend.

Sheets are plain lists of row lists living in the process. Nothing is
persisted; this backend exists for tests, demos and embedding.
"""

from collections.abc import Mapping, Sequence

from sheetstore.backend.base import Backend, Cell, Sheet, Workbook
from sheetstore.errors import SheetExistsError, SheetNotFoundError


class MemorySheet(Sheet):
    """Sheet backed by a list of row lists."""

    def __init__(self, name: str, rows: Sequence[Sequence[Cell]] | None = None) -> None:
        self._name = name
        self._rows: list[list[Cell]] = [list(r) for r in rows or []]
        self.frozen_rows = 0
        self.bold_header = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def height(self) -> int:
        return len(self._rows)

    @property
    def width(self) -> int:
        return max((len(r) for r in self._rows), default=0)

    def get_values(self) -> list[list[Cell]]:
        width = self.width
        return [list(r) + [None] * (width - len(r)) for r in self._rows]

    def set_cell(self, row: int, col: int, value: Cell) -> None:
        while len(self._rows) <= row:
            self._rows.append([])
        cells = self._rows[row]
        if len(cells) <= col:
            cells.extend([None] * (col + 1 - len(cells)))
        cells[col] = value

    def append_row(self, values: Sequence[Cell]) -> int:
        self._rows.append(list(values))
        return len(self._rows) - 1

    def insert_column(self, index: int) -> None:
        for cells in self._rows:
            if index < len(cells):
                cells.insert(index, None)

    def update_rows(self, rows: Mapping[int, Sequence[Cell]]) -> None:
        for index, values in rows.items():
            if not 0 <= index < len(self._rows):
                msg = f"Row {index} is outside sheet {self._name} ({len(self._rows)} rows)"
                raise IndexError(msg)
        for index, values in rows.items():
            self._rows[index] = list(values)

    def replace_values(self, values: Sequence[Sequence[Cell]]) -> None:
        self._rows = [list(r) for r in values]

    def format_header(self) -> None:
        self.frozen_rows = 1
        self.bold_header = True


class MemoryWorkbook(Workbook):
    """Ordered mapping of sheet names to MemorySheets."""

    def __init__(self, workbook_id: str) -> None:
        self._workbook_id = workbook_id
        self._sheets: dict[str, MemorySheet] = {}

    @property
    def workbook_id(self) -> str:
        return self._workbook_id

    def get_sheet(self, name: str) -> MemorySheet:
        sheet = self._sheets.get(name)
        if sheet is None:
            raise SheetNotFoundError(sheet=name, workbook=self._workbook_id)
        return sheet

    def insert_sheet(self, name: str) -> MemorySheet:
        if name in self._sheets:
            raise SheetExistsError(sheet=name, workbook=self._workbook_id)
        sheet = MemorySheet(name)
        self._sheets[name] = sheet
        return sheet

    def sheet_names(self) -> list[str]:
        return list(self._sheets)


class MemoryBackend(Backend):
    """Process-local collection of workbooks."""

    def __init__(self) -> None:
        self._workbooks: dict[str, MemoryWorkbook] = {}

    def open_workbook(self, ref: str) -> MemoryWorkbook:
        workbook = self._workbooks.get(ref)
        if workbook is None:
            workbook = MemoryWorkbook(ref)
            self._workbooks[ref] = workbook
        return workbook

    def workbook_ids(self) -> list[str]:
        return list(self._workbooks)
