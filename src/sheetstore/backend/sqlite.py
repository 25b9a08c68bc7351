"""
SQLite storage for sheetstore.

This module persists workbooks, sheets and their cell grids in a single
SQLite database file. Each physical row of a sheet is one table row holding
a JSON array of cells.

Design Principles:
    - Grid-shaped: the database stores cells, not records; typing and
      row identity are the row store's business
    - Atomic: every mutating call is a single transaction
    - Self-contained: one .db file holds every workbook

Tables:
    - workbooks: one row per workbook reference
    - sheets: sheet names per workbook, creation order and header format
    - sheet_rows: one JSON cell array per physical row

Cell encoding:
    Scalars are stored as JSON. Timestamps are tagged objects
    ({"$datetime": iso} / {"$date": iso}) so they come back as datetime
    and date instead of strings.
"""

import json
import sqlite3
from collections.abc import Generator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from sheetstore.backend.base import Backend, Cell, Sheet, Workbook
from sheetstore.errors import (
    SheetExistsError,
    SheetNotFoundError,
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
)

# Schema version for migrations
SCHEMA_VERSION = 1

# SQL for creating tables
CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Workbooks: one per collection-group reference
CREATE TABLE IF NOT EXISTS workbooks (
    workbook_id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL
);

-- Sheets: named grids inside a workbook
CREATE TABLE IF NOT EXISTS sheets (
    workbook_id TEXT NOT NULL,
    name TEXT NOT NULL,
    position INTEGER NOT NULL,
    frozen_rows INTEGER NOT NULL DEFAULT 0,
    bold_header INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    PRIMARY KEY (workbook_id, name),
    FOREIGN KEY (workbook_id) REFERENCES workbooks(workbook_id)
);

-- Sheet rows: one JSON cell array per physical row, indices contiguous from 0
CREATE TABLE IF NOT EXISTS sheet_rows (
    workbook_id TEXT NOT NULL,
    sheet_name TEXT NOT NULL,
    row_index INTEGER NOT NULL,
    cell_count INTEGER NOT NULL,
    cells_json TEXT NOT NULL,
    PRIMARY KEY (workbook_id, sheet_name, row_index),
    FOREIGN KEY (workbook_id, sheet_name) REFERENCES sheets(workbook_id, name)
);
"""


def now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(UTC).isoformat()


def encode_cells(cells: Sequence[Cell]) -> str:
    """Serialize one row of cells to JSON."""
    return json.dumps([_encode_cell(c) for c in cells])


def decode_cells(cells_json: str) -> list[Cell]:
    """Deserialize one row of cells from JSON."""
    return [_decode_cell(c) for c in json.loads(cells_json)]


def _encode_cell(value: Cell) -> Any:
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    return value


def _decode_cell(value: Any) -> Cell:
    if isinstance(value, dict):
        if "$datetime" in value:
            return datetime.fromisoformat(value["$datetime"])
        if "$date" in value:
            return date.fromisoformat(value["$date"])
    return value


class SqliteSheet(Sheet):
    """A sheet whose rows live in the sheet_rows table."""

    def __init__(self, backend: "SqliteBackend", workbook_id: str, name: str) -> None:
        self._backend = backend
        self._workbook_id = workbook_id
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def workbook_id(self) -> str:
        return self._workbook_id

    @property
    def height(self) -> int:
        row = self._backend._query_one(
            "SELECT COUNT(*) AS n FROM sheet_rows WHERE workbook_id = ? AND sheet_name = ?",
            (self._workbook_id, self._name),
            operation="height",
        )
        return row["n"]

    @property
    def width(self) -> int:
        row = self._backend._query_one(
            "SELECT MAX(cell_count) AS w FROM sheet_rows WHERE workbook_id = ? AND sheet_name = ?",
            (self._workbook_id, self._name),
            operation="width",
        )
        return row["w"] or 0

    def _load_rows(self) -> list[list[Cell]]:
        rows = self._backend._query_all(
            """
            SELECT cells_json FROM sheet_rows
            WHERE workbook_id = ? AND sheet_name = ?
            ORDER BY row_index
            """,
            (self._workbook_id, self._name),
            operation="get_values",
        )
        return [decode_cells(r["cells_json"]) for r in rows]

    def get_values(self) -> list[list[Cell]]:
        rows = self._load_rows()
        width = max((len(r) for r in rows), default=0)
        return [r + [None] * (width - len(r)) for r in rows]

    def _write_row(self, conn: sqlite3.Connection, index: int, cells: Sequence[Cell]) -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO sheet_rows (
                workbook_id, sheet_name, row_index, cell_count, cells_json
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (self._workbook_id, self._name, index, len(cells), encode_cells(cells)),
        )

    def set_cell(self, row: int, col: int, value: Cell) -> None:
        with self._backend._write("set_cell") as conn:
            rows = self._load_rows()
            while len(rows) <= row:
                rows.append([])
                self._write_row(conn, len(rows) - 1, [])
            cells = rows[row]
            if len(cells) <= col:
                cells.extend([None] * (col + 1 - len(cells)))
            cells[col] = value
            self._write_row(conn, row, cells)

    def append_row(self, values: Sequence[Cell]) -> int:
        with self._backend._write("append_row") as conn:
            index = self.height
            self._write_row(conn, index, list(values))
        return index

    def insert_column(self, index: int) -> None:
        with self._backend._write("insert_column") as conn:
            for row_index, cells in enumerate(self._load_rows()):
                if index < len(cells):
                    cells.insert(index, None)
                    self._write_row(conn, row_index, cells)

    def update_rows(self, rows: Mapping[int, Sequence[Cell]]) -> None:
        height = self.height
        for index in rows:
            if not 0 <= index < height:
                msg = f"Row {index} is outside sheet {self._name} ({height} rows)"
                raise IndexError(msg)
        with self._backend._write("update_rows") as conn:
            for index, values in rows.items():
                self._write_row(conn, index, list(values))

    def replace_values(self, values: Sequence[Sequence[Cell]]) -> None:
        with self._backend._write("replace_values") as conn:
            conn.execute(
                "DELETE FROM sheet_rows WHERE workbook_id = ? AND sheet_name = ?",
                (self._workbook_id, self._name),
            )
            for index, cells in enumerate(values):
                self._write_row(conn, index, list(cells))

    def format_header(self) -> None:
        with self._backend._write("format_header") as conn:
            conn.execute(
                """
                UPDATE sheets SET frozen_rows = 1, bold_header = 1
                WHERE workbook_id = ? AND name = ?
                """,
                (self._workbook_id, self._name),
            )

    @property
    def frozen_rows(self) -> int:
        """Number of frozen rows recorded for presentation."""
        row = self._backend._query_one(
            "SELECT frozen_rows FROM sheets WHERE workbook_id = ? AND name = ?",
            (self._workbook_id, self._name),
            operation="frozen_rows",
        )
        return row["frozen_rows"] if row else 0


class SqliteWorkbook(Workbook):
    """A workbook row and the sheets that reference it."""

    def __init__(self, backend: "SqliteBackend", workbook_id: str) -> None:
        self._backend = backend
        self._workbook_id = workbook_id

    @property
    def workbook_id(self) -> str:
        return self._workbook_id

    def get_sheet(self, name: str) -> SqliteSheet:
        row = self._backend._query_one(
            "SELECT name FROM sheets WHERE workbook_id = ? AND name = ?",
            (self._workbook_id, name),
            operation="get_sheet",
        )
        if row is None:
            raise SheetNotFoundError(sheet=name, workbook=self._workbook_id)
        return SqliteSheet(self._backend, self._workbook_id, name)

    def insert_sheet(self, name: str) -> SqliteSheet:
        if self.has_sheet(name):
            raise SheetExistsError(sheet=name, workbook=self._workbook_id)
        with self._backend._write("insert_sheet") as conn:
            conn.execute(
                """
                INSERT INTO sheets (workbook_id, name, position, created_at)
                VALUES (?, ?, (SELECT COUNT(*) FROM sheets WHERE workbook_id = ?), ?)
                """,
                (self._workbook_id, name, self._workbook_id, now_iso()),
            )
        return SqliteSheet(self._backend, self._workbook_id, name)

    def sheet_names(self) -> list[str]:
        rows = self._backend._query_all(
            "SELECT name FROM sheets WHERE workbook_id = ? ORDER BY position",
            (self._workbook_id,),
            operation="sheet_names",
        )
        return [r["name"] for r in rows]


class SqliteBackend(Backend):
    """
    SQLite database holding every workbook.

    Usage:
        backend = SqliteBackend("sheetstore.db")
        sheet = backend.open_workbook("crm").insert_sheet("clients")
        backend.close()

    Or use as context manager:
        with SqliteBackend("sheetstore.db") as backend:
            ...
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file.
                     Will be created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._connect()
        self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self._conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            # Enable foreign keys
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise StorageConnectionError(
                db_path=str(self.db_path),
                operation="connect",
                message=f"Failed to connect to database: {e}",
            ) from e

    def _init_schema(self) -> None:
        """Initialize database schema if needed."""
        try:
            cursor = self._conn.executescript(CREATE_TABLES_SQL)
            cursor.close()

            # Check/set schema version
            cursor = self._conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = cursor.fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, now_iso()),
                )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    @property
    def conn(self) -> sqlite3.Connection:
        """The open connection."""
        if self._conn is None:
            raise StorageConnectionError(
                db_path=str(self.db_path),
                operation="connection",
                message=f"Database is closed: {self.db_path}",
            )
        return self._conn

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database transactions."""
        conn = self.conn
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    @contextmanager
    def _write(self, operation: str) -> Generator[sqlite3.Connection, None, None]:
        """Transaction whose SQL and encoding failures surface as StorageWriteError."""
        try:
            with self.transaction() as conn:
                yield conn
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise StorageWriteError(
                operation=operation,
                underlying_error=str(e),
            ) from e

    def _query_one(self, sql: str, params: tuple, operation: str) -> sqlite3.Row | None:
        try:
            return self.conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(operation=operation, underlying_error=str(e)) from e

    def _query_all(self, sql: str, params: tuple, operation: str) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageReadError(operation=operation, underlying_error=str(e)) from e

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Workbook Operations
    # =========================================================================

    def open_workbook(self, ref: str) -> SqliteWorkbook:
        with self._write("open_workbook") as conn:
            conn.execute(
                "INSERT OR IGNORE INTO workbooks (workbook_id, created_at) VALUES (?, ?)",
                (ref, now_iso()),
            )
        return SqliteWorkbook(self, ref)

    def workbook_ids(self) -> list[str]:
        rows = self._query_all(
            "SELECT workbook_id FROM workbooks ORDER BY created_at, workbook_id",
            (),
            operation="workbook_ids",
        )
        return [r["workbook_id"] for r in rows]
