"""
Compaction of soft-deleted rows.

Deleted and superseded rows stay in a sheet until they are older than the
retention window, so they can still be restored. Compaction rewrites a
sheet keeping only:
    - the header row
    - every valid row
    - every invalid row modified within the retention window

Compaction is idempotent. The functions here do not take the store lock;
callers that share a backend go through the coordinator's CLEAN_SHEET
operation, which does.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from sheetstore.backend.base import Backend, Cell, Sheet, Workbook
from sheetstore.columns import ColumnMap
from sheetstore.context import system_clock
from sheetstore.schema import DATE_MODIFIED, VALID, as_utc

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)


def _is_valid(value: Cell) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _as_datetime(value: Cell) -> datetime | None:
    """Interpret a DateModified cell, or None if it holds no usable time."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=UTC)
    if isinstance(value, str) and value.strip():
        try:
            return as_utc(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    return None


def compact_sheet(sheet: Sheet, now: datetime, retention: timedelta = DEFAULT_RETENTION) -> int:
    """
    Drop expired invalid rows from one sheet.

    Rows whose DateModified cannot be interpreted are kept.

    Args:
        sheet: The sheet to compact
        now: Reference time for the retention window
        retention: How long invalid rows survive

    Returns:
        Number of rows removed
    """
    data = sheet.get_values()
    if len(data) <= 1:
        return 0

    header = data[0]
    columns = ColumnMap(sheet, header)
    valid_col = columns.index(VALID)
    modified_col = columns.index(DATE_MODIFIED)
    if valid_col is None or modified_col is None:
        logger.warning(f"Sheet {sheet.name} has no {VALID}/{DATE_MODIFIED} columns; not compacting it")
        return 0

    cutoff = as_utc(now) - retention
    kept = [header]
    for row in data[1:]:
        if _is_valid(row[valid_col]):
            kept.append(row)
            continue
        modified = _as_datetime(row[modified_col])
        if modified is None or modified > cutoff:
            kept.append(row)

    removed = len(data) - len(kept)
    if removed:
        sheet.replace_values(kept)
    logger.info(f"Compacted sheet {sheet.name}: removed {removed} row(s), kept {len(kept) - 1}")
    return removed


def compact(
    sheets: Iterable[Sheet],
    retention: timedelta = DEFAULT_RETENTION,
    now: datetime | None = None,
) -> int:
    """
    Compact every sheet in sheets against a single reference time.

    Args:
        sheets: Sheets to compact
        retention: How long invalid rows survive
        now: Reference time (default: the current UTC time)

    Returns:
        Total number of rows removed
    """
    if now is None:
        now = system_clock()
    return sum(compact_sheet(sheet, now, retention) for sheet in sheets)


def compact_workbook(
    workbook: Workbook,
    retention: timedelta = DEFAULT_RETENTION,
    now: datetime | None = None,
) -> int:
    """Compact every sheet of a workbook."""
    logger.info(f"Compacting workbook {workbook.workbook_id}")
    return compact(workbook.sheets(), retention=retention, now=now)


def compact_workbooks(
    backend: Backend,
    refs: Iterable[str],
    retention: timedelta = DEFAULT_RETENTION,
    now: datetime | None = None,
) -> int:
    """Compact every sheet of each referenced workbook."""
    if now is None:
        now = system_clock()
    return sum(
        compact_workbook(backend.open_workbook(ref), retention=retention, now=now)
        for ref in refs
    )
