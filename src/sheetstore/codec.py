"""
Conversion between positional rows and Records.

decode() pairs header names with cells and drops blank cells, so a decoded
Record never has a key for an absent value. encode() lays a Record's fields
out at the positions given by a ColumnMap, appending header columns for
field names the sheet has not seen yet.
"""

from collections.abc import Sequence

from pydantic import ValidationError

from sheetstore.backend.base import Cell, is_blank
from sheetstore.columns import ColumnMap
from sheetstore.errors import MalformedRowError
from sheetstore.schema import Record


def row_fields(header: Sequence[Cell], row: Sequence[Cell]) -> dict[str, Cell]:
    """Map header names to the non-blank cells of a row."""
    return {
        str(name): value
        for name, value in zip(header, row)
        if not is_blank(name) and not is_blank(value)
    }


def decode(header: Sequence[Cell], row: Sequence[Cell], sheet: str = "", row_index: int | None = None) -> Record:
    """
    Turn a positional row into a Record.

    Args:
        header: Header row of the sheet
        row: The physical row
        sheet: Sheet name, for error reporting
        row_index: Row position, for error reporting

    Returns:
        Record holding only the row's non-blank fields

    Raises:
        MalformedRowError: If a reserved column holds a value of the wrong type
    """
    try:
        return Record.model_validate(row_fields(header, row))
    except ValidationError as e:
        raise MalformedRowError(
            sheet=sheet,
            row_index=row_index,
            validation_error=describe_validation_error(e),
        ) from e


def encode(record: Record, columns: ColumnMap) -> list[Cell]:
    """
    Turn a Record into a positional row.

    Fields missing from the header are appended as new columns, in the
    record's field order. Absent fields become blank (None) cells.

    Args:
        record: The record to lay out
        columns: Column mapping of the target sheet (grown as needed)

    Returns:
        Row list as wide as the header after any appends
    """
    fields = record.fields()
    positions = {name: columns.ensure(name) for name in fields}
    row: list[Cell] = [None] * columns.width
    for name, value in fields.items():
        row[positions[name]] = value
    return row


def describe_validation_error(error: ValidationError) -> str:
    """One-line description of a pydantic validation error."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail.get("loc", ())) or "record"
        parts.append(f"{location}: {detail.get('msg', 'invalid')}")
    return "; ".join(parts)
