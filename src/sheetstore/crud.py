"""
Row-store engine: create, read, update, delete and undo-delete.

Every logical entity is identified by its ID and may span several physical
rows over time. Exactly one of those rows is current (Valid = true); the
others are retired versions kept until compaction.

Operation semantics:
    - create: append one new row per field map, stamping the bookkeeping
      columns (ID, CreatedBy and DateCreated only when absent)
    - read: scan for matching rows, returning only valid rows with an ID
    - update: retire the current version, then append the replacement,
      carrying CreatedBy/DateCreated over from the retired row
    - delete: mark matching rows Valid = false and refresh DateModified
    - undo_delete: revalidate the most recent row for each matched value

Invariants:
    - All input is validated before the first write to the sheet
    - A non-empty sheet without the reserved header is never written
    - One timestamp per call: rows created together share DateCreated
      and DateModified

All methods assume the caller already holds the store lock.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from sheetstore.backend.base import Cell, Sheet
from sheetstore.codec import decode, describe_validation_error, encode
from sheetstore.columns import ColumnMap, validate_for_write
from sheetstore.context import OperationContext
from sheetstore.errors import (
    EmptyValuesError,
    InvalidInputError,
    InvalidRecordError,
    MalformedRowError,
    MissingInputError,
)
from sheetstore.schema import DATE_MODIFIED, ID, VALID, Record, as_utc

logger = logging.getLogger(__name__)


class RowStore:
    """
    CRUD engine over sheets.

    Usage:
        store = RowStore(OperationContext(identity=lambda: "amir@example.com"))
        created = store.create(sheet, [{"name": "Acme"}])
        (row_id,) = created
        store.update(sheet, {"ID": row_id, "name": "Acme Corp"})
        store.delete(sheet, "ID", [row_id])
        store.undo_delete(sheet, "ID", [row_id])

    Attributes:
        context: Identity, clock and ID settings used to stamp rows
    """

    def __init__(self, context: OperationContext | None = None) -> None:
        self.context = context or OperationContext()

    # =========================================================================
    # Create
    # =========================================================================

    def create(self, sheet: Sheet, rows: Sequence[Mapping[str, Any]] | None) -> dict[str, Record]:
        """
        Append new rows built from field maps.

        Args:
            sheet: The sheet to write to
            rows: Field maps, one per new row

        Returns:
            The written records keyed by ID

        Raises:
            MissingInputError: If rows is None
            InvalidRecordError: If any field map is not a valid record
            SchemaError: If the sheet has content but no reserved header
        """
        logger.info(f"Creating rows in sheet {sheet.name}")
        now = self._now()
        records = self._records_from_input(sheet, rows, now)
        columns = validate_for_write(sheet, bootstrap=True)
        return self._append(sheet, columns, records, now)

    def _append(
        self,
        sheet: Sheet,
        columns: ColumnMap,
        records: Iterable[Record],
        now: datetime,
    ) -> dict[str, Record]:
        user = self.context.identity()
        created: dict[str, Record] = {}
        for record in records:
            stamped = self._stamp(sheet, record, user, now)
            sheet.append_row(encode(stamped, columns))
            created[stamped.id] = stamped
        logger.info(f"Created {len(created)} row(s) in sheet {sheet.name}")
        return created

    def _stamp(self, sheet: Sheet, record: Record, user: str, now: datetime) -> Record:
        """Fill in the bookkeeping columns for a row about to be written."""
        updates: dict[str, Any] = {
            "modified_by": user,
            "date_modified": now,
            "valid": True,
        }
        if not record.id:
            updates["id"] = self.context.new_id(sheet.name)
        if not record.created_by:
            updates["created_by"] = user
        if record.date_created is None:
            updates["date_created"] = now
        return record.model_copy(update=updates)

    def _records_from_input(
        self,
        sheet: Sheet,
        rows: Sequence[Mapping[str, Any]] | None,
        now: datetime,
    ) -> list[Record]:
        if rows is None:
            logger.warning(f"No data was provided to create rows in {sheet.name}")
            raise MissingInputError(parameter="rows", operation="create", sheet=sheet.name)
        if isinstance(rows, (Mapping, str, bytes)) or not isinstance(rows, Sequence):
            raise InvalidInputError(
                operation="create",
                sheet=sheet.name,
                message="create expects a list of field maps",
            )
        return [self._to_record(sheet, item, now, "create", index) for index, item in enumerate(rows)]

    def _to_record(
        self,
        sheet: Sheet,
        item: Any,
        now: datetime,
        operation: str,
        index: int | None = None,
    ) -> Record:
        if isinstance(item, Record):
            record = item
        elif isinstance(item, Mapping):
            bad_keys = [k for k in item if not isinstance(k, str)]
            if bad_keys:
                raise InvalidRecordError(
                    operation=operation,
                    sheet=sheet.name,
                    index=index,
                    validation_error=f"field names must be strings, got {bad_keys!r}",
                )
            try:
                record = Record.model_validate(dict(item))
            except ValidationError as e:
                raise InvalidRecordError(
                    operation=operation,
                    sheet=sheet.name,
                    index=index,
                    validation_error=describe_validation_error(e),
                ) from e
        else:
            raise InvalidRecordError(
                operation=operation,
                sheet=sheet.name,
                index=index,
                validation_error=f"expected a field map, got {type(item).__name__}",
            )
        if record.date_created is not None and record.date_created > now:
            raise InvalidRecordError(
                operation=operation,
                sheet=sheet.name,
                index=index,
                validation_error="DateCreated is later than the current time",
            )
        return record

    # =========================================================================
    # Read
    # =========================================================================

    def read(
        self,
        sheet: Sheet,
        column: str,
        values: Iterable[Cell] | None = None,
    ) -> dict[str, Record]:
        """
        Return the valid rows whose column value is one of values.

        Args:
            sheet: The sheet to read from
            column: Column compared against values
            values: Accepted values; None or empty matches every row

        Returns:
            Valid records keyed by ID (rows without an ID are left out)

        Raises:
            ColumnNotFoundError: If column is not in the header
        """
        logger.info(f"Reading from sheet {sheet.name}")
        wanted = self._value_set(sheet, values, "read")
        data = sheet.get_values()
        columns = ColumnMap(sheet, data[0] if data else [])
        col = columns.require(column, operation="read")

        header = data[0]
        found: dict[str, Record] = {}
        for index in range(1, len(data)):
            row = data[index]
            if wanted and row[col] not in wanted:
                continue
            record = self._decode(sheet, header, row, index)
            if record is not None and record.id and record.valid:
                found[record.id] = record
        return found

    # =========================================================================
    # Update
    # =========================================================================

    def update(self, sheet: Sheet, fields: Mapping[str, Any] | None) -> dict[str, Record]:
        """
        Replace the current version of an entity.

        The current row is retired (Valid = false) and a new row carrying
        the same ID is appended. CreatedBy and DateCreated are carried over
        from the retired row; if no row had the ID, this is a plain create
        that keeps the supplied ID.

        Args:
            sheet: The sheet to write to
            fields: New field values, including the entity's ID

        Returns:
            The new version keyed by ID

        Raises:
            MissingInputError: If fields is None or has no ID
            InvalidRecordError: If fields is not a valid record
            SchemaError: If the sheet has content but no reserved header
        """
        logger.info(f"Updating sheet {sheet.name}")
        if fields is None:
            logger.warning("No input data given so could not update")
            raise MissingInputError(parameter="fields", operation="update", sheet=sheet.name)
        now = self._now()
        record = self._to_record(sheet, fields, now, "update")
        if not record.id:
            raise MissingInputError(
                parameter=ID,
                operation="update",
                sheet=sheet.name,
                message="update requires the ID of the row to replace",
            )

        columns = validate_for_write(sheet, bootstrap=True)
        retired = self._invalidate(sheet, sheet.get_values(), columns, ID, {record.id}, now)
        previous = retired.get(record.id)
        if previous is None:
            logger.info(f"No row with ID {record.id} exists in {sheet.name}; creating it")
        else:
            record = record.model_copy(update={
                "created_by": previous.created_by,
                "date_created": previous.date_created,
            })
        return self._append(sheet, columns, [record], now)

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, sheet: Sheet, column: str, values: Iterable[Cell] | None) -> dict[str, Record]:
        """
        Soft-delete every row whose column value is one of values.

        Args:
            sheet: The sheet to write to
            column: Column compared against values
            values: Values selecting the rows to delete (must be non-empty)

        Returns:
            The invalidated rows keyed by ID (rows without an ID are left out)

        Raises:
            EmptyValuesError: If values is None or empty
            ColumnNotFoundError: If column, Valid or DateModified is missing
            SchemaError: If the sheet has content but no reserved header
        """
        logger.info(f"Deleting rows from sheet {sheet.name}")
        wanted = self._value_set(sheet, values, "delete")
        if not wanted:
            logger.warning(f"Gave a null or empty values list in a call to delete on {sheet.name}")
            raise EmptyValuesError(operation="delete", sheet=sheet.name)
        data = sheet.get_values()
        columns = validate_for_write(sheet, data)
        return self._invalidate(sheet, data, columns, column, wanted, self._now())

    def _invalidate(
        self,
        sheet: Sheet,
        data: list[list[Cell]],
        columns: ColumnMap,
        column: str,
        wanted: set[Cell],
        now: datetime,
    ) -> dict[str, Record]:
        col = columns.require(column, operation="delete")
        valid_col = columns.require(VALID, operation="delete")
        modified_col = columns.require(DATE_MODIFIED, operation="delete")

        header = data[0] if data else []
        touched: dict[int, list[Cell]] = {}
        deleted: dict[str, Record] = {}
        for index in range(1, len(data)):
            row = data[index]
            if row[col] not in wanted:
                continue
            row[valid_col] = False
            row[modified_col] = now
            touched[index] = row
            record = self._decode(sheet, header, row, index)
            if record is not None and record.id:
                deleted[record.id] = record

        if touched:
            sheet.update_rows(touched)
        logger.info(f"Invalidated {len(touched)} row(s) in sheet {sheet.name}")
        return deleted

    # =========================================================================
    # Undo Delete
    # =========================================================================

    def undo_delete(self, sheet: Sheet, column: str, values: Iterable[Cell] | None) -> list[Record]:
        """
        Revalidate the most recent row for each value.

        Rows are scanned from the newest to the oldest. The first row found
        for a value is revalidated and the value is claimed, so older
        versions sharing it stay deleted. Related sheets are not touched.

        Args:
            sheet: The sheet to write to
            column: Column compared against values
            values: Values selecting the rows to restore

        Returns:
            The revalidated rows, newest first

        Raises:
            ColumnNotFoundError: If column or Valid is missing
            SchemaError: If the sheet has content but no reserved header
        """
        logger.info(f"Undoing delete in sheet {sheet.name}")
        pending = self._value_set(sheet, values, "undo_delete")
        data = sheet.get_values()
        columns = validate_for_write(sheet, data)
        col = columns.require(column, operation="undo_delete")
        valid_col = columns.require(VALID, operation="undo_delete")
        if not pending:
            logger.info(f"No values given to undo_delete on {sheet.name}; nothing to do")
            return []

        header = data[0]
        touched: dict[int, list[Cell]] = {}
        restored: list[Record] = []
        for index in range(len(data) - 1, 0, -1):
            row = data[index]
            value = row[col]
            if value not in pending:
                continue
            row[valid_col] = True
            pending.discard(value)
            touched[index] = row
            record = self._decode(sheet, header, row, index)
            if record is not None:
                restored.append(record)
            if not pending:
                break

        if touched:
            sheet.update_rows(touched)
        logger.info(f"Revalidated {len(touched)} row(s) in sheet {sheet.name}")
        return restored

    # =========================================================================
    # Helpers
    # =========================================================================

    def _now(self) -> datetime:
        return as_utc(self.context.clock())

    def _value_set(self, sheet: Sheet, values: Iterable[Cell] | None, operation: str) -> set[Cell]:
        if values is None:
            return set()
        if isinstance(values, (str, bytes, Mapping)) or not isinstance(values, Iterable):
            raise InvalidInputError(
                operation=operation,
                sheet=sheet.name,
                message=f"{operation} expects a list of values, got {type(values).__name__}",
            )
        try:
            return set(values)
        except TypeError as e:
            raise InvalidInputError(
                operation=operation,
                sheet=sheet.name,
                message=f"{operation} values must be scalars: {e}",
            ) from e

    def _decode(self, sheet: Sheet, header: list[Cell], row: list[Cell], index: int) -> Record | None:
        try:
            return decode(header, row, sheet=sheet.name, row_index=index)
        except MalformedRowError as e:
            logger.warning(f"Skipping row: {e.message}")
            return None
