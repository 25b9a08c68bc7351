"""
Sheet provisioning.

A collection is a sheet whose first row holds the reserved bookkeeping
columns followed by any user columns known up front. Columns not listed
here are added later by the engine the first time a row carries them.
"""

import logging
from collections.abc import Sequence

from sheetstore.backend.base import Workbook
from sheetstore.errors import InvalidInputError, MissingInputError
from sheetstore.schema import RESERVED_COLUMNS

logger = logging.getLogger(__name__)


def create_collection(
    workbook: Workbook,
    name: str,
    extra_columns: Sequence[str] | None = None,
) -> str:
    """
    Add a new sheet with the reserved header and optional user columns.

    The header row is frozen and rendered bold where the backend supports
    formatting.

    Args:
        workbook: Workbook receiving the sheet
        name: Name of the new sheet
        extra_columns: User column names placed after the reserved ones

    Returns:
        The new sheet's name

    Raises:
        MissingInputError: If name is blank
        InvalidInputError: If a column name is blank or repeats another
        SheetExistsError: If the workbook already has a sheet called name
    """
    if not name or not name.strip():
        raise MissingInputError(parameter="name", operation="create_sheet")
    if isinstance(extra_columns, str):
        raise InvalidInputError(
            operation="create_sheet",
            sheet=name,
            message="extra_columns must be a list of column names",
        )

    header = list(RESERVED_COLUMNS)
    for column in extra_columns or []:
        if not isinstance(column, str) or not column.strip():
            raise InvalidInputError(
                operation="create_sheet",
                sheet=name,
                message=f"Column names must be non-empty strings, got {column!r}",
            )
        if column in header:
            raise InvalidInputError(
                operation="create_sheet",
                sheet=name,
                message=f"Column {column} is reserved or listed twice",
            )
        header.append(column)

    sheet = workbook.insert_sheet(name)
    sheet.replace_values([header])
    sheet.format_header()
    logger.info(f"Created sheet {name} in workbook {workbook.workbook_id} with columns {header}")
    return name
