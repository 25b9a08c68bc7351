"""
Console rendering of operation results.

Uses Rich to print records as a table, with the reserved bookkeeping
columns first and user columns after them in first-seen order.

Design Principles:
    - Status at a glance: icon and colour on the first line
    - Bookkeeping columns dimmed so user data stands out
    - Errors show their code and suggestion
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sheetstore.coordinator import OperationResult
from sheetstore.errors import SheetStoreError
from sheetstore.schema import RESERVED_COLUMNS, Record

# Status icons
ICON_SUCCESS = "[green]✓[/green]"
ICON_ERROR = "[red]✗[/red]"


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return escape(str(value))


def records_table(records: Iterable[Record], title: str | None = None) -> Table:
    """
    Build a Rich table for a set of records.

    Args:
        records: Records to show, in display order
        title: Optional table title

    Returns:
        Table with one column per field seen in any record
    """
    records = list(records)
    columns = list(RESERVED_COLUMNS)
    for record in records:
        for name in record.user_fields:
            if name not in columns:
                columns.append(name)

    table = Table(show_header=True, header_style="bold", title=title)
    for name in columns:
        if name == RESERVED_COLUMNS[0]:
            table.add_column(name, style="cyan", no_wrap=True)
        elif name in RESERVED_COLUMNS:
            table.add_column(name, style="dim")
        else:
            table.add_column(name)

    for record in records:
        fields = record.fields()
        table.add_row(*(_format_cell(fields.get(name)) for name in columns))
    return table


def print_error(error: SheetStoreError, console: Console | None = None) -> None:
    """Print an error with its code and suggestion."""
    if console is None:
        console = Console()
    console.print(f"{ICON_ERROR} [red][E{error.code}] {escape(error.message)}[/red]")
    if error.suggestion:
        console.print(f"  [dim]Suggestion: {escape(error.suggestion)}[/dim]")


def print_result(result: OperationResult, console: Console | None = None) -> None:
    """
    Print an operation result.

    Args:
        result: The dispatched operation's outcome
        console: Rich Console instance (creates one if not provided)
    """
    if console is None:
        console = Console()

    operation = result.metadata.get("operation", "operation")
    if not result.success:
        if result.error is not None:
            print_error(result.error, console)
        else:
            console.print(f"{ICON_ERROR} [red]{operation} failed[/red]")
        return

    data = result.data
    if isinstance(data, dict):
        records = list(data.values())
    elif isinstance(data, list):
        records = data
    else:
        records = None

    if records is None:
        console.print(f"{ICON_SUCCESS} {operation}: [bold]{escape(str(data))}[/bold]")
        return

    console.print(f"{ICON_SUCCESS} {operation}: {len(records)} row(s)")
    if records:
        console.print(records_table(records))
