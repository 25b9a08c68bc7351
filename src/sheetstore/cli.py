"""
CLI entry point for sheetstore.

This module provides the Typer-based command-line interface for sheetstore.
Every data command is dispatched through the AccessCoordinator, so the CLI
takes the same lock and produces the same results as library callers.

Commands:
    create-sheet  Create a sheet with the reserved header
    create        Append new rows
    read          Show valid rows matching a column
    update        Replace the current version of a row
    delete        Soft-delete rows matching a column
    undo-delete   Restore the most recent deleted version of rows
    clean         Compact away expired deleted rows
    list-sheets   List the sheets of a workbook

Architecture Note:
    The CLI is intentionally thin - it parses arguments, builds the
    backend from configuration and delegates to the coordinator.
"""

import json
import logging
import re
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sheetstore import __version__
from sheetstore.backend import open_backend
from sheetstore.coordinator import AccessCoordinator, OperationResult
from sheetstore.errors import SheetStoreError
from sheetstore.report import generate_json_report, print_error, print_result
from sheetstore.schema import BackendKind, Operation, StoreConfig, load_config

# Initialize Typer app with metadata
app = typer.Typer(
    name="sheetstore",
    help="Versioned, soft-delete row store over sheet-like grids.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

logger = logging.getLogger(__name__)


# =============================================================================
# Shared Options
# =============================================================================

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a YAML configuration file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
DbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--db",
        help="SQLite database file (overrides the configuration).",
        resolve_path=True,
    ),
]
WorkbookOption = Annotated[
    str,
    typer.Option(
        "--workbook",
        "-w",
        help="Workbook holding the sheet.",
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        help="Log every store operation to stderr.",
    ),
]
ValuesOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--value",
        help="Value to match (repeatable). Plain decimals are numbers and true/false are booleans.",
    ),
]

DEFAULT_WORKBOOK = "default"

# Numbers accepted by --value; leading zeros keep the text as is
DECIMAL_PATTERN = re.compile(r"[-+]?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][-+]?[0-9]+)?")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]sheetstore[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    sheetstore - Versioned row store over sheet-like grids.

    Rows carry an ID, audit columns and a validity flag. Updates and
    deletes keep the previous versions until they are compacted away.
    """
    pass


# =============================================================================
# Helpers
# =============================================================================


def _configure_logging(verbose: bool) -> None:
    """Route library logs to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def _output_json_error(error_type: str, message: str, **extra: Any) -> None:
    """Output an error in JSON format."""
    output = {
        "error": True,
        "error_type": error_type,
        "message": message,
    }
    output.update(extra)
    print(json.dumps(output, indent=2, default=str))


def _fail(error_type: str, message: str, json_output: bool) -> None:
    """Report a CLI-level problem and exit 1."""
    if json_output:
        _output_json_error(error_type, message)
    else:
        console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def _load_store_config(config_path: Path | None, db: Path | None, json_output: bool) -> StoreConfig:
    try:
        config = load_config(config_path) if config_path else StoreConfig()
    except (ValidationError, yaml.YAMLError) as e:
        _fail("config_error", f"Error loading configuration: {e}", json_output)
    if db is not None:
        config = config.model_copy(update={"backend": BackendKind.SQLITE, "database": db})
    return config


def _parse_value(text: str) -> Any:
    """
    Interpret a --value argument.

    Only true/false (any case) and plain decimal numbers are converted;
    everything else, including "no", "on" and "0123", stays text.
    """
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if DECIMAL_PATTERN.fullmatch(text):
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)
    return text


def _parse_values(values: list[str] | None) -> list[Any]:
    return [_parse_value(v) for v in values or []]


def _parse_data(data: str, json_output: bool) -> Any:
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        _fail("invalid_data", f"--data is not valid JSON: {e}", json_output)


def _dispatch(
    operation: Operation,
    sheet: str,
    params: list[Any],
    workbook: str,
    config_path: Path | None,
    db: Path | None,
    json_output: bool,
    verbose: bool,
    retention_hours: float | None = None,
) -> OperationResult:
    """Open the configured backend, dispatch one operation and print the result."""
    _configure_logging(verbose)
    config = _load_store_config(config_path, db, json_output)
    if retention_hours is not None:
        config = config.model_copy(update={"retention_hours": retention_hours})
    logger.debug(f"Using {config.backend.value} backend (database: {config.database})")

    try:
        with open_backend(config) as backend:
            coordinator = AccessCoordinator.from_config(config, backend)
            result = coordinator.dispatch(operation, workbook, sheet, params)
    except SheetStoreError as e:
        # Fatal errors (misformatted sheet, unreachable database)
        if json_output:
            _output_json_error(type(e).__name__, e.message, code=e.code, context=e.context)
        else:
            print_error(e, console)
        raise typer.Exit(code=1)

    if json_output:
        print(generate_json_report(result))
    else:
        print_result(result, console)
    if not result.success:
        raise typer.Exit(code=1)
    return result


# =============================================================================
# Commands
# =============================================================================


@app.command("create-sheet")
def create_sheet(
    name: Annotated[str, typer.Argument(help="Name of the new sheet.")],
    columns: Annotated[
        Optional[list[str]],
        typer.Option(
            "--column",
            help="User column to add after the reserved ones (repeatable).",
        ),
    ] = None,
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Create a sheet with the reserved header.

    Example:
        $ sheetstore create-sheet Contacts --column name --column email
    """
    _dispatch(Operation.CREATE_SHEET, name, [columns or []], workbook, config, db, json_output, verbose)


@app.command()
def create(
    sheet: Annotated[str, typer.Argument(help="Sheet to append to.")],
    data: Annotated[
        str,
        typer.Option(
            "--data",
            "-d",
            help="JSON object, or list of objects, with the new rows' fields.",
        ),
    ],
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Append new rows.

    Example:
        $ sheetstore create Contacts --data '{"name": "Ada"}'
    """
    rows = _parse_data(data, json_output)
    if isinstance(rows, dict):
        rows = [rows]
    _dispatch(Operation.CREATE, sheet, [rows], workbook, config, db, json_output, verbose)


@app.command()
def read(
    sheet: Annotated[str, typer.Argument(help="Sheet to read.")],
    column: Annotated[
        str,
        typer.Option(
            "--column",
            help="Column to match against.",
        ),
    ] = "ID",
    values: ValuesOption = None,
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Show the valid rows whose column matches one of the values.

    Without --value every valid row is shown.

    Example:
        $ sheetstore read Contacts --column name --value Ada
    """
    params = [column, _parse_values(values)]
    _dispatch(Operation.READ, sheet, params, workbook, config, db, json_output, verbose)


@app.command()
def update(
    sheet: Annotated[str, typer.Argument(help="Sheet holding the row.")],
    data: Annotated[
        str,
        typer.Option(
            "--data",
            "-d",
            help="JSON object with the row's ID and its new fields.",
        ),
    ],
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Replace the current version of a row.

    Example:
        $ sheetstore update Contacts --data '{"ID": "C-1a2b...", "name": "Ada L."}'
    """
    fields = _parse_data(data, json_output)
    _dispatch(Operation.UPDATE, sheet, [fields], workbook, config, db, json_output, verbose)


@app.command()
def delete(
    sheet: Annotated[str, typer.Argument(help="Sheet holding the rows.")],
    column: Annotated[str, typer.Option("--column", help="Column to match against.")],
    values: ValuesOption = None,
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Soft-delete every row whose column matches one of the values.

    Example:
        $ sheetstore delete Contacts --column ID --value C-1a2b3c4d5e6f7a8b
    """
    params = [column, _parse_values(values)]
    _dispatch(Operation.DELETE, sheet, params, workbook, config, db, json_output, verbose)


@app.command("undo-delete")
def undo_delete(
    sheet: Annotated[str, typer.Argument(help="Sheet holding the rows.")],
    column: Annotated[str, typer.Option("--column", help="Column to match against.")],
    values: ValuesOption = None,
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Restore the most recent row for each value.

    Example:
        $ sheetstore undo-delete Contacts --column ID --value C-1a2b3c4d5e6f7a8b
    """
    params = [column, _parse_values(values)]
    _dispatch(Operation.UNDO_DELETE, sheet, params, workbook, config, db, json_output, verbose)


@app.command()
def clean(
    sheet: Annotated[
        str,
        typer.Argument(help="Sheet to compact. Compacts every sheet of the workbook if omitted."),
    ] = "",
    retention_hours: Annotated[
        Optional[float],
        typer.Option(
            "--retention-hours",
            help="Keep deleted rows modified within this many hours.",
            min=0,
        ),
    ] = None,
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Remove deleted rows older than the retention window.

    Example:
        $ sheetstore clean Contacts --retention-hours 48
    """
    _dispatch(
        Operation.CLEAN_SHEET,
        sheet,
        [],
        workbook,
        config,
        db,
        json_output,
        verbose,
        retention_hours=retention_hours,
    )


@app.command("list-sheets")
def list_sheets(
    workbook: WorkbookOption = DEFAULT_WORKBOOK,
    config: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    List the sheets of a workbook with their row counts.

    Example:
        $ sheetstore list-sheets --workbook crm
    """
    _configure_logging(verbose)
    store_config = _load_store_config(config, db, json_output)
    try:
        with open_backend(store_config) as backend:
            sheets = [(s.name, s.height) for s in backend.open_workbook(workbook).sheets()]
    except SheetStoreError as e:
        if json_output:
            _output_json_error(type(e).__name__, e.message, code=e.code, context=e.context)
        else:
            print_error(e, console)
        raise typer.Exit(code=1)

    if json_output:
        output = {
            "workbook": workbook,
            "sheets": [{"name": name, "rows": height} for name, height in sheets],
        }
        print(json.dumps(output, indent=2))
        return

    if not sheets:
        console.print(f"[dim]No sheets in workbook {workbook}.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Sheet", style="cyan")
    table.add_column("Rows", justify="right")
    for name, height in sheets:
        table.add_row(name, str(height))
    console.print(table)


if __name__ == "__main__":
    app()
