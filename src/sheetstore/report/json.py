"""
JSON rendering of operation results.

Produces the structured output behind the CLI's --json flag.

Design Principles:
    - Consistent schema: every result has success, operation, data, error
    - Records are flattened to their column names (ID, CreatedBy, ...)
    - ISO timestamps
"""

import json
from datetime import date, datetime
from typing import Any

from sheetstore.coordinator import OperationResult
from sheetstore.schema import Record


def serialize_data(data: Any) -> Any:
    """
    Convert an operation's return value into JSON-compatible structures.

    Record maps keep their ID keys, record lists stay lists, and anything
    else (sheet names, row counts) passes through.
    """
    if isinstance(data, Record):
        return data.fields()
    if isinstance(data, dict):
        return {key: serialize_data(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [serialize_data(item) for item in data]
    return data


def result_to_dict(result: OperationResult) -> dict[str, Any]:
    """
    Build a report dictionary for one operation result.

    Args:
        result: The dispatched operation's outcome

    Returns:
        Dictionary with success flag, call metadata, data and error
    """
    return {
        "success": result.success,
        "operation": result.metadata.get("operation"),
        "workbook": result.metadata.get("workbook"),
        "sheet": result.metadata.get("sheet"),
        "data": serialize_data(result.data),
        "error": result.error.to_dict() if result.error is not None else None,
    }


def generate_json_report(result: OperationResult, indent: int = 2) -> str:
    """Render an operation result as a JSON string."""
    return json.dumps(result_to_dict(result), indent=indent, default=_json_serializer)


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for non-standard types."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if hasattr(obj, "model_dump"):
        return obj.model_dump(by_alias=True)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
