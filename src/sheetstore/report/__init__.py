"""
Reporting module for sheetstore.

Renders OperationResults for people and for programs.

Output formats:
    - Console: Rich table of the returned records, or the error with its
      code and suggestion
    - JSON: success flag, call metadata, records flattened to column
      names, and the error's dictionary form

Example:
    from sheetstore.report import generate_json_report, print_result

    result = coordinator.dispatch("READ", "crm", "Contacts", ["ID", []])
    print_result(result)
    print(generate_json_report(result))
"""

from sheetstore.report.console import print_error, print_result, records_table
from sheetstore.report.json import generate_json_report, result_to_dict, serialize_data

__all__ = [
    "generate_json_report",
    "print_error",
    "print_result",
    "records_table",
    "result_to_dict",
    "serialize_data",
]
