"""
Shared context conventions.

The values mapping threaded through a group run is owned by the caller
and mutated in place by every task. The keys below are the only ones
the group runner reads or writes:

    values["TaskResult"][<task id>]["objectName"]  comma separated names
    values["TaskResult"][<task id>]["result"]      result document
    values["JsonResult"]                           raw bytes of last result
"""

from typing import Any

TASK_RESULT_KEY = "TaskResult"
OBJECT_NAME_KEY = "objectName"
RESULT_KEY = "result"
JSON_RESULT_KEY = "JsonResult"

REDACTED = "--redacted--"


def redact_json_result(values: dict[str, Any]) -> None:
    """
    Replace the raw json result with a placeholder.

    Done after every task step so the raw document never ends up in
    logs or in the values handed to later phases.
    """
    values[JSON_RESULT_KEY] = REDACTED


def get_nested_string(values: dict[str, Any], *fields: str) -> str:
    """Return the string at the nested path, or "" if any part is missing."""
    current: Any = values
    for field in fields:
        if not isinstance(current, dict) or field not in current:
            return ""
        current = current[field]
    return current if isinstance(current, str) else ""


def set_nested_field(values: dict[str, Any], value: Any, *fields: str) -> None:
    """Set value at the nested path, creating intermediate dicts."""
    if not fields:
        raise ValueError("at least one field is required")
    current = values
    for field in fields[:-1]:
        child = current.get(field)
        if not isinstance(child, dict):
            child = {}
            current[field] = child
        current = child
    current[fields[-1]] = value


def clear_task_result(values: dict[str, Any], identity: str) -> None:
    """Drop whatever an earlier run recorded for a task identity."""
    results = values.get(TASK_RESULT_KEY)
    if isinstance(results, dict):
        results.pop(identity, None)
