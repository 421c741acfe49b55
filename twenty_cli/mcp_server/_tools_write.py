"""Write tools: single-record and batch mutations (6 tools)."""

from __future__ import annotations

import copy

from twenty_cli.body import apply_set
from twenty_cli.exceptions import InputError
from twenty_cli.mcp_server._core import _call, _contract_error, _finalize_tool_result


def _mutation_body(data, set):
    """Copy *data* and apply the ordered set expressions."""
    if data is None and not set:
        raise InputError("[INPUT_ERROR] missing JSON payload; use data or set")
    if data is not None and not isinstance(data, dict):
        raise InputError("[INPUT_ERROR] payload must be a JSON object.")
    body = copy.deepcopy(data) if data is not None else {}
    for expr in set or []:
        apply_set(body, expr)
    return body


def create_record(
    object_name: str,
    data: dict | None = None,
    set: list[str] | None = None,
) -> dict:
    """Create a record of any object.

    Args:
        object_name: e.g. "people" or "person".
        data: Field values, e.g. {"name": {"firstName": "Ada"}}.
        set: Dot-path setters applied after data, e.g. ["emails.primaryEmail=a@b.co"].
            Values parse as JSON when they can (42, true, null), else stay strings.

    Returns:
        The API response with the created record.
    """
    try:
        body = _mutation_body(data, set)
    except InputError as e:
        return _finalize_tool_result(_contract_error(str(e), "input_error"))
    return _finalize_tool_result(_call("create_record", object_name=object_name, body=body))


def update_record(
    object_name: str,
    record_id: str,
    data: dict | None = None,
    set: list[str] | None = None,
) -> dict:
    """Update fields of one record. Same data/set rules as create_record."""
    try:
        body = _mutation_body(data, set)
    except InputError as e:
        return _finalize_tool_result(_contract_error(str(e), "input_error"))
    return _finalize_tool_result(
        _call("update_record", object_name=object_name, record_id=record_id, body=body)
    )


def delete_record(object_name: str, record_id: str) -> dict:
    """Soft-delete one record (restorable with restore_record)."""
    result = _call("delete_record", object_name=object_name, record_id=record_id)
    if result is None:
        result = {"deleted": record_id}
    return _finalize_tool_result(result)


def restore_record(object_name: str, record_id: str) -> dict:
    """Restore a soft-deleted record."""
    result = _call("restore_record", object_name=object_name, record_id=record_id)
    if result is None:
        result = {"restored": record_id}
    return _finalize_tool_result(result)


def batch_create_records(
    object_name: str,
    records: list[dict],
    batch_size: int = 60,
    continue_on_error: bool = False,
) -> dict:
    """Create many records, at most 60 per request.

    Args:
        records: List of record payloads.
        continue_on_error: Keep going after a failed chunk and report the
            failures; otherwise stop at the first failed chunk.

    Returns:
        Dict with ok, succeeded, total, errors, responses.
    """
    return _finalize_tool_result(
        _call(
            "batch_create",
            object_name=object_name,
            records=records,
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
    )


def batch_update_records(
    object_name: str,
    records: list[dict],
    batch_size: int = 60,
    continue_on_error: bool = False,
) -> dict:
    """Update many records; each payload must carry its "id"."""
    return _finalize_tool_result(
        _call(
            "batch_update",
            object_name=object_name,
            records=records,
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
    )


def register(mcp):
    """Register all write tools with the FastMCP instance."""
    mcp.tool()(create_record)
    mcp.tool()(update_record)
    mcp.tool()(delete_record)
    mcp.tool()(restore_record)
    mcp.tool()(batch_create_records)
    mcp.tool()(batch_update_records)
