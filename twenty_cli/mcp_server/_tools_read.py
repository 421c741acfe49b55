"""Read tools: object metadata, listing, lookup and export (4 tools)."""

from __future__ import annotations

from twenty_cli import config
from twenty_cli._utils import compact_json
from twenty_cli.mcp_server._core import _call, _finalize_tool_result


def _filter_text(filter):
    if filter is None or isinstance(filter, str):
        return filter
    return compact_json(filter)


def list_objects() -> dict | list:
    """List the workspace's objects (standard and custom).

    Returns:
        List of dicts with nameSingular, namePlural, labels, isCustom, isActive.
    """
    return _finalize_tool_result(_call("list_objects"))


def list_records(
    object_name: str,
    limit: int = config.DEFAULT_LIST_LIMIT,
    cursor: str = "",
    filter: dict | str | None = None,
    sort: str = "",
    order: str = "",
    fields: str = "",
    include: str = "",
    params: list[str] | None = None,
    fetch_all: bool = False,
) -> dict:
    """List records of any object. Names may be singular or plural, any case.

    Args:
        object_name: e.g. "people", "company", or a custom object name.
        filter: JSON filter object, e.g. {"name": {"eq": "Acme"}}.
        order: asc, desc, AscNullsFirst, AscNullsLast, DescNullsFirst, DescNullsLast.
        include: Any value fetches relations (depth=1).
        params: Extra key=value query parameters.
        fetch_all: Follow cursors and return every record.

    Returns:
        API list response: data.<plural> array, pageInfo, totalCount.
    """
    return _finalize_tool_result(
        _call(
            "list_records",
            object_name=object_name,
            limit=limit,
            cursor=cursor,
            filter=_filter_text(filter),
            sort=sort,
            order=order,
            fields=fields,
            include=include,
            params=params,
            fetch_all_pages=fetch_all,
        )
    )


def get_record(
    object_name: str,
    record_id: str,
    fields: str = "",
    include: str = "",
) -> dict:
    """Get one record by ID."""
    return _finalize_tool_result(
        _call(
            "get_record",
            object_name=object_name,
            record_id=record_id,
            fields=fields,
            include=include,
        )
    )


def export_records(
    object_name: str,
    filter: dict | str | None = None,
    page_size: int = config.DEFAULT_EXPORT_PAGE_SIZE,
    fields: str = "",
) -> dict | list:
    """Return every record of an object as a flat list (follows all pages).

    Prefer list_records with a filter for large objects.
    """
    return _finalize_tool_result(
        _call(
            "export_records",
            object_name=object_name,
            filter=_filter_text(filter),
            page_size=page_size,
            fields=fields,
        )
    )


def register(mcp):
    """Register all read tools with the FastMCP instance."""
    mcp.tool()(list_objects)
    mcp.tool()(list_records)
    mcp.tool()(get_record)
    mcp.tool()(export_records)
