"""
List extraction from REST responses and the fetch-all pagination loop.
"""

from twenty_cli.api import decode_json
from twenty_cli.exceptions import CliError
from twenty_cli.models import PageInfo, PageResult


def _page_info(raw):
    if not isinstance(raw, dict):
        return None
    has_next = raw.get("hasNextPage")
    end_cursor = raw.get("endCursor")
    return PageInfo(
        end_cursor=end_cursor if isinstance(end_cursor, str) else "",
        has_next_page=has_next if isinstance(has_next, bool) else False,
    )


def extract_list(raw, plural):
    """Return ``(items, page_info)`` from a list response.

    Items come from ``data[plural]`` when it is an array, otherwise from the
    first array value under ``data``. ``page_info`` is None when the
    response has no ``pageInfo`` object.
    """
    resp = decode_json(raw, "list response")
    if not isinstance(resp, dict):
        raise CliError("[ERROR] response missing data field")
    data = resp.get("data")
    if not isinstance(data, dict):
        raise CliError("[ERROR] response missing data field")

    items = data.get(plural)
    if not isinstance(items, list):
        items = next((v for v in data.values() if isinstance(v, list)), None)
    if items is None:
        raise CliError(f"[ERROR] response did not contain list data for {plural}")

    return items, _page_info(resp.get("pageInfo"))


def fetch_all(fetch_page, plural, cursor=""):
    """Follow cursors until the API reports no further page.

    *fetch_page(cursor)* returns one raw response. The loop stops when the
    response has no pageInfo, ``hasNextPage`` is false, or the next cursor
    is empty.
    """
    result = PageResult()
    while True:
        raw = fetch_page(cursor)
        items, page_info = extract_list(raw, plural)
        result.items.extend(items)
        result.pages += 1
        result.page_info = page_info
        if page_info is None or not page_info.has_next_page or not page_info.end_cursor:
            return result
        cursor = page_info.end_cursor
