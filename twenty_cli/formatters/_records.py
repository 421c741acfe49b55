"""Generic CSV and table rendering for record lists of any object."""

import csv
import io
import json

from twenty_cli._utils import compact_json
from twenty_cli.formatters._table import _column_widths, _sanitize_str, _table


def _maybe_json(data):
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    if isinstance(data, str):
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return data
    return data


def find_record_array(data):
    """Locate the list of records inside an API response.

    Handles ``{"data": {<plural>: [...]}}``, a flat array, and objects whose
    first array value holds the records. A lone object (for example a
    single-record response) is returned as a one-element list.
    """
    data = _maybe_json(data)
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    if not isinstance(data, dict):
        return []
    if "data" in data:
        inner = data["data"]
        if isinstance(inner, dict):
            for value in inner.values():
                if isinstance(value, list):
                    return [r for r in value if isinstance(r, dict)]
            dicts = [v for v in inner.values() if isinstance(v, dict)]
            if len(inner) == 1 and len(dicts) == 1:
                return dicts
            return [inner] if inner else []
        return find_record_array(inner)
    for value in data.values():
        if isinstance(value, list):
            return [r for r in value if isinstance(r, dict)]
    return [data] if data else []


def format_cell(value):
    """Render one JSON value as a flat cell: nested values as compact JSON."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return compact_json(value)
    return str(value)


def _headers_and_rows(data):
    records = find_record_array(data)
    if not records:
        return [], []
    headers = list(records[0].keys())
    rows = [[format_cell(r.get(h)) for h in headers] for r in records]
    return headers, rows


def format_records_csv(data):
    """Format records as CSV; columns follow the first record's keys."""
    headers, rows = _headers_and_rows(data)
    if not headers:
        return ""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue().rstrip("\n")


def format_records_table(data):
    """Format records as an aligned text table."""
    headers, rows = _headers_and_rows(data)
    if not headers:
        return "No records found."
    rows = [[_sanitize_str(c) for c in row] for row in rows]
    widths = _column_widths(headers, rows)
    columns = list(zip(headers, widths))
    footer = f"Total: {len(rows)}" if len(rows) > 1 else None
    return _table(columns, rows, footer)
