"""Low-level table rendering helpers."""

import re

_CONTROL_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]|[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

MAX_COLUMN_WIDTH = 40


def _trunc(s, maxlen):
    """Truncate string with ellipsis indicator."""
    if not s:
        return ""
    return s[: maxlen - 1] + "…" if len(s) > maxlen else s


def _sanitize_str(s):
    """Strip ANSI escape sequences and control chars from table output.
    Newlines and tabs become spaces so a cell stays on one line."""
    if not s:
        return s
    return _CONTROL_RE.sub("", str(s)).replace("\n", " ").replace("\t", " ")


def _column_widths(headers, rows, max_width=MAX_COLUMN_WIDTH):
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    return [min(w, max_width) for w in widths]


def _table(columns, rows, footer=None):
    """Build a formatted table string.
    columns: list of (name, width) tuples. Last column has no width (fills).
    rows: list of tuples matching columns.
    footer: optional footer line."""
    parts = []
    for i, (name, width) in enumerate(columns):
        if i == len(columns) - 1:
            parts.append(name)
        else:
            parts.append(f"{_trunc(name, width):<{width}}")
    header = "  ".join(parts)
    sep = "-" * len(header.rstrip())
    lines = [header, sep]
    for row in rows:
        parts = []
        for i, val in enumerate(row):
            safe = _sanitize_str(val) if isinstance(val, str) else str(val)
            if i == len(columns) - 1:
                parts.append(safe)
            else:
                width = columns[i][1]
                parts.append(f"{_trunc(safe, width):<{width}}")
        lines.append("  ".join(parts).rstrip())
    if footer:
        lines.append(f"\n{footer}")
    return "\n".join(lines)
