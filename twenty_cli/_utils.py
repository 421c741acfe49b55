"""
Shared pure-utility functions for twenty-cli.

These helpers have no business logic and no side effects.
They are used across body.py, params.py, client.py and formatters.
"""

import json
import math


def _reject_constant(name):
    raise ValueError(f"non-finite number {name}")


def _finite_float(text):
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range {text}")
    return value


def parse_json_value(raw):
    """Parse a set-expression value as a JSON literal, else keep it as a string.

    "42" -> 42, "true" -> True, "null" -> None, '["a"]' -> ["a"];
    anything that does not parse (including "") stays a plain string.
    """
    raw = raw.strip()
    if raw == "":
        return ""
    try:
        return json.loads(raw, parse_float=_finite_float, parse_constant=_reject_constant)
    except ValueError:
        return raw


def compact_json(value):
    """Serialize *value* as compact JSON (no whitespace between tokens)."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def split_ids(raw):
    """Split a comma-separated ID list, trimming blanks."""
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


def type_name(value):
    """JSON type name of a decoded value, for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
