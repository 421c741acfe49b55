"""
JSON input reading and mutation body building.

Every command that accepts a payload takes it from an inline string
(--data), a file (--file, "-" for stdin), or both; inline text wins when it
is non-empty. Mutation bodies are then refined with ordered --set
expressions such as ``name.firstName=Ada`` or ``score=42``.
"""

import json
import sys

from twenty_cli._utils import parse_json_value, split_ids, type_name
from twenty_cli.exceptions import InputError
from twenty_cli.models import ArrayPayload, ObjectPayload


def _read_source(data, file, context):
    if data:
        return data
    if file == "-":
        try:
            return sys.stdin.read()
        except OSError as e:
            raise InputError(f"[INPUT_ERROR] read {context} from stdin: {e}") from e
    try:
        with open(file, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise InputError(f"[INPUT_ERROR] read {context} file: {e}") from e


def read_json_input(data=None, file=None, context="payload"):
    """Read one JSON value from inline text or a file (``-`` for stdin).

    Returns None when neither source is given or the source is blank.
    Raises InputError on I/O failure or malformed JSON.
    """
    if not data and not file:
        return None
    text = _read_source(data, file, context)
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise InputError(
            f"[INPUT_ERROR] invalid JSON in {context}: {e.msg} at position {e.pos}"
        ) from None


def read_json_array(data=None, file=None, context="batch payload", hint="--data or --file"):
    """Read a required JSON array payload."""
    payload = read_json_input(data, file, context)
    if payload is None:
        raise InputError(f"[INPUT_ERROR] missing JSON payload; use {hint}")
    return ArrayPayload.from_value(payload, context).items


def read_batch_ids(data=None, file=None, ids=None):
    """Read record IDs from --ids (comma-separated) or a JSON array of strings."""
    if ids:
        out = split_ids(ids)
        if not out:
            raise InputError("[INPUT_ERROR] no valid IDs provided")
        return out
    items = read_json_array(data, file, hint="--data, --file, or --ids")
    for item in items:
        if not isinstance(item, str):
            raise InputError(
                "[INPUT_ERROR] batch payload must be a JSON array of strings, "
                f"found {type_name(item)}"
            )
    return items


def apply_set(target, expr):
    """Apply one ``a.b.c=value`` expression to *target* in place."""
    path, sep, value = expr.partition("=")
    if not sep:
        raise InputError(f'[INPUT_ERROR] invalid set expression "{expr}" (expected key=value)')
    path = path.strip()
    if not path:
        raise InputError(f'[INPUT_ERROR] invalid set expression "{expr}" (empty key)')

    parts = path.split(".")
    if any(part == "" for part in parts):
        raise InputError(f'[INPUT_ERROR] invalid set expression "{expr}" (empty path segment)')

    current = target
    for part in parts[:-1]:
        child = current.get(part)
        if child is None and part not in current:
            child = {}
            current[part] = child
        elif not isinstance(child, dict):
            raise InputError(f'[INPUT_ERROR] set path "{path}" conflicts with non-object value')
        current = child
    current[parts[-1]] = parse_json_value(value)
    return target


def build_body(data=None, file=None, sets=None):
    """Merge a raw JSON object and ordered set expressions into one body.

    Later setters win over earlier ones and over the raw payload.
    """
    sets = list(sets or [])
    payload = read_json_input(data, file, "payload")
    if payload is None:
        body = {}
    else:
        body = ObjectPayload.from_value(payload, "payload").data

    for expr in sets:
        apply_set(body, expr)

    if payload is None and not sets:
        raise InputError("[INPUT_ERROR] missing JSON payload; use --data, --file, or --set")
    return body
