"""Core output dispatchers."""

import json

import jmespath
import yaml
from jmespath.exceptions import JMESPathError

from twenty_cli.exceptions import InputError
from twenty_cli.formatters._records import format_records_csv, format_records_table


def apply_query(data, query):
    """Project *data* through a JMESPath expression; no query returns it unchanged."""
    if not query:
        return data
    try:
        return jmespath.search(query, data)
    except JMESPathError as e:
        raise InputError(f"[INPUT_ERROR] invalid --query expression {query!r}: {e}") from None


def format_json(data):
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_yaml(data):
    return yaml.safe_dump(
        data, default_flow_style=False, sort_keys=False, allow_unicode=True
    ).rstrip("\n")


def render(data, fmt="json", query=None):
    """Return *data* rendered in *fmt* after the optional projection."""
    data = apply_query(data, query)
    if fmt == "json":
        return format_json(data)
    if fmt == "yaml":
        return format_yaml(data)
    if fmt == "csv":
        return format_records_csv(data)
    return format_records_table(data)


def output(data, fmt="json", query=None):
    """Output data in requested format."""
    text = render(data, fmt, query)
    if text:
        print(text)


def mutation_response(action, object_name=None, record_id=None, data=None, fmt="json", query=None):
    """Print a mutation confirmation.

    Empty API responses (for example a soft delete answered with 204)
    print ``OK: <action> <object> <id>``; otherwise the response is output
    in the requested format.
    """
    if data is not None and data != {}:
        output(data, fmt, query)
        return
    parts = [action]
    if object_name:
        parts.append(object_name)
    if record_id:
        parts.append(record_id)
    print(f"OK: {' '.join(parts)}")
