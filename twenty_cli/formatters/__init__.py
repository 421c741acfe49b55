"""Output formatting package for twenty-cli.

Re-exports all public names so consumers can do:
    from twenty_cli.formatters import output
"""

from twenty_cli.formatters._core import (
    apply_query,
    format_json,
    format_yaml,
    mutation_response,
    output,
    render,
)
from twenty_cli.formatters._records import (
    find_record_array,
    format_cell,
    format_records_csv,
    format_records_table,
)
from twenty_cli.formatters._table import (
    _CONTROL_RE,
    _sanitize_str,
    _table,
    _trunc,
)

__all__ = [
    "_CONTROL_RE",
    "_sanitize_str",
    "_table",
    "_trunc",
    "apply_query",
    "find_record_array",
    "format_cell",
    "format_json",
    "format_records_csv",
    "format_records_table",
    "format_yaml",
    "mutation_response",
    "output",
    "render",
]
