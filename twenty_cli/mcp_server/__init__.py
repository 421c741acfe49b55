"""MCP server exposing RecordsClient methods as tools.

Package structure:
  __init__.py       FastMCP init, register() calls, re-exports
  __main__.py       ``python -m twenty_cli.mcp_server`` entry point
  _core.py          Client caching, _call dispatcher, response contract
  _tools_read.py    4 metadata/list/get/export tools
  _tools_write.py   6 single-record and batch mutation tools

Run: python -m twenty_cli.mcp_server
Requires: pip install .[mcp]
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from twenty_cli.mcp_server import _tools_read, _tools_write

mcp = FastMCP(
    "twenty",
    instructions=(
        "Twenty CRM record tools that work on any object, standard or custom. "
        "Object names may be singular or plural in any case (person, People). "
        "Call list_objects to discover custom objects. "
        "Filters are JSON objects such as {\"name\": {\"eq\": \"Acme\"}}. "
        "Batch tools send at most 60 records per request."
    ),
)

for _mod in [_tools_read, _tools_write]:
    _mod.register(mcp)

# ---------------------------------------------------------------------------
# Re-exports (tests import via mcp_mod.xxx)
# ---------------------------------------------------------------------------

from twenty_cli.mcp_server._core import (  # noqa: E402, F401
    _call,
    _contract_error,
    _finalize_tool_result,
    _get_client,
)
from twenty_cli.mcp_server._tools_read import (  # noqa: E402, F401
    export_records,
    get_record,
    list_objects,
    list_records,
)
from twenty_cli.mcp_server._tools_write import (  # noqa: E402, F401
    batch_create_records,
    batch_update_records,
    create_record,
    delete_record,
    restore_record,
    update_record,
)


def main():
    """Run the MCP server (stdio transport)."""
    mcp.run()
