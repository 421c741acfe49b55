"""Core helpers: client caching, _call dispatcher, response contract."""

from __future__ import annotations

from twenty_cli import config
from twenty_cli.client import RecordsClient
from twenty_cli.exceptions import BatchError, CliError, InputError, SetupError

_client: RecordsClient | None = None


def _get_client() -> RecordsClient:
    """Return a cached RecordsClient, creating one on first use."""
    global _client
    if _client is None:
        _client = RecordsClient()
    return _client


def _contract_error(message: str, error_type: str = "error", **extra) -> dict:
    """Return a stable MCP error envelope."""
    detail = {"type": error_type, "message": message}
    detail.update(extra)
    return {
        "ok": False,
        "schema_version": config.CONTRACT_SCHEMA_VERSION,
        "error": detail,
    }


def _finalize_tool_result(result):
    """Finalize tool response based on configured MCP response mode.

    Modes:
        - legacy (default): dicts gain ok/schema_version, other values pass
          through unchanged.
        - envelope: always return {"ok", "schema_version", "data"} for success.
    """
    if isinstance(result, dict) and result.get("ok") is False and "error" in result:
        return result
    if config.MCP_RESPONSE_MODE == "envelope":
        return {
            "ok": True,
            "schema_version": config.CONTRACT_SCHEMA_VERSION,
            "data": result,
        }
    if isinstance(result, dict):
        out = dict(result)
        out.setdefault("ok", True)
        out.setdefault("schema_version", config.CONTRACT_SCHEMA_VERSION)
        return out
    return result


_ALLOWED_METHODS = {
    "list_objects",
    "list_records",
    "get_record",
    "create_record",
    "update_record",
    "delete_record",
    "restore_record",
    "batch_create",
    "batch_update",
    "export_records",
}


def _call(method_name: str, **kwargs):
    """Call a RecordsClient method, converting exceptions to error dicts."""
    if method_name not in _ALLOWED_METHODS:
        return _contract_error(f"Unknown method: {method_name}", "error")
    try:
        client = _get_client()
        return getattr(client, method_name)(**kwargs)
    except SetupError as e:
        return _contract_error(str(e), "setup")
    except InputError as e:
        return _contract_error(str(e), "input_error")
    except BatchError as e:
        return _contract_error(str(e), "batch_error", succeeded=e.succeeded, errors=e.errors)
    except CliError as e:
        return _contract_error(str(e), "error")
    except Exception as e:
        return _contract_error(f"Unexpected error: {e}", "error")
