"""
twenty-cli shared configuration and constants.
Standalone module, no imports from other project files.

Settings are read once at import from the project .env file, overlaid by
process environment variables. Per-invocation flags (format, query,
no-resolve, ...) are not stored here; see models.Runtime.
"""

import os
import tempfile

from twenty_cli.exceptions import CliError, SetupError  # noqa: F401

# ---------------------------------------------------------------------------
# .env path and helpers
# ---------------------------------------------------------------------------

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)

ENV_PATH = os.environ.get("TWENTY_ENV_FILE") or os.path.join(_PROJECT_ROOT, ".env")


def load_env():
    env = {}
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, val = line.split("=", 1)
                    env[key.strip()] = val.strip()
    # Process environment wins over the file.
    for key, val in os.environ.items():
        if key.startswith("TWENTY_"):
            env[key] = val
    return env


def save_env_value(key, value):
    """Update or add a key in the .env file (atomic write-then-rename)."""
    lines = []
    found = False
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH) as f:
            lines = f.readlines()
    for i, line in enumerate(lines):
        if line.strip().startswith(f"{key}="):
            lines[i] = f"{key}={value}\n"
            found = True
            break
    if not found:
        lines.append(f"{key}={value}\n")
    env_dir = os.path.dirname(ENV_PATH) or "."
    fd, tmp_path = tempfile.mkstemp(dir=env_dir, prefix=".env_tmp_")
    try:
        with os.fdopen(fd, "w") as f:
            f.writelines(lines)
        os.replace(tmp_path, ENV_PATH)
    except Exception:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise
    # Restrict to owner-only on Unix/Mac. No-op on Windows.
    try:
        os.chmod(ENV_PATH, 0o600)
    except (OSError, NotImplementedError):
        pass


def _env_bool(key, default=False):
    """Parse common boolean env formats."""
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(key, default):
    """Parse integer env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key, default):
    """Parse float env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.3.0"
CONTRACT_SCHEMA_VERSION = "1.0"

VALID_FORMATS = ("json", "yaml", "csv", "table")
VALID_SORT_ORDERS = (
    "asc",
    "desc",
    "AscNullsFirst",
    "AscNullsLast",
    "DescNullsFirst",
    "DescNullsLast",
)
REST_METHODS = ("GET", "POST", "PATCH", "PUT", "DELETE")

MAX_BATCH_SIZE = 60
DEFAULT_LIST_LIMIT = 20
DEFAULT_EXPORT_PAGE_SIZE = 200

DEFAULT_BASE_URL = "https://api.twenty.com"

# Keys `config set` is allowed to persist.
SETTABLE_KEYS = {
    "base_url": "TWENTY_BASE_URL",
    "api_key": "TWENTY_API_KEY",
    "http_timeout_seconds": "TWENTY_HTTP_TIMEOUT_SECONDS",
    "http_max_retries": "TWENTY_HTTP_MAX_RETRIES",
    "http_log": "TWENTY_HTTP_LOG",
}

# ---------------------------------------------------------------------------
# Module-level settings (loaded once from .env and the environment)
# ---------------------------------------------------------------------------

env = load_env()

API_KEY = env.get("TWENTY_API_KEY", "") or env.get("TWENTY_TOKEN", "")
BASE_URL = (env.get("TWENTY_BASE_URL", "") or DEFAULT_BASE_URL).rstrip("/")
HTTP_TIMEOUT_SECONDS = _env_int("TWENTY_HTTP_TIMEOUT_SECONDS", 30)
HTTP_MAX_RETRIES = _env_int("TWENTY_HTTP_MAX_RETRIES", 3)
HTTP_RETRY_BASE_SECONDS = _env_float("TWENTY_HTTP_RETRY_BASE_SECONDS", 1.0)
HTTP_RETRY_MAX_SECONDS = _env_float("TWENTY_HTTP_RETRY_MAX_SECONDS", 30.0)
HTTP_MAX_RESPONSE_BYTES = _env_int("TWENTY_HTTP_MAX_RESPONSE_BYTES", 20_000_000)
HTTP_LOG_ENABLED = _env_bool("TWENTY_HTTP_LOG", False)
HTTP_LOG_SAMPLE_RATE = min(1.0, max(0.0, _env_float("TWENTY_HTTP_LOG_SAMPLE_RATE", 1.0)))

# MCP tool responses: "legacy" (plain dicts) or "envelope" ({ok, schema_version, data}).
MCP_RESPONSE_MODE = env.get("TWENTY_MCP_RESPONSE_MODE", "legacy")
if MCP_RESPONSE_MODE not in ("legacy", "envelope"):
    MCP_RESPONSE_MODE = "legacy"
