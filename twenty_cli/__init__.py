"""twenty-cli: generic records engine and CLI for the Twenty CRM REST API."""

from twenty_cli.client import RecordsClient
from twenty_cli.config import VERSION
from twenty_cli.exceptions import BatchError, CliError, InputError, SetupError
from twenty_cli.models import BatchResult, PageInfo, PageResult, QueryOptions, Resolution, Runtime

__all__ = [
    "VERSION",
    "RecordsClient",
    "BatchError",
    "CliError",
    "InputError",
    "SetupError",
    "BatchResult",
    "PageInfo",
    "PageResult",
    "QueryOptions",
    "Resolution",
    "Runtime",
]
