"""
twenty-cli exception hierarchy.

All custom exceptions live here to avoid circular imports.
"""


class CliError(Exception):
    """Exit code 1: validation, not-found, network, parse errors."""

    exit_code = 1


class InputError(CliError):
    """Malformed JSON, payload shape, key=value or path=value expressions."""


class BatchError(CliError):
    """A batch chunk failed under the stop-on-first-error policy."""

    def __init__(self, message, succeeded=0, errors=None):
        super().__init__(message)
        self.succeeded = succeeded
        self.errors = list(errors or [])


class SetupError(CliError):
    """Exit code 2: missing API key or base URL, rejected token."""

    exit_code = 2


class HTTPError(Exception):
    """Raised by _http_request for HTTP errors that callers want to handle."""

    def __init__(self, code, reason, body, headers=None):
        self.code = code
        self.reason = reason
        self.body = body
        self.headers = headers or {}
