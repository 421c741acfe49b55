"""
HTTP request layer, security helpers, and API key validation for twenty-cli.

The records engine only sees ``rest_request(method, path, body) -> bytes``;
retries, timeouts, logging and error envelopes all live here.
"""

import email.utils
import hashlib
import json
import re
import sys
import time
import urllib.error
import urllib.parse
import urllib.request
import uuid

from twenty_cli import config
from twenty_cli.exceptions import CliError, HTTPError, SetupError

_RETRYABLE_HTTP_CODES = frozenset({429, 502, 503, 504})
_IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "DELETE"})


# ---------------------------------------------------------------------------
# Security helpers
# ---------------------------------------------------------------------------


def _mask_token(token):
    """Show only first 6 chars of a token for safe logging."""
    return token[:6] + "..." if len(token) > 6 else token


def _safe_json_parse(text, context="input"):
    """Parse JSON with friendly error message on failure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CliError(f"[ERROR] Invalid JSON in {context}: {e.msg} at position {e.pos}") from None


def _sanitize_error(body, max_len=500):
    """Truncate and clean error body for safe display."""
    if not body:
        return ""
    cleaned = re.sub(r"<[^>]+>", "", body)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) > max_len:
        return cleaned[:max_len] + "... [truncated]"
    return cleaned


def _api_error_detail(body):
    """Pull a readable message out of an API error body.

    Handles ``{"error": {"code", "message"}}``, ``{"messages": [...]}`` and
    ``{"error": "...", "message": "..."}``; anything else is sanitized text.
    """
    try:
        parsed = json.loads(body) if body else None
    except json.JSONDecodeError:
        parsed = None
    if not isinstance(parsed, dict):
        return _sanitize_error(body)

    err = parsed.get("error")
    if isinstance(err, dict):
        code = err.get("code") or ""
        message = err.get("message") or ""
        if code and message:
            return _sanitize_error(f"{code}: {message}")
        if message or code:
            return _sanitize_error(message or code)

    messages = parsed.get("messages")
    if isinstance(messages, list) and messages:
        return _sanitize_error("; ".join(str(m) for m in messages))

    message = parsed.get("message")
    if isinstance(message, str) and message:
        if isinstance(err, str) and err:
            return _sanitize_error(f"{err}: {message}")
        return _sanitize_error(message)
    return _sanitize_error(body)


# ---------------------------------------------------------------------------
# HTTP request layer
# ---------------------------------------------------------------------------


def _sanitize_url_for_log(url):
    """Mask sensitive query params in URLs before logging."""
    parsed = urllib.parse.urlsplit(url)
    if not parsed.query:
        return url
    pairs = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
    masked = []
    for key, value in pairs:
        if key.lower() in {"token", "apikey", "api_key"}:
            masked.append((key, "***"))
        else:
            masked.append((key, value))
    safe_query = urllib.parse.urlencode(masked, doseq=True)
    return urllib.parse.urlunsplit(
        (parsed.scheme, parsed.netloc, parsed.path, safe_query, parsed.fragment)
    )


def _log_http_event(**fields):
    """Emit structured HTTP logs to stderr when enabled."""
    if not config.HTTP_LOG_ENABLED:
        return
    print("[HTTP] " + json.dumps(fields, ensure_ascii=False, sort_keys=True), file=sys.stderr)


def _is_sampled_request(request_id):
    """Decide if a request should be logged based on sample rate."""
    rate = config.HTTP_LOG_SAMPLE_RATE
    if rate <= 0:
        return False
    if rate >= 1:
        return True
    if not request_id:
        return False
    digest = hashlib.sha256(request_id.encode("utf-8")).digest()
    bucket = int.from_bytes(digest[:4], "big") / 4294967295.0
    return bucket < rate


def _error_envelope(message, status=None, request_id=None, retryable=None, detail=None):
    """Build a consistent CLI-safe HTTP error message."""
    meta = []
    if status is not None:
        meta.append(f"status={status}")
    if request_id:
        meta.append(f"request_id={request_id}")
    if retryable is not None:
        meta.append(f"retryable={'yes' if retryable else 'no'}")
    suffix = f" ({', '.join(meta)})" if meta else ""
    body = f"[ERROR] {message}{suffix}"
    if detail:
        body += f"\n{detail}"
    return body


def _parse_retry_after(headers):
    """Return Retry-After seconds from response headers, or None.

    Accepts delta-seconds or an HTTP date; capped at HTTP_RETRY_MAX_SECONDS.
    """
    if not headers:
        return None
    value = headers.get("Retry-After")
    if value is None:
        return None
    value = str(value).strip()
    try:
        secs = float(int(value))
    except ValueError:
        try:
            when = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when is None:
            return None
        secs = when.timestamp() - time.time()
    return min(max(0.0, secs), config.HTTP_RETRY_MAX_SECONDS)


def _backoff_seconds(attempt):
    return min(config.HTTP_RETRY_BASE_SECONDS * (2**attempt), config.HTTP_RETRY_MAX_SECONDS)


def _http_request(url, data=None, headers=None, method="GET", idempotent=False):
    """Make an HTTP request with standard error handling.
    Returns the raw response bytes on success (possibly empty).
    Raises HTTPError for HTTP errors (caller handles specific codes).
    Raises CliError on network/timeout/size errors."""
    body = json.dumps(data).encode("utf-8") if data is not None else None
    request_id = (headers or {}).get("X-Request-Id")
    safe_url = _sanitize_url_for_log(url)
    sampled = _is_sampled_request(request_id)
    max_attempts = 1 + max(0, config.HTTP_MAX_RETRIES if idempotent else 0)
    timeout = max(1, config.HTTP_TIMEOUT_SECONDS)
    last_timeout = False
    last_url_error = None

    for attempt in range(max_attempts):
        start = time.perf_counter()
        req = urllib.request.Request(url, data=body, headers=headers or {}, method=method)
        if sampled:
            _log_http_event(
                phase="request",
                method=method,
                url=safe_url,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                idempotent=idempotent,
                request_id=request_id,
                timeout_seconds=timeout,
            )
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                raw = resp.read(config.HTTP_MAX_RESPONSE_BYTES + 1)
                if len(raw) > config.HTTP_MAX_RESPONSE_BYTES:
                    raise CliError(
                        "[ERROR] Response too large from API "
                        f"(>{config.HTTP_MAX_RESPONSE_BYTES} bytes)."
                    )
                if sampled:
                    _log_http_event(
                        phase="response",
                        method=method,
                        url=safe_url,
                        attempt=attempt + 1,
                        status=getattr(resp, "status", 200),
                        content_type=resp.headers.get("Content-Type", ""),
                        bytes=len(raw),
                        latency_ms=round((time.perf_counter() - start) * 1000, 2),
                        request_id=request_id,
                    )
                return raw
        except urllib.error.HTTPError as e:
            error_body = (
                e.read(config.HTTP_MAX_RESPONSE_BYTES).decode("utf-8", errors="replace")
                if e.fp
                else ""
            )
            retryable = e.code in _RETRYABLE_HTTP_CODES
            can_retry = idempotent and attempt < max_attempts - 1 and retryable
            if sampled:
                _log_http_event(
                    phase="response",
                    method=method,
                    url=safe_url,
                    attempt=attempt + 1,
                    status=e.code,
                    retryable=retryable,
                    will_retry=can_retry,
                    latency_ms=round((time.perf_counter() - start) * 1000, 2),
                    request_id=request_id,
                )
            if can_retry:
                retry_after = _parse_retry_after(getattr(e, "headers", None))
                if retry_after is None:
                    retry_after = _backoff_seconds(attempt)
                time.sleep(retry_after)
                continue
            raise HTTPError(e.code, e.reason, error_body, headers=e.headers) from e
        except TimeoutError as e:
            last_timeout = True
            if sampled:
                _log_http_event(
                    phase="network_error",
                    method=method,
                    url=safe_url,
                    attempt=attempt + 1,
                    error="timeout",
                    will_retry=idempotent and attempt < max_attempts - 1,
                    request_id=request_id,
                )
            if idempotent and attempt < max_attempts - 1:
                time.sleep(_backoff_seconds(attempt))
                continue
            raise CliError(
                _error_envelope(
                    f"Request timed out after {timeout} seconds. Is the API reachable?",
                    request_id=request_id,
                    retryable=False,
                )
            ) from e
        except urllib.error.URLError as e:
            last_url_error = e.reason
            if sampled:
                _log_http_event(
                    phase="network_error",
                    method=method,
                    url=safe_url,
                    attempt=attempt + 1,
                    error=f"url_error: {e.reason}",
                    will_retry=idempotent and attempt < max_attempts - 1,
                    request_id=request_id,
                )
            if idempotent and attempt < max_attempts - 1:
                time.sleep(_backoff_seconds(attempt))
                continue
            raise CliError(
                _error_envelope(
                    f"Connection failed: {e.reason}",
                    request_id=request_id,
                    retryable=False,
                )
            ) from e

    if last_timeout:
        raise CliError(
            _error_envelope(
                f"Request timed out after {timeout} seconds. Is the API reachable?",
                request_id=request_id,
                retryable=False,
            )
        )
    if last_url_error is not None:
        raise CliError(
            _error_envelope(
                f"Connection failed: {last_url_error}",
                request_id=request_id,
                retryable=False,
            )
        )
    raise CliError(_error_envelope("Request failed.", request_id=request_id))


def rest_request(method, path, body=None):
    """Make an authenticated REST request and return the raw response bytes.

    *path* is relative to BASE_URL and may carry a query string.
    """
    method = method.upper()
    url = config.BASE_URL + path
    headers = {
        "Authorization": f"Bearer {config.API_KEY}",
        "Content-Type": "application/json",
        "Accept": "application/json",
        "X-Request-Id": str(uuid.uuid4()),
    }
    try:
        return _http_request(
            url, body, headers, method, idempotent=method in _IDEMPOTENT_METHODS
        )
    except HTTPError as e:
        if e.code in (401, 403):
            raise SetupError(
                f"[TOKEN_EXPIRED] The API rejected the key {_mask_token(config.API_KEY)!r} "
                f"(HTTP {e.code}). Check TWENTY_API_KEY or run: "
                "twenty-cli config set api_key <key>"
            ) from e
        server_req_id = e.headers.get("X-Request-Id") if e.headers else None
        raise CliError(
            _error_envelope(
                f"HTTP {e.code}: {e.reason}",
                status=e.code,
                request_id=server_req_id,
                retryable=e.code in _RETRYABLE_HTTP_CODES,
                detail=_api_error_detail(e.body),
            )
        ) from e


def decode_json(raw, context="response"):
    """Decode a raw response body; empty bodies decode to None."""
    if raw is None:
        return None
    if isinstance(raw, (dict, list)):
        return raw
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise CliError(f"[ERROR] Unexpected {context} from API (not UTF-8).") from None
    if not raw.strip():
        return None
    return _safe_json_parse(raw, context)


METADATA_OBJECTS_PATH = "/rest/metadata/objects"


def parse_objects(raw):
    """Return the object dicts of a metadata response."""
    result = decode_json(raw, "metadata response")
    data = result.get("data") if isinstance(result, dict) else None
    objects = data.get("objects") if isinstance(data, dict) else None
    if not isinstance(objects, list):
        raise CliError("[ERROR] Unexpected metadata response shape: missing data.objects.")
    return [o for o in objects if isinstance(o, dict)]


def list_objects():
    """Return the object metadata list from /rest/metadata/objects."""
    return parse_objects(rest_request("GET", METADATA_OBJECTS_PATH))


# ---------------------------------------------------------------------------
# API key validation
# ---------------------------------------------------------------------------


def _check_token():
    """Ensure an API key and base URL are configured before any API command."""
    if not config.API_KEY:
        raise SetupError(
            "[SETUP_NEEDED] No API key configured.\n"
            "  Set TWENTY_API_KEY in .env or the environment,\n"
            "  or run: twenty-cli config set api_key <key>"
        )
    if not config.BASE_URL.startswith(("http://", "https://")):
        raise SetupError(
            f"[SETUP_NEEDED] Invalid base URL {config.BASE_URL!r}.\n"
            "  Run: twenty-cli config set base_url https://<your-workspace-host>"
        )
