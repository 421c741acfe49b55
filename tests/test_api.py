"""Tests for api.py: security helpers, HTTP retries, error mapping, token validation."""

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from twenty_cli.api import (
    HTTPError,
    _api_error_detail,
    _check_token,
    _error_envelope,
    _http_request,
    _is_sampled_request,
    _log_http_event,
    _mask_token,
    _parse_retry_after,
    _sanitize_error,
    _sanitize_url_for_log,
    decode_json,
    list_objects,
    parse_objects,
    rest_request,
)
from twenty_cli.exceptions import CliError, SetupError


def _http_error(code, body=b"", headers=None):
    return urllib.error.HTTPError(
        "https://crm.example.com/rest/people",
        code,
        "Reason",
        headers or {},
        io.BytesIO(body),
    )


def _ok_response(body):
    cm = MagicMock()
    resp = cm.__enter__.return_value
    resp.headers.get.return_value = "application/json"
    resp.read.return_value = body
    return cm


class TestMaskToken:
    def test_long_token(self):
        assert _mask_token("abcdef1234567890") == "abcdef..."

    def test_short_token(self):
        assert _mask_token("abc") == "abc"


class TestSanitizeUrlForLog:
    def test_masks_secret_params(self):
        safe = _sanitize_url_for_log(
            "https://crm.example.com/rest/people?token=s1&apiKey=s2&limit=5"
        )
        assert "s1" not in safe
        assert "s2" not in safe
        assert "limit=5" in safe

    def test_no_query_unchanged(self):
        assert _sanitize_url_for_log("https://x/rest") == "https://x/rest"


class TestSanitizeError:
    def test_strips_html(self):
        assert _sanitize_error("<h1>Bad</h1>  gateway") == "Bad gateway"

    def test_truncates(self):
        out = _sanitize_error("x" * 600)
        assert out.endswith("... [truncated]")
        assert len(out) < 600


class TestApiErrorDetail:
    def test_code_and_message(self):
        body = json.dumps({"error": {"code": "BAD_REQUEST", "message": "name is required"}})
        assert _api_error_detail(body) == "BAD_REQUEST: name is required"

    def test_messages_list(self):
        body = json.dumps({"statusCode": 400, "messages": ["a", "b"], "error": "Bad"})
        assert _api_error_detail(body) == "a; b"

    def test_error_and_message_strings(self):
        body = json.dumps({"error": "NotFound", "message": "no record"})
        assert _api_error_detail(body) == "NotFound: no record"

    def test_plain_text(self):
        assert _api_error_detail("upstream down") == "upstream down"


class TestErrorEnvelope:
    def test_meta(self):
        msg = _error_envelope("HTTP 500", status=500, request_id="r1", retryable=True, detail="d")
        assert msg == "[ERROR] HTTP 500 (status=500, request_id=r1, retryable=yes)\nd"


class TestSampling:
    def test_sample_rate_zero_disables(self, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.HTTP_LOG_SAMPLE_RATE", 0.0)
        assert _is_sampled_request("req-1") is False

    def test_sample_rate_one_enables(self, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.HTTP_LOG_SAMPLE_RATE", 1.0)
        assert _is_sampled_request("req-1") is True

    def test_sampling_is_deterministic(self, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.HTTP_LOG_SAMPLE_RATE", 0.5)
        assert _is_sampled_request("req-stable") == _is_sampled_request("req-stable")


class TestLogHttpEvent:
    def test_disabled_prints_nothing(self, capsys):
        _log_http_event(phase="request")
        assert capsys.readouterr().err == ""

    def test_enabled_prints_json(self, monkeypatch, capsys):
        monkeypatch.setattr("twenty_cli.api.config.HTTP_LOG_ENABLED", True)
        _log_http_event(phase="request", method="GET")
        err = capsys.readouterr().err
        assert err.startswith("[HTTP] ")
        assert json.loads(err[len("[HTTP] ") :]) == {"method": "GET", "phase": "request"}


class TestParseRetryAfter:
    def test_seconds(self):
        assert _parse_retry_after({"Retry-After": "3"}) == 3.0

    def test_capped(self, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.HTTP_RETRY_MAX_SECONDS", 5.0)
        assert _parse_retry_after({"Retry-After": "120"}) == 5.0

    def test_missing(self):
        assert _parse_retry_after({}) is None
        assert _parse_retry_after(None) is None

    def test_garbage(self):
        assert _parse_retry_after({"Retry-After": "soon"}) is None


class TestHttpRetries:
    @patch("twenty_cli.api.time.sleep")
    @patch("twenty_cli.api.urllib.request.urlopen")
    def test_retries_429_for_idempotent_request(self, mock_urlopen, mock_sleep):
        mock_urlopen.side_effect = [
            _http_error(429, b"busy", {"Retry-After": "0"}),
            _ok_response(b'{"ok": true}'),
        ]
        assert _http_request("https://crm.example.com/rest", idempotent=True) == b'{"ok": true}'
        assert mock_urlopen.call_count == 2
        mock_sleep.assert_called_once_with(0.0)

    @patch("twenty_cli.api.time.sleep")
    @patch("twenty_cli.api.urllib.request.urlopen")
    def test_retries_503_then_gives_up(self, mock_urlopen, mock_sleep, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.HTTP_MAX_RETRIES", 2)
        mock_urlopen.side_effect = [_http_error(503) for _ in range(3)]
        with pytest.raises(HTTPError) as exc_info:
            _http_request("https://crm.example.com/rest", idempotent=True)
        assert exc_info.value.code == 503
        assert mock_urlopen.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("twenty_cli.api.urllib.request.urlopen")
    def test_does_not_retry_non_idempotent(self, mock_urlopen):
        mock_urlopen.side_effect = _http_error(429)
        with pytest.raises(HTTPError):
            _http_request("https://crm.example.com/rest", {"x": 1}, method="POST")
        assert mock_urlopen.call_count == 1

    @patch("twenty_cli.api.urllib.request.urlopen")
    def test_does_not_retry_400(self, mock_urlopen):
        mock_urlopen.side_effect = _http_error(400, b"bad")
        with pytest.raises(HTTPError) as exc_info:
            _http_request("https://crm.example.com/rest", idempotent=True)
        assert exc_info.value.body == "bad"
        assert mock_urlopen.call_count == 1

    @patch("twenty_cli.api.urllib.request.urlopen")
    def test_response_size_limit(self, mock_urlopen, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.HTTP_MAX_RESPONSE_BYTES", 4)
        mock_urlopen.return_value = _ok_response(b"12345")
        with pytest.raises(CliError) as exc_info:
            _http_request("https://crm.example.com/rest")
        assert "Response too large" in str(exc_info.value)

    @patch("twenty_cli.api.urllib.request.urlopen")
    def test_connection_error(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError("refused")
        with pytest.raises(CliError) as exc_info:
            _http_request("https://crm.example.com/rest", method="POST")
        assert "Connection failed: refused" in str(exc_info.value)

    @patch("twenty_cli.api.urllib.request.urlopen")
    def test_sends_json_body(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response(b"")
        _http_request("https://crm.example.com/rest", {"a": 1}, {"X": "y"}, "PATCH")
        req = mock_urlopen.call_args.args[0]
        assert req.get_method() == "PATCH"
        assert json.loads(req.data) == {"a": 1}


class TestRestRequest:
    @patch("twenty_cli.api._http_request")
    def test_builds_url_and_headers(self, mock_http):
        mock_http.return_value = b"{}"
        assert rest_request("get", "/rest/people?limit=1") == b"{}"
        url, body, headers, method = mock_http.call_args.args
        assert url == "https://crm.example.com/rest/people?limit=1"
        assert body is None
        assert method == "GET"
        assert headers["Authorization"] == "Bearer fake-api-key-123456"
        assert headers["X-Request-Id"]
        assert mock_http.call_args.kwargs["idempotent"] is True

    @patch("twenty_cli.api._http_request")
    def test_post_not_idempotent(self, mock_http):
        mock_http.return_value = b""
        rest_request("POST", "/rest/people", {"a": 1})
        assert mock_http.call_args.kwargs["idempotent"] is False

    @pytest.mark.parametrize("code", [401, 403])
    @patch("twenty_cli.api._http_request")
    def test_auth_errors_are_setup_errors(self, mock_http, code):
        mock_http.side_effect = HTTPError(code, "Unauthorized", "")
        with pytest.raises(SetupError) as exc_info:
            rest_request("GET", "/rest/people")
        assert exc_info.value.exit_code == 2
        assert "[TOKEN_EXPIRED]" in str(exc_info.value)
        assert "fake-api-key-123456" not in str(exc_info.value)

    @patch("twenty_cli.api._http_request")
    def test_other_errors_keep_detail(self, mock_http):
        body = json.dumps({"error": {"code": "NOT_FOUND", "message": "Record not found"}})
        mock_http.side_effect = HTTPError(404, "Not Found", body, {"X-Request-Id": "srv-1"})
        with pytest.raises(CliError) as exc_info:
            rest_request("GET", "/rest/people/x")
        msg = str(exc_info.value)
        assert not isinstance(exc_info.value, SetupError)
        assert "HTTP 404" in msg
        assert "request_id=srv-1" in msg
        assert "NOT_FOUND: Record not found" in msg


class TestDecodeJson:
    def test_empty_is_none(self):
        assert decode_json(b"") is None
        assert decode_json(b"  ") is None

    def test_bytes(self):
        assert decode_json(b'{"a": 1}') == {"a": 1}

    def test_passthrough(self):
        assert decode_json({"a": 1}) == {"a": 1}

    def test_invalid(self):
        with pytest.raises(CliError):
            decode_json(b"<html>")


class TestObjects:
    def test_parse_objects(self):
        raw = json.dumps({"data": {"objects": [{"namePlural": "people"}, "junk"]}})
        assert parse_objects(raw) == [{"namePlural": "people"}]

    def test_parse_objects_bad_shape(self):
        with pytest.raises(CliError):
            parse_objects(b'{"data": {}}')

    @patch("twenty_cli.api.rest_request")
    def test_list_objects(self, mock_rest):
        mock_rest.return_value = b'{"data": {"objects": []}}'
        assert list_objects() == []
        mock_rest.assert_called_once_with("GET", "/rest/metadata/objects")


class TestCheckToken:
    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.API_KEY", "")
        with pytest.raises(SetupError) as exc_info:
            _check_token()
        assert "[SETUP_NEEDED]" in str(exc_info.value)

    def test_bad_base_url(self, monkeypatch):
        monkeypatch.setattr("twenty_cli.api.config.BASE_URL", "crm.example.com")
        with pytest.raises(SetupError):
            _check_token()

    def test_ok(self):
        _check_token()
