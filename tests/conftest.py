"""
Shared test fixtures for twenty-cli tests.
Patches config module to avoid loading real .env and making API calls.
"""

import json

import pytest


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Ensure every test starts with a clean config state.
    Prevents tests from reading or writing the real .env."""
    from twenty_cli import config

    monkeypatch.setattr(config, "env", {})
    monkeypatch.setattr(config, "ENV_PATH", str(tmp_path / ".env"))
    monkeypatch.setattr(config, "API_KEY", "fake-api-key-123456")
    monkeypatch.setattr(config, "BASE_URL", "https://crm.example.com")
    monkeypatch.setattr(config, "HTTP_LOG_ENABLED", False)
    monkeypatch.setattr(config, "HTTP_MAX_RETRIES", 3)
    monkeypatch.setattr(config, "HTTP_RETRY_BASE_SECONDS", 0.0)
    monkeypatch.setattr(config, "MCP_RESPONSE_MODE", "legacy")


class FakeTransport:
    """Records (method, path, body) calls and replays queued responses.

    Each queued response is bytes, a JSON-serializable value, or an
    exception instance to raise.
    """

    def __init__(self, *responses, objects=None):
        self.calls = []
        self.responses = list(responses)
        self.objects = objects

    def __call__(self, method, path, body=None):
        if path == "/rest/metadata/objects" and self.objects is not None:
            self.calls.append((method, path, body))
            return json.dumps({"data": {"objects": self.objects}}).encode()
        self.calls.append((method, path, body))
        if not self.responses:
            return b""
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        if isinstance(resp, bytes):
            return resp
        return json.dumps(resp).encode()

    @property
    def record_calls(self):
        return [c for c in self.calls if c[1] != "/rest/metadata/objects"]


@pytest.fixture
def fake_transport():
    return FakeTransport


PEOPLE_OBJECTS = [
    {"nameSingular": "person", "namePlural": "people", "labelSingular": "Person"},
    {"nameSingular": "company", "namePlural": "companies", "labelSingular": "Company"},
    {"nameSingular": "rocket", "namePlural": "rockets", "isCustom": True},
]
