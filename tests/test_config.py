"""Tests for config.py: env loading, saving, and constants."""

import pytest

from twenty_cli import config

_KNOWN_ENV_KEYS = [
    "TWENTY_API_KEY",
    "TWENTY_TOKEN",
    "TWENTY_BASE_URL",
    "TWENTY_HTTP_TIMEOUT_SECONDS",
    "TWENTY_HTTP_MAX_RETRIES",
    "TWENTY_HTTP_LOG",
    "TWENTY_HTTP_LOG_SAMPLE_RATE",
    "TWENTY_MCP_RESPONSE_MODE",
]


@pytest.fixture(autouse=True)
def _clean_environ(monkeypatch):
    """Remove TWENTY_* keys from os.environ so file-parsing tests are isolated."""
    for key in _KNOWN_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestLoadEnv:
    def test_basic_key_value(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("FOO=bar\nBAZ=qux\n")
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        assert config.load_env() == {"FOO": "bar", "BAZ": "qux"}

    def test_strips_whitespace(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("  KEY  =  value  \n")
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        assert config.load_env() == {"KEY": "value"}

    def test_skips_comments_and_blank_lines(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("# comment\nA=1\n\n\nB=2\nnot a pair\n")
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        assert config.load_env() == {"A": "1", "B": "2"}

    def test_value_with_equals_sign(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("TWENTY_API_KEY=abc=def=ghi\n")
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        assert config.load_env() == {"TWENTY_API_KEY": "abc=def=ghi"}

    def test_missing_file_returns_empty(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "ENV_PATH", str(tmp_path / "nonexistent"))
        assert config.load_env() == {}


class TestLoadEnvProcessEnvironment:
    def test_environ_used_when_no_env_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "ENV_PATH", str(tmp_path / "nonexistent"))
        monkeypatch.setenv("TWENTY_API_KEY", "from-environ")
        assert config.load_env()["TWENTY_API_KEY"] == "from-environ"

    def test_environ_overrides_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("TWENTY_BASE_URL=https://file.example\nTWENTY_HTTP_LOG=0\n")
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        monkeypatch.setenv("TWENTY_BASE_URL", "https://environ.example")
        result = config.load_env()
        assert result["TWENTY_BASE_URL"] == "https://environ.example"
        assert result["TWENTY_HTTP_LOG"] == "0"

    def test_unrelated_keys_not_pulled_from_environ(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "ENV_PATH", str(tmp_path / "nonexistent"))
        monkeypatch.setenv("RANDOM_KEY", "should-not-appear")
        assert "RANDOM_KEY" not in config.load_env()


class TestSaveEnvValue:
    def test_creates_new_key(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("A=1\n")
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        config.save_env_value("B", "2")
        assert env_file.read_text() == "A=1\nB=2\n"

    def test_updates_existing_key(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("A=1\nB=old\nC=3\n")
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        config.save_env_value("B", "new")
        assert env_file.read_text() == "A=1\nB=new\nC=3\n"

    def test_creates_file_if_missing(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        config.save_env_value("KEY", "val")
        assert env_file.read_text() == "KEY=val\n"

    def test_no_temp_files_left(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        monkeypatch.setattr(config, "ENV_PATH", str(env_file))
        config.save_env_value("KEY", "val")
        assert [p.name for p in tmp_path.iterdir()] == [".env"]


class TestEnvParsers:
    def test_env_int_valid(self, monkeypatch):
        monkeypatch.setattr(config, "env", {"K": "42"})
        assert config._env_int("K", 10) == 42

    def test_env_int_missing_or_empty_returns_default(self, monkeypatch):
        monkeypatch.setattr(config, "env", {"K": ""})
        assert config._env_int("K", 99) == 99
        assert config._env_int("MISSING", 99) == 99

    def test_env_int_bad_value_returns_default(self, monkeypatch):
        monkeypatch.setattr(config, "env", {"K": "not_a_number"})
        assert config._env_int("K", 30) == 30

    def test_env_float(self, monkeypatch):
        monkeypatch.setattr(config, "env", {"K": "1.5", "BAD": "abc"})
        assert config._env_float("K", 1.0) == 1.5
        assert config._env_float("BAD", 1.0) == 1.0

    def test_env_bool(self, monkeypatch):
        for val in ("1", "true", "yes", "on", "True", "YES"):
            monkeypatch.setattr(config, "env", {"K": val})
            assert config._env_bool("K") is True
        for val in ("0", "false", "no", "off", "anything"):
            monkeypatch.setattr(config, "env", {"K": val})
            assert config._env_bool("K") is False


class TestConstants:
    def test_batch_limit(self):
        assert config.MAX_BATCH_SIZE == 60

    def test_defaults(self):
        assert config.DEFAULT_LIST_LIMIT == 20
        assert config.DEFAULT_EXPORT_PAGE_SIZE == 200

    def test_formats(self):
        assert config.VALID_FORMATS == ("json", "yaml", "csv", "table")

    def test_sort_orders(self):
        assert "asc" in config.VALID_SORT_ORDERS
        assert "DescNullsLast" in config.VALID_SORT_ORDERS

    def test_settable_keys_map_to_env_names(self):
        assert all(v.startswith("TWENTY_") for v in config.SETTABLE_KEYS.values())
