# tests/unit/config/test_unit_settings.py — v2
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from pagepilot.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_model(self):
        s = Settings(_env_file=None)
        assert s.default_model == "gpt-4o"

    def test_default_cache(self):
        s = Settings(_env_file=None)
        assert s.enable_caching is True
        assert s.cache_backend == "memory"
        assert s.cache_root == Path("~/.pagepilot/cache")

    def test_default_retry(self):
        s = Settings(_env_file=None)
        assert s.llm_max_retries == 3
        assert s.retry_backoff_factor == 2.0

    def test_default_logging(self):
        s = Settings(_env_file=None)
        assert s.verbose == 1
        assert s.log_format == "json"
        assert s.log_file is None


class TestSettingsValidation:
    def test_redis_without_url(self):
        with pytest.raises(ConfigurationError, match="CACHE_REDIS_URL"):
            Settings(_env_file=None, cache_backend="redis")

    def test_redis_with_url(self):
        s = Settings(_env_file=None, cache_backend="redis", cache_redis_url="redis://x:6379")
        assert s.cache_redis_url == "redis://x:6379"

    def test_negative_retries(self):
        with pytest.raises(ValidationError, match="llm_max_retries"):
            Settings(_env_file=None, llm_max_retries=-1)

    def test_backoff_below_one(self):
        with pytest.raises(ConfigurationError, match="RETRY_BACKOFF_FACTOR"):
            Settings(_env_file=None, retry_backoff_factor=0.5)

    def test_codebuff_credentials_set_together(self):
        with pytest.raises(ConfigurationError, match="CODEBUFF_FINGERPRINT_ID"):
            Settings(_env_file=None, codebuff_auth_token="tok")

    def test_multiple_errors_joined(self):
        with pytest.raises(ConfigurationError, match=";"):
            Settings(_env_file=None, cache_backend="redis", retry_base_delay_s=-1)

    def test_invalid_backend_literal(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cache_backend="memcached")


class TestClientOptionsFor:
    def test_openai_drops_empty_values(self):
        s = Settings(_env_file=None, openai_api_key="sk-test", openai_organization="")
        opts = s.client_options_for("openai")
        assert opts == {"api_key": "sk-test", "timeout": 60.0}

    def test_anthropic(self):
        s = Settings(_env_file=None, anthropic_api_key="ak", anthropic_base_url="http://a")
        assert s.client_options_for("anthropic") == {
            "api_key": "ak", "base_url": "http://a", "timeout": 60.0,
        }

    def test_codebuff(self):
        s = Settings(
            _env_file=None,
            backend_url="https://cb",
            codebuff_auth_token="tok",
            codebuff_fingerprint_id="fp",
            request_timeout_s=5.0,
        )
        assert s.client_options_for("codebuff") == {
            "backend_url": "https://cb",
            "auth_token": "tok",
            "fingerprint_id": "fp",
            "timeout": 5.0,
        }

    def test_unknown_provider_only_timeout(self):
        assert Settings(_env_file=None).client_options_for("custom") == {"timeout": 60.0}


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, default_model="claude-3-5-sonnet-latest")
        assert s.default_model == "claude-3-5-sonnet-latest"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MODEL", "o3-mini")
        monkeypatch.setenv("ENABLE_CACHING", "false")
        s = load_settings(_env_file=None)
        assert s.default_model == "o3-mini"
        assert s.enable_caching is False

    def test_env_file(self, tmp_path: Path):
        env = tmp_path / ".env"
        env.write_text("CACHE_BACKEND=json\nLOG_FORMAT=text\n", encoding="utf-8")
        s = Settings(_env_file=str(env))
        assert s.cache_backend == "json"
        assert s.log_format == "text"
