"""
Unit Tests for feature flags and settings helpers

Run with: pytest tests/unit/test_feature_flags.py -v
"""

import pytest

from config import settings
from config.feature_flags import FeatureFlags


@pytest.mark.parametrize("raw, expected", [("1", True), ("true", True), (" On ", True), ("0", False), ("no", False), ("", False)])
def test_parse_bool(raw, expected):
    assert FeatureFlags._parse_bool(raw) is expected


def test_env_overrides_config(monkeypatch):
    monkeypatch.setitem(settings.FEATURE_FLAGS, "ENABLE_REQUEST_LOGS", True)
    monkeypatch.setenv("ENABLE_REQUEST_LOGS", "0")
    assert FeatureFlags._get_flag("ENABLE_REQUEST_LOGS") is False


def test_config_used_when_env_absent(monkeypatch):
    monkeypatch.delenv("ENABLE_COLLECTION_CACHE", raising=False)
    monkeypatch.setitem(settings.FEATURE_FLAGS, "ENABLE_COLLECTION_CACHE", False)
    assert FeatureFlags._get_flag("ENABLE_COLLECTION_CACHE", default=True) is False


def test_config_text_value_is_parsed(monkeypatch):
    monkeypatch.delenv("ENABLE_STORAGE_WATCH", raising=False)
    monkeypatch.setitem(settings.FEATURE_FLAGS, "ENABLE_STORAGE_WATCH", "off")
    assert FeatureFlags._get_flag("ENABLE_STORAGE_WATCH", default=True) is False


def test_default_when_unset(monkeypatch):
    monkeypatch.delenv("ENABLE_SOMETHING_NEW", raising=False)
    assert FeatureFlags._get_flag("ENABLE_SOMETHING_NEW", default=True) is True


def test_known_flags_listed():
    assert set(FeatureFlags.get_all_flags()) == {
        "ENABLE_STORAGE_WATCH",
        "ENABLE_REQUEST_LOGS",
        "ENABLE_COLLECTION_CACHE",
    }


def test_request_logging_flag_does_not_change_requests(monkeypatch, client, http):
    monkeypatch.setattr(FeatureFlags, "ENABLE_REQUEST_LOGS", True)
    client.get("/customers")
    assert http.request.call_count == 1


class TestSettings:
    def test_mask_secret(self):
        assert settings.mask_secret(None) == ""
        assert settings.mask_secret("abc") == "***"
        assert settings.mask_secret("abcdefghijkl") == "abcdef...****"

    def test_env_helpers(self, monkeypatch):
        monkeypatch.setenv("CRM_TEST_INT", "12")
        monkeypatch.setenv("CRM_TEST_BAD", "x")
        assert settings._env_int("CRM_TEST_INT", 1) == 12
        assert settings._env_int("CRM_TEST_BAD", 1) == 1
        assert settings._env_float("CRM_TEST_BAD", 2.5) == 2.5
        assert settings._env_str("CRM_TEST_MISSING", "d") == "d"

    def test_storage_keys_distinct(self):
        keys = [settings.AUTH_KEY, settings.SPOT_ORDERS_KEY, settings.ARTICLES_KEY, *settings.COLLECTION_CACHE_KEYS.values()]
        assert len(keys) == len(set(keys))

    def test_base_url_has_no_trailing_slash(self):
        assert not settings.API_BASE_URL.endswith("/")
