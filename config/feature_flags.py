"""
Feature flags for the optional subsystems.

Each flag resolves once at import: environment variable first, then the
``FEATURE_FLAGS`` block of the config file, then the built-in default.

    ENABLE_STORAGE_WATCH     watchdog observer on the storage dir (default on)
    ENABLE_REQUEST_LOGS      debug line per HTTP request (default off)
    ENABLE_COLLECTION_CACHE  mirror fetched collections to storage (default on)
"""
from __future__ import annotations

import os
from typing import Any, Dict, Optional

from config import settings
from utils.logger import get_logger

log = get_logger(__name__)

_DEFAULTS: Dict[str, bool] = {
    "ENABLE_STORAGE_WATCH": True,
    "ENABLE_REQUEST_LOGS": False,
    "ENABLE_COLLECTION_CACHE": True,
}

_TRUTHY = frozenset({"1", "true", "yes", "on", "enabled"})


class FeatureFlags:
    """Resolved flag values, one class attribute per flag."""

    ENABLE_STORAGE_WATCH: bool = None
    ENABLE_REQUEST_LOGS: bool = None
    ENABLE_COLLECTION_CACHE: bool = None

    _initialized: bool = False

    @classmethod
    def get_all_flags(cls) -> Dict[str, bool]:
        return {name: getattr(cls, name) for name in _DEFAULTS}

    @classmethod
    def _initialize(cls) -> None:
        if cls._initialized:
            return
        for name, default in _DEFAULTS.items():
            setattr(cls, name, cls._get_flag(name, default=default))
        cls._initialized = True
        log.debug("feature_flags.initialized", flags=cls.get_all_flags())

    @classmethod
    def _get_flag(cls, name: str, default: bool = False) -> bool:
        for source, raw in (("env", os.getenv(name)), ("config", cls._from_config(name))):
            if raw is not None:
                value = cls._parse_bool(raw)
                log.debug("feature_flags.resolved", flag=name, source=source, value=value)
                return value
        return default

    @staticmethod
    def _parse_bool(value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)

    @staticmethod
    def _from_config(name: str) -> Optional[Any]:
        flags = getattr(settings, "FEATURE_FLAGS", None)
        if not isinstance(flags, dict):
            return None
        return flags.get(name)


FeatureFlags._initialize()


def enable_storage_watch() -> bool:
    return FeatureFlags.ENABLE_STORAGE_WATCH


def enable_request_logs() -> bool:
    return FeatureFlags.ENABLE_REQUEST_LOGS


def enable_collection_cache() -> bool:
    return FeatureFlags.ENABLE_COLLECTION_CACHE
