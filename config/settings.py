# -------------------- config/settings.py (start)
from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path
from typing import Any, Optional


# -------------------- helpers --------------------
def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(name)
    return val if val not in ("", None) else default


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    val = os.getenv(name)
    if val in (None, ""):
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    val = os.getenv(name)
    if val in (None, ""):
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    return str(os.getenv(name, "1" if default else "0")).strip().lower() in ("1", "true", "yes", "on")


def mask_secret(s: Optional[str], keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return s[:keep] + "..." + "*" * 4


# --- Paths ---
HOME: str = str(Path.home())
APP_HOME: Path = Path(_env_str("CRM_HOME", str(Path(HOME) / ".crm_console")) or "")
STORAGE_DIR: Path = Path(_env_str("CRM_STORAGE_DIR", str(APP_HOME / "storage")) or "")
LOG_DIR: Path = Path(_env_str("CRM_LOG_DIR", str(APP_HOME / "logs")) or "")

# Ensure storage/log dirs exist (non-fatal)
for _p in (STORAGE_DIR, LOG_DIR):
    with contextlib.suppress(OSError):
        _p.mkdir(parents=True, exist_ok=True)

# --- Debug / logging ---
ENABLE_CONFIG_JSON: bool = True  # use <APP_HOME>/config.json to override select keys
DEBUG_MODE: bool = _env_bool("DEBUG_MODE", False)
LOG_JSON: bool = _env_bool("CRM_LOG_JSON", False)


# -------------------- JSON override loader (start)
CONFIG_JSON_PATH: Path = Path(_env_str("CRM_CONFIG_JSON", str(APP_HOME / "config.json")) or "")


def _load_config_json() -> dict[str, Any]:
    """Load app-local override JSON if present; return {} on any issue."""
    if not ENABLE_CONFIG_JSON:
        return {}
    try:
        with CONFIG_JSON_PATH.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, ValueError):
        return {}


# -------------------- JSON override loader (end)

# -------------------- Backend --------------------
API_BASE_URL: str = _env_str("CRM_API_BASE_URL", "http://localhost:8080/api") or "http://localhost:8080/api"

# -------------------- Navigation --------------------
LOGIN_PATH: str = "/login"
DEFAULT_LANDING_PATH: str = "/dashboard"
ADMIN_ROLE_MARKER: str = "admin"

# -------------------- Device-local storage keys --------------------
AUTH_KEY: str = "crm.auth"
SPOT_ORDERS_KEY: str = "crm:spot:orders"
ARTICLES_KEY: str = "crm:articles"
COLLECTION_CACHE_KEYS: dict[str, str] = {
    "customers": "crm.customers",
    "orders": "crm.orders",
    "visits": "crm.visits",
    "finance": "crm.finance",
    "employees": "crm.employees",
}

# -------------------- Mock spot market --------------------
SPOT_SYMBOL: str = _env_str("SPOT_SYMBOL", "BTC/USDT") or "BTC/USDT"
SPOT_START_PRICE: float = _env_float("SPOT_START_PRICE", 85600.0) or 85600.0
SPOT_BOOK_LEVELS: int = _env_int("SPOT_BOOK_LEVELS", 18) or 18
SPOT_TAPE_SIZE: int = _env_int("SPOT_TAPE_SIZE", 60) or 60
SPOT_SERIES_SIZE: int = _env_int("SPOT_SERIES_SIZE", 120) or 120
SPOT_ORDER_CAP: int = _env_int("SPOT_ORDER_CAP", 200) or 200
SPOT_POLL_INTERVAL_SEC: float = _env_float("SPOT_POLL_INTERVAL_SEC", 1.0) or 1.0

# -------------------- Feature flags (config side) --------------------
FEATURE_FLAGS: dict[str, bool] = {}

# Apply JSON overrides (JSON wins over env if key exists)
_config = _load_config_json()
if isinstance(_config, dict):
    if isinstance(_config.get("API_BASE_URL"), str) and _config["API_BASE_URL"].strip():
        API_BASE_URL = _config["API_BASE_URL"].strip()

    if isinstance(_config.get("SPOT_SYMBOL"), str) and _config["SPOT_SYMBOL"].strip():
        SPOT_SYMBOL = _config["SPOT_SYMBOL"].strip()

    if isinstance(_config.get("FEATURE_FLAGS"), dict):
        FEATURE_FLAGS.update({str(k): bool(v) for k, v in _config["FEATURE_FLAGS"].items()})

API_BASE_URL = API_BASE_URL.rstrip("/")

# Explicit export list (useful for linters)
__all__ = [
    # Paths / flags
    "HOME",
    "APP_HOME",
    "STORAGE_DIR",
    "LOG_DIR",
    "ENABLE_CONFIG_JSON",
    "DEBUG_MODE",
    "LOG_JSON",
    "CONFIG_JSON_PATH",
    "FEATURE_FLAGS",
    "mask_secret",
    # Backend
    "API_BASE_URL",
    # Navigation
    "LOGIN_PATH",
    "DEFAULT_LANDING_PATH",
    "ADMIN_ROLE_MARKER",
    # Storage keys
    "AUTH_KEY",
    "SPOT_ORDERS_KEY",
    "ARTICLES_KEY",
    "COLLECTION_CACHE_KEYS",
    # Spot
    "SPOT_SYMBOL",
    "SPOT_START_PRICE",
    "SPOT_BOOK_LEVELS",
    "SPOT_TAPE_SIZE",
    "SPOT_SERIES_SIZE",
    "SPOT_ORDER_CAP",
    "SPOT_POLL_INTERVAL_SEC",
]
# -------------------- config/settings.py (end)
