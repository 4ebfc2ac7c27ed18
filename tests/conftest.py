"""
CRM Console Test Configuration

Pytest fixtures shared by the unit suite: isolated storage on tmp_path, a
fresh signal bus per test, a session store, a token factory and a mocked
requests session.
"""
from __future__ import annotations

import base64
import json
import os
from pathlib import Path
import sys
import tempfile
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest


# Keep settings/logging away from the real home directory. Must run before
# any project module is imported.
os.environ.setdefault("CRM_HOME", tempfile.mkdtemp(prefix="crm_console_tests_"))
os.environ.setdefault("ENABLE_STORAGE_WATCH", "0")

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import requests  # noqa: E402

from core.http_client import ApiClient  # noqa: E402
from core.local_storage import LocalStorage  # noqa: E402
from core.session_store import SessionStore  # noqa: E402
from utils.signal_bus import SignalBus  # noqa: E402


# ============================================================================
# HELPERS
# ============================================================================


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def build_token(claims: Optional[dict[str, Any]] = None) -> str:
    """Unsigned three-segment token carrying ``claims``."""
    header = _b64url(json.dumps({"alg": "none", "typ": "JWT"}).encode())
    payload = _b64url(json.dumps(claims or {}).encode())
    return f"{header}.{payload}.sig"


def make_response(status: int = 200, body: Any = None, text: Optional[str] = None) -> MagicMock:
    """Stand-in for ``requests.Response`` (only ``status_code`` and ``text`` are read)."""
    resp = MagicMock()
    resp.status_code = status
    if text is None:
        text = "" if body is None else json.dumps(body)
    resp.text = text
    return resp


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def bus():
    return SignalBus()


@pytest.fixture
def storage(tmp_path, bus):
    store = LocalStorage(tmp_path / "storage", bus=bus)
    yield store
    store.stop_watching()


@pytest.fixture
def session_store(storage, bus):
    return SessionStore(storage, bus=bus)


@pytest.fixture
def make_token():
    return build_token


@pytest.fixture
def http():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(200, [])
    return session


@pytest.fixture
def client(session_store, http):
    return ApiClient(session_store, base_url="http://api.test/api", http=http)


@pytest.fixture
def fixed_clock():
    """Millisecond clock that advances by 1000 on every call."""
    state = {"now": 1_700_000_000_000}

    def clock() -> int:
        state["now"] += 1000
        return state["now"]

    return clock


@pytest.fixture
def response():
    """Factory: ``response(status, body)`` -> fake requests response."""
    return make_response
