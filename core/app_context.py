"""
Application context: one wired set of components per storage scope.

Usage:
    from core.app_context import get_app_context

    ctx = get_app_context()
    ctx.auth.login("carl", "secret")
    ctx.crm.refresh()

Tests build their own ``AppContext`` (or call ``reset_app_context``) so no
state leaks between cases.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import requests

from config.feature_flags import enable_storage_watch
from config.settings import API_BASE_URL, STORAGE_DIR
from core.http_client import ApiClient
from core.local_storage import LocalStorage
from core.session_store import SessionStore
from services.articles import ArticleStore
from services.auth_service import AuthService
from services.crm_api import CrmApi
from services.crm_store import CrmStore
from utils.logger import get_logger
from utils.signal_bus import SignalBus, bus as default_bus

log = get_logger(__name__)


class AppContext:
    def __init__(
        self,
        storage_dir: Path | str = STORAGE_DIR,
        base_url: str = API_BASE_URL,
        bus: Optional[SignalBus] = None,
        http: Optional[requests.Session] = None,
    ):
        self.bus = bus or default_bus
        self.storage = LocalStorage(storage_dir, bus=self.bus)
        self.session = SessionStore(self.storage, bus=self.bus)
        self.client = ApiClient(self.session, base_url=base_url, http=http)
        self.api = CrmApi(self.client)
        self.auth = AuthService(self.client, self.session)
        self.crm = CrmStore(self.api, storage=self.storage, bus=self.bus)
        self.articles = ArticleStore(self.storage)

    def start(self) -> None:
        """Start background services enabled by feature flags."""
        if enable_storage_watch():
            self.storage.start_watching()

    def close(self) -> None:
        self.storage.stop_watching()
        self.client.http.close()
        log.debug("app_context.closed")


# Global singleton instance
_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Return the process-wide context, creating it on first use."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext()
    return _app_context


def set_app_context(ctx: AppContext) -> None:
    global _app_context
    _app_context = ctx


def reset_app_context() -> None:
    """Close and drop the global context (tests, restart)."""
    global _app_context
    if _app_context is not None:
        _app_context.close()
    _app_context = None
