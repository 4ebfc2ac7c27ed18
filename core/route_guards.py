"""
core/route_guards.py

Navigation gating over the session store.

Guards are pure functions of session state; they never fetch data. A
``RouteGate`` subscribes to the store and re-resolves its location on every
session change (local or from another process), so a logout anywhere
immediately bounces the current view to the login path.

Role gating here only hides UI affordances. Access decisions are enforced
by the backend per request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import quote, urlsplit

from config.settings import DEFAULT_LANDING_PATH, LOGIN_PATH
from core.session_store import SessionStore
from utils.logger import get_logger

log = get_logger(__name__)

# Matches JavaScript's encodeURIComponent unreserved set.
_NEXT_SAFE = "!*'()"

PUBLIC = "public"
AUTH = "auth"
ADMIN = "admin"

ROUTE_TABLE: dict[str, str] = {
    LOGIN_PATH: PUBLIC,
    "/dashboard": AUTH,
    "/customers": AUTH,
    "/orders": AUTH,
    "/visits": AUTH,
    "/finance": AUTH,
    "/news": AUTH,
    "/banners": AUTH,
    "/articles": AUTH,
    "/spot": AUTH,
    "/employees": ADMIN,
}

# Redirect chains are short (/ -> /dashboard -> /login); bound them anyway.
_MAX_HOPS = 4


@dataclass(frozen=True)
class GuardResult:
    allowed: bool
    redirect_to: Optional[str] = None


ALLOW = GuardResult(True)


def login_redirect(location: str) -> str:
    """``/customers?x=1`` -> ``/login?next=%2Fcustomers%3Fx%3D1`` (single-encoded)."""
    return f"{LOGIN_PATH}?next={quote(location, safe=_NEXT_SAFE)}"


def require_auth(store: SessionStore, location: str) -> GuardResult:
    """Redirect to login with ``next=<path+query>`` when there is no session."""
    if store.is_authenticated():
        return ALLOW
    return GuardResult(False, login_redirect(location))


def require_admin(store: SessionStore) -> GuardResult:
    """Redirect to the landing page unless the role contains the admin marker."""
    if store.is_admin():
        return ALLOW
    return GuardResult(False, DEFAULT_LANDING_PATH)


def check_route(store: SessionStore, location: str) -> GuardResult:
    """Single-hop decision for ``location`` (path plus optional query)."""
    path = urlsplit(location).path or "/"
    if len(path) > 1:
        path = path.rstrip("/")

    access = ROUTE_TABLE.get(path)
    if access is None:
        # "/" and unknown paths
        return GuardResult(False, DEFAULT_LANDING_PATH)
    if access == PUBLIC:
        return ALLOW

    result = require_auth(store, location)
    if not result.allowed or access == AUTH:
        return result
    return require_admin(store)


def resolve_route(store: SessionStore, location: str) -> str:
    """Follow redirects from ``location`` to the location that actually renders."""
    current = location
    for _ in range(_MAX_HOPS):
        result = check_route(store, current)
        if result.allowed or result.redirect_to is None:
            return current
        current = result.redirect_to
    return current


class RouteGate:
    """
    Live guard for one view.

    Re-resolves on every session change notification and reports the
    resolved location to ``on_change``.

    Usage:
        gate = RouteGate(store, "/employees", on_change=render)
        ...
        gate.close()
    """

    def __init__(
        self,
        store: SessionStore,
        location: str,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.requested = location
        self.on_change = on_change
        self.location = resolve_route(store, location)
        self._unsubscribe: Optional[Callable[[], None]] = store.subscribe(self._reevaluate)

    def navigate(self, location: str) -> str:
        self.requested = location
        self.location = resolve_route(self.store, location)
        return self.location

    def _reevaluate(self) -> None:
        previous = self.location
        self.location = resolve_route(self.store, self.location)
        if self.location != previous:
            log.info("route.redirected", from_=previous, to=self.location)
        if self.on_change is not None:
            self.on_change(self.location)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "RouteGate":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
