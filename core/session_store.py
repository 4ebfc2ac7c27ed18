"""
core/session_store.py

Token/Session store: the single source of truth for identity.

The session record lives in device storage under ``AUTH_KEY`` and is re-read
on every access, so a login or logout performed by another process sharing
the storage directory is picked up without a restart.

Change notification has two channels, delivered to subscribers alike:
    - in-process mutations (``set_session`` / ``clear_session``)
      -> bus.session_changed(source="local")
    - other-process writes to the auth key, observed via
      bus.storage_changed -> bus.session_changed(source="external")

Claim derivation prefers the identity fields supplied at login and falls
back to the decoded token payload. Decoding is read-only (no signature
check); role gating built on it is cosmetic and the backend stays the
authority on every request.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from config.settings import ADMIN_ROLE_MARKER, AUTH_KEY, mask_secret
from core.local_storage import LocalStorage
from domain.models import Session
from utils.logger import get_logger
from utils.signal_bus import SignalBus, bus as default_bus
from utils.token_claims import decode_token_claims

log = get_logger(__name__)

SessionListener = Callable[[], None]


class SessionStore:
    """
    Observable session store over ``LocalStorage``.

    Thread Safety: storage writes are atomic; reads re-parse the stored
    record, so concurrent readers always see a complete session or none.
    """

    def __init__(self, storage: LocalStorage, bus: Optional[SignalBus] = None, key: str = AUTH_KEY):
        self.storage = storage
        self.key = key
        self._bus = bus or default_bus
        self._bus.storage_changed.connect(self._on_storage_changed, sender=storage)

    # ---- Core API ----
    def get_session(self) -> Optional[Session]:
        """Current session, or None when absent or unreadable."""
        raw = self.storage.load_json(self.key, None)
        if not raw:
            return None
        try:
            return Session.model_validate(raw)
        except ValidationError as e:
            log.warning("session.invalid_record", errors=e.error_count())
            return None

    def set_session(self, session: Union[Session, dict[str, Any]]) -> None:
        """
        Persist ``session`` and notify subscribers.

        Raises:
            OSError: if device storage is not writable
        """
        if not isinstance(session, Session):
            session = Session.model_validate(session)
        self.storage.set_item(self.key, _dumps(session))
        log.info(
            "session.set",
            user=session.user.username if session.user else None,
            token=mask_secret(session.token),
        )
        self._notify("local")

    def clear_session(self) -> None:
        """Remove the session (idempotent) and notify subscribers."""
        self.storage.remove_item(self.key)
        log.info("session.cleared")
        self._notify("local")

    # ---- Derived state ----
    def get_token(self) -> Optional[str]:
        session = self.get_session()
        if session is None or not session.token:
            return None
        return session.token

    def is_authenticated(self) -> bool:
        return self.get_token() is not None

    def get_role(self) -> Optional[str]:
        """Role from login identity, else claim ``role``, else first of ``roles``."""
        session = self.get_session()
        if session is None or not session.token:
            return None

        if session.user is not None and session.user.role:
            return session.user.role

        claims = decode_token_claims(session.token) or {}
        role = claims.get("role")
        if role:
            return str(role)
        roles = claims.get("roles")
        if isinstance(roles, list) and roles:
            return str(roles[0])
        return None

    def is_admin(self) -> bool:
        role = self.get_role()
        if not role:
            return False
        return ADMIN_ROLE_MARKER in role.lower()

    def get_display_name(self) -> str:
        session = self.get_session()
        if session is None or not session.token:
            return "-"

        if session.user is not None and session.user.username:
            return session.user.username

        claims = decode_token_claims(session.token) or {}
        for field in ("username", "user", "email"):
            value = claims.get(field)
            if value:
                return str(value)
        return "-"

    # ---- Subscription ----
    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Call ``listener()`` on every session change, local or external.

        Returns:
            Zero-argument callable that removes the subscription.
        """

        def _receiver(sender, **kwargs):
            listener()

        self._bus.session_changed.connect(_receiver, sender=self, weak=False)

        def unsubscribe() -> None:
            self._bus.session_changed.disconnect(_receiver, sender=self)

        return unsubscribe

    def _notify(self, source: str) -> None:
        self._bus.session_changed.send(self, source=source)

    def _on_storage_changed(self, sender, key: str = "", **kwargs) -> None:
        if key != self.key:
            return
        log.info("session.external_change")
        self._notify("external")


def _dumps(session: Session) -> str:
    return session.model_dump_json(by_alias=True, exclude_none=True)
