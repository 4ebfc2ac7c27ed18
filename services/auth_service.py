"""
services/auth_service.py

Login/logout against ``POST /auth/login``.

The backend may name the credential ``token``, ``accessToken`` or
``access_token``; the first one present wins. A response without any of
them raises ``AuthenticationError`` and leaves the current session as-is.
"""

from __future__ import annotations

from typing import Any, Optional

from core.errors import AuthenticationError
from core.http_client import ApiClient
from core.session_store import SessionStore
from domain.models import Session, SessionUser
from utils.logger import get_logger

log = get_logger(__name__)

LOGIN_ENDPOINT = "/auth/login"
TOKEN_FIELDS = ("token", "accessToken", "access_token")


def extract_token(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    for field in TOKEN_FIELDS:
        value = body.get(field)
        if value:
            return str(value)
    return ""


def _as_text(value: Any) -> Optional[str]:
    # non-string identity fields are stored as their text form
    if value is None or value == "":
        return None
    return str(value)


class AuthService:
    def __init__(self, client: ApiClient, store: SessionStore):
        self.client = client
        self.store = store

    def login(self, username: str, password: str) -> Session:
        """
        Exchange credentials for a session and persist it.

        Raises:
            ApiError / NetworkError: from the HTTP client
            AuthenticationError: backend answered 2xx without a credential
        """
        body = self.client.post(LOGIN_ENDPOINT, json={"username": username, "password": password})

        token = extract_token(body)
        if not token:
            log.warning("auth.login_no_token", user=username)
            raise AuthenticationError("Login response did not include a token")

        raw_user = body.get("user") if isinstance(body.get("user"), dict) else {}
        user = SessionUser(
            username=_as_text(raw_user.get("username")) or username,
            role=_as_text(raw_user.get("role")),
        )
        session = Session(token=token, user=user)
        self.store.set_session(session)
        log.info("auth.login_ok", user=user.username, role=user.role)
        return session

    def logout(self) -> None:
        self.store.clear_session()
        log.info("auth.logout")
