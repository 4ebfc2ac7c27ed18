"""
core/http_client.py

Authenticated HTTP client for the CRM backend (requests).

One request/response round trip per call: no retries, no timeout, no
backoff. Every call:
    1. resolves the URL (absolute ``http(s)://`` URLs pass through,
       everything else is prefixed with ``API_BASE_URL``)
    2. sends ``Accept: application/json`` and, when a session exists,
       ``Authorization: Bearer <token>``
    3. JSON-encodes ``json=`` bodies and sets the content type
    4. parses the response text as JSON, falling back to the raw text
    5. runs the response policies (interceptor stage)
    6. raises ``ApiError`` for any non-2xx status

The stock policy chain is ``[UnauthorizedLogoutPolicy]``: a 401 from any
endpoint clears the session before the error surfaces.
"""

from __future__ import annotations

import json as jsonlib
from typing import Any, Iterable, Optional, Protocol

import requests

from config.feature_flags import enable_request_logs
from config.settings import API_BASE_URL
from core.errors import ApiError, NetworkError
from core.session_store import SessionStore
from utils.logger import get_logger

log = get_logger(__name__)

_UNSET = object()


class ResponsePolicy(Protocol):
    def on_response(self, method: str, url: str, status: int, body: Any) -> None: ...


class UnauthorizedLogoutPolicy:
    """Clears the session on any 401, regardless of which resource answered."""

    def __init__(self, session_store: SessionStore):
        self.session_store = session_store

    def on_response(self, method: str, url: str, status: int, body: Any) -> None:
        if status != 401:
            return
        log.warning("http.unauthorized_logout", method=method, url=url)
        self.session_store.clear_session()


def parse_body(text: str) -> Any:
    """Empty -> None, JSON -> decoded value, anything else -> the raw text."""
    if not text:
        return None
    try:
        return jsonlib.loads(text)
    except ValueError:
        return text


class ApiClient:
    """
    Thin requests wrapper that injects the bearer credential.

    Usage:
        client = ApiClient(session_store)
        customers = client.get("/customers")
        client.post("/orders", json={"title": "Kickoff"})
    """

    def __init__(
        self,
        session_store: SessionStore,
        base_url: str = API_BASE_URL,
        http: Optional[requests.Session] = None,
        response_policies: Optional[Iterable[ResponsePolicy]] = None,
    ):
        self.session_store = session_store
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        if response_policies is None:
            response_policies = [UnauthorizedLogoutPolicy(session_store)]
        self.response_policies: list[ResponsePolicy] = list(response_policies)

    def resolve_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path}"

    def request(
        self,
        path: str,
        method: str = "GET",
        *,
        json: Any = _UNSET,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        Issue one request and return the parsed body.

        Raises:
            ApiError: non-2xx response (status + parsed body attached)
            NetworkError: no response was received
        """
        method = method.upper()
        url = self.resolve_url(path)

        req_headers: dict[str, str] = {"Accept": "application/json"}
        if headers:
            req_headers.update(headers)

        token = self.session_store.get_token()
        if token:
            req_headers["Authorization"] = f"Bearer {token}"

        data: Optional[str] = None
        if json is not _UNSET:
            req_headers["Content-Type"] = "application/json"
            data = jsonlib.dumps(json)

        if enable_request_logs():
            log.debug("http.request", method=method, url=url, params=params, has_body=data is not None)

        try:
            resp = self.http.request(method, url, headers=req_headers, data=data, params=params)
        except requests.RequestException as e:
            log.error("http.network_error", method=method, url=url, error=str(e))
            raise NetworkError(method, url, e) from e

        body = parse_body(resp.text)

        for policy in self.response_policies:
            policy.on_response(method, url, resp.status_code, body)

        if not 200 <= resp.status_code < 300:
            log.warning("http.error_status", method=method, url=url, status=resp.status_code)
            raise ApiError(resp.status_code, body, method=method, url=url)

        return body

    # ---- Verb helpers ----
    def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        return self.request(path, "GET", params=params)

    def post(self, path: str, json: Any = _UNSET) -> Any:
        return self.request(path, "POST", json=json)

    def put(self, path: str, json: Any = _UNSET) -> Any:
        return self.request(path, "PUT", json=json)

    def delete(self, path: str) -> Any:
        return self.request(path, "DELETE")
