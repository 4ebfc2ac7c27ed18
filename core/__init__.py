# File: core/__init__.py
# Package export surface for core
# Re-export key classes/helpers for convenient imports
from .errors import ApiError, AuthenticationError, CrmError, NetworkError
from .http_client import ApiClient, UnauthorizedLogoutPolicy
from .local_storage import LocalStorage
from .route_guards import GuardResult, RouteGate, require_admin, require_auth, resolve_route
from .session_store import SessionStore
