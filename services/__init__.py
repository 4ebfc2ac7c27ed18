"""
services/__init__.py

Package export surface for services layer.
Exposes commonly-used classes and functions for import convenience.
"""

from .articles import ArticleStore
from .auth_service import AuthService
from .crm_api import CrmApi
from .crm_store import CrmStore, DashboardSummary
from .spot_feed import MockSpotFeed
from .spot_orders import cancel_order, place_order, split_orders, try_fill_limit_orders
from .spot_session import SpotSession
