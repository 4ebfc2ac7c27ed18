"""
services/crm_api.py

Typed wrappers over the backend's REST resource collections.

Every collection supports list / create / update(by id) / remove(by id).
Payloads may be model instances or plain dicts; server-owned fields
(``id``, ``createdAt``, ``updatedAt``) are stripped before sending.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import ValidationError

from core.http_client import ApiClient
from domain.models import (
    SERVER_FIELDS,
    Banner,
    CrmModel,
    Customer,
    EntityId,
    Employee,
    FinanceRecord,
    NewsItem,
    Order,
    Visit,
)
from utils.logger import get_logger

log = get_logger(__name__)

M = TypeVar("M", bound=CrmModel)

_SERVER_WIRE_FIELDS = {"id", "createdAt", "updatedAt"}


def to_payload(payload: Union[CrmModel, dict[str, Any]]) -> dict[str, Any]:
    """Wire-format body without server-owned fields."""
    if isinstance(payload, CrmModel):
        return payload.to_wire(exclude=SERVER_FIELDS)
    return {k: v for k, v in payload.items() if k not in _SERVER_WIRE_FIELDS and k not in SERVER_FIELDS}


def newest_first(items: list[M]) -> list[M]:
    """Sort by ``updated_at`` descending; missing timestamps sort last."""
    return sorted(items, key=lambda x: getattr(x, "updated_at", None) or "", reverse=True)


class Resource(Generic[M]):
    """One REST collection, e.g. ``/customers``."""

    def __init__(self, client: ApiClient, path: str, model: type[M]):
        self.client = client
        self.path = path
        self.model = model

    def _parse(self, raw: Any) -> M:
        return self.model.model_validate(raw)

    def list(self, **filters: Any) -> list[M]:
        params = {k: v for k, v in filters.items() if v is not None}
        body = self.client.get(self.path, params=params or None)
        if not isinstance(body, list):
            log.warning("crm_api.unexpected_list_body", path=self.path, kind=type(body).__name__)
            return []

        items: list[M] = []
        for raw in body:
            try:
                items.append(self._parse(raw))
            except ValidationError as e:
                log.warning("crm_api.skip_invalid_item", path=self.path, errors=e.error_count())
        return items

    def create(self, payload: Union[M, dict[str, Any]]) -> Optional[M]:
        body = self.client.post(self.path, json=to_payload(payload))
        return self._parse(body) if isinstance(body, dict) else None

    def update(self, entity_id: EntityId, payload: Union[M, dict[str, Any]]) -> Optional[M]:
        body = self.client.put(f"{self.path}/{entity_id}", json=to_payload(payload))
        return self._parse(body) if isinstance(body, dict) else None

    def remove(self, entity_id: EntityId) -> None:
        self.client.delete(f"{self.path}/{entity_id}")


class NewsResource(Resource[NewsItem]):
    def list(self, status: Optional[str] = None) -> list[NewsItem]:
        return newest_first(super().list(status=status))


class BannerResource(Resource[Banner]):
    def list(
        self,
        status: Optional[str] = None,
        position: Optional[str] = None,
        name: Optional[str] = None,
    ) -> list[Banner]:
        """Server filters on status/position; ``name`` is a local case-insensitive substring match."""
        banners = super().list(status=status, position=position)
        query = (name or "").strip().lower()
        if query:
            banners = [b for b in banners if query in (b.name or "").lower()]
        return newest_first(banners)


class CrmApi:
    """
    Backend resource registry.

    Usage:
        api = CrmApi(client)
        customers = api.customers.list()
        api.orders.create({"customerId": 1, "title": "Kickoff", "amount": 1200, "status": "draft"})
    """

    def __init__(self, client: ApiClient):
        self.client = client
        self.customers: Resource[Customer] = Resource(client, "/customers", Customer)
        self.orders: Resource[Order] = Resource(client, "/orders", Order)
        self.visits: Resource[Visit] = Resource(client, "/visits", Visit)
        self.finance: Resource[FinanceRecord] = Resource(client, "/finance-records", FinanceRecord)
        self.employees: Resource[Employee] = Resource(client, "/employees", Employee)
        self.news = NewsResource(client, "/news", NewsItem)
        self.banners = BannerResource(client, "/banners", Banner)

    def resource(self, name: str) -> Resource:
        res = getattr(self, name, None)
        if not isinstance(res, Resource):
            raise KeyError(f"Unknown collection: {name}")
        return res
