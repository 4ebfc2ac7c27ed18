"""
services/crm_store.py

Domain store: read-through cache of the five CRUD collections.

Refresh policy:
    - all five collections are fetched concurrently; each result is applied
      as soon as it settles, in no particular order
    - a failing collection keeps its previous value (empty on first load),
      logs, and emits ``crm_fetch_failed``; siblings are unaffected
    - every create/update/remove performs its single write and then
      unconditionally refreshes everything; write errors propagate and
      skip the refresh

Concurrent mutations are not sequenced against each other: the last
refresh to complete wins.

Thread Safety: collection state is guarded by an RLock. Signals are sent
outside the lock.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import ValidationError

from config.feature_flags import enable_collection_cache
from config.settings import COLLECTION_CACHE_KEYS
from core.local_storage import LocalStorage
from domain.models import CrmModel, Customer, EntityId, FinanceRecord, Order
from services.crm_api import CrmApi, Resource
from utils.logger import get_logger
from utils.signal_bus import SignalBus, bus as default_bus

log = get_logger(__name__)

COLLECTIONS: tuple[str, ...] = ("customers", "orders", "visits", "finance", "employees")


@dataclass(frozen=True)
class DashboardSummary:
    customer_count: int
    order_count: int
    total_order_amount: float
    pending_invoices: float
    done_payments: float


class CrmStore:
    """
    Cached view of the backend collections.

    Usage:
        store = CrmStore(api, storage)
        store.refresh()
        store.create("orders", {"customerId": 1, "title": "Kickoff", "amount": 900, "status": "draft"})
        name = store.customer_name(order.customer_id)
    """

    def __init__(
        self,
        api: CrmApi,
        storage: Optional[LocalStorage] = None,
        bus: Optional[SignalBus] = None,
        use_cache: Optional[bool] = None,
    ):
        self.api = api
        self.storage = storage
        self._bus = bus or default_bus
        self._lock = threading.RLock()
        self.use_cache = (storage is not None) and (enable_collection_cache() if use_cache is None else use_cache)

        self._data: dict[str, list[CrmModel]] = {name: [] for name in COLLECTIONS}
        self._customer_index: dict[str, Customer] = {}

        if self.use_cache:
            self._seed_from_cache()

    # ---- Read access ----
    def get(self, collection: str) -> list[CrmModel]:
        self._check(collection)
        with self._lock:
            return list(self._data[collection])

    @property
    def customers(self) -> list[Customer]:
        return self.get("customers")

    @property
    def orders(self) -> list[Order]:
        return self.get("orders")

    @property
    def visits(self):
        return self.get("visits")

    @property
    def finance(self) -> list[FinanceRecord]:
        return self.get("finance")

    @property
    def employees(self):
        return self.get("employees")

    @property
    def customer_index(self) -> dict[str, Customer]:
        """Customer id (as str) -> Customer, rebuilt whenever customers change."""
        with self._lock:
            return dict(self._customer_index)

    def customer_name(self, customer_id: EntityId) -> str:
        with self._lock:
            customer = self._customer_index.get(str(customer_id))
        return customer.name if customer else ""

    # ---- Refresh ----
    def refresh(self) -> dict[str, bool]:
        """
        Fetch every collection concurrently.

        Returns:
            collection -> True if fetched, False if the previous value was kept
        """
        results: dict[str, bool] = {}
        with ThreadPoolExecutor(max_workers=len(COLLECTIONS), thread_name_prefix="crm-fetch") as pool:
            futures = {pool.submit(self._resource(name).list): name for name in COLLECTIONS}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    items = future.result()
                except Exception as e:  # isolation boundary: one collection must not sink the rest
                    results[name] = False
                    log.warning("crm.fetch_failed", collection=name, error=str(e))
                    self._bus.crm_fetch_failed.send(self, collection=name, error=e)
                    continue
                self._apply(name, items)
                results[name] = True

        log.info("crm.refreshed", ok=sorted(k for k, v in results.items() if v))
        return results

    def _apply(self, name: str, items: list[CrmModel]) -> None:
        with self._lock:
            self._data[name] = list(items)
            if name == "customers":
                self._customer_index = {str(c.id): c for c in items}
        if self.use_cache:
            self._mirror(name, items)
        self._bus.crm_refreshed.send(self, collection=name, count=len(items))

    # ---- Mutations ----
    def create(self, collection: str, payload: Union[CrmModel, dict[str, Any]]) -> Optional[CrmModel]:
        created = self._resource(collection).create(payload)
        log.info("crm.created", collection=collection)
        self.refresh()
        return created

    def update(
        self, collection: str, entity_id: EntityId, payload: Union[CrmModel, dict[str, Any]]
    ) -> Optional[CrmModel]:
        updated = self._resource(collection).update(entity_id, payload)
        log.info("crm.updated", collection=collection, id=entity_id)
        self.refresh()
        return updated

    def remove(self, collection: str, entity_id: EntityId) -> None:
        self._resource(collection).remove(entity_id)
        log.info("crm.removed", collection=collection, id=entity_id)
        self.refresh()

    # ---- Dashboard ----
    def summary(self) -> DashboardSummary:
        with self._lock:
            orders = list(self._data["orders"])
            finance = list(self._data["finance"])
            customer_count = len(self._data["customers"])

        return DashboardSummary(
            customer_count=customer_count,
            order_count=len(orders),
            total_order_amount=sum(o.amount for o in orders),
            pending_invoices=sum(f.amount for f in finance if f.type == "invoice" and f.status == "pending"),
            done_payments=sum(f.amount for f in finance if f.type == "payment" and f.status == "done"),
        )

    # ---- Cache ----
    def _seed_from_cache(self) -> None:
        for name in COLLECTIONS:
            raw = self.storage.load_json(COLLECTION_CACHE_KEYS[name], [])
            if not isinstance(raw, list):
                log.warning("crm.cache_corrupt", collection=name)
                continue

            model = self._resource(name).model
            items = []
            for entry in raw:
                try:
                    items.append(model.model_validate(entry))
                except ValidationError:
                    log.debug("crm.cache_skip_item", collection=name)

            self._data[name] = items
            if name == "customers":
                self._customer_index = {str(c.id): c for c in items}
        log.debug("crm.cache_seeded", counts={k: len(v) for k, v in self._data.items()})

    def _mirror(self, name: str, items: list[CrmModel]) -> None:
        self.storage.save_json(COLLECTION_CACHE_KEYS[name], [i.to_wire() for i in items])

    # ---- Helpers ----
    @staticmethod
    def _check(collection: str) -> None:
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")

    def _resource(self, collection: str) -> Resource:
        self._check(collection)
        return self.api.resource(collection)


