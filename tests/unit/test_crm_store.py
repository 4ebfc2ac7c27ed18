"""
Unit Tests for the domain store

A routed MagicMock stands in for the backend: each URL maps to a canned
status/body so individual collections can be failed independently.

Run with: pytest tests/unit/test_crm_store.py -v
"""

import threading

import pytest

from core.errors import ApiError
from domain.models import Session
from services.crm_api import CrmApi
from services.crm_store import COLLECTIONS, CrmStore, DashboardSummary
from tests.conftest import make_response

BASE = "http://api.test/api"

CUSTOMERS = [{"id": 1, "name": "Acme"}, {"id": 2, "name": "Globex"}]
ORDERS = [
    {"id": 10, "customerId": 1, "customerName": "Acme", "title": "Kickoff", "amount": 1200.5},
    {"id": 11, "customerId": 2, "customerName": "Globex", "title": "Renewal", "amount": 300},
]
VISITS = [{"id": 20, "customerId": 1, "date": "2026-02-01", "method": "call"}]
FINANCE = [
    {"id": 30, "customerId": 1, "type": "invoice", "amount": 500, "date": "2026-02-01", "status": "pending"},
    {"id": 31, "customerId": 1, "type": "invoice", "amount": 70, "date": "2026-02-01", "status": "done"},
    {"id": 32, "customerId": 2, "type": "payment", "amount": 250, "date": "2026-02-02", "status": "done"},
    {"id": 33, "customerId": 2, "type": "payment", "amount": 99, "date": "2026-02-03", "status": "pending"},
]
EMPLOYEES = [{"id": 40, "name": "Dana", "role": "admin"}]


class FakeBackend:
    """Routes ``requests.Session.request`` calls by method + URL."""

    def __init__(self):
        self.routes = {
            ("GET", f"{BASE}/customers"): (200, CUSTOMERS),
            ("GET", f"{BASE}/orders"): (200, ORDERS),
            ("GET", f"{BASE}/visits"): (200, VISITS),
            ("GET", f"{BASE}/finance-records"): (200, FINANCE),
            ("GET", f"{BASE}/employees"): (200, EMPLOYEES),
        }
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, method, url, **kwargs):
        with self._lock:
            self.calls.append((method, url))
        status, body = self.routes.get((method, url), (404, {"error": "not found"}))
        return make_response(status, body)

    def gets(self):
        return [url for method, url in self.calls if method == "GET"]


@pytest.fixture
def backend(http):
    fake = FakeBackend()
    http.request.side_effect = fake
    return fake


@pytest.fixture
def store(client, storage, bus, backend):
    return CrmStore(CrmApi(client), storage=storage, bus=bus, use_cache=False)


class TestRefresh:
    def test_initially_empty(self, store):
        for name in COLLECTIONS:
            assert store.get(name) == []

    def test_fetches_all_five(self, store, backend):
        results = store.refresh()
        assert results == {name: True for name in COLLECTIONS}
        assert len(store.customers) == 2
        assert len(store.orders) == 2
        assert len(store.visits) == 1
        assert len(store.finance) == 4
        assert len(store.employees) == 1
        assert sorted(backend.gets()) == sorted(
            f"{BASE}/{p}" for p in ("customers", "orders", "visits", "finance-records", "employees")
        )

    def test_failed_collection_keeps_previous_value(self, store, backend, bus):
        store.refresh()
        failures = []
        bus.crm_fetch_failed.connect(lambda sender, **kw: failures.append(kw["collection"]), weak=False)

        backend.routes[("GET", f"{BASE}/orders")] = (500, {"error": "db down"})
        backend.routes[("GET", f"{BASE}/customers")] = (200, [{"id": 1, "name": "Acme Renamed"}])
        results = store.refresh()

        assert results["orders"] is False
        assert all(results[n] for n in COLLECTIONS if n != "orders")
        assert [o.id for o in store.orders] == [10, 11]  # stale but intact
        assert store.customer_name(1) == "Acme Renamed"
        assert failures == ["orders"]

    def test_first_load_failure_is_empty(self, store, backend):
        backend.routes[("GET", f"{BASE}/visits")] = (503, "unavailable")
        results = store.refresh()
        assert results["visits"] is False
        assert store.visits == []
        assert len(store.customers) == 2

    def test_refresh_announces_each_collection(self, store, bus):
        counts = {}
        bus.crm_refreshed.connect(lambda sender, **kw: counts.__setitem__(kw["collection"], kw["count"]), weak=False)
        store.refresh()
        assert counts == {"customers": 2, "orders": 2, "visits": 1, "finance": 4, "employees": 1}

    def test_401_during_refresh_clears_session(self, store, backend, session_store):
        session_store.set_session(Session(token="stale"))
        backend.routes[("GET", f"{BASE}/employees")] = (401, {"error": "expired"})
        store.refresh()
        assert not session_store.is_authenticated()


class TestCustomerIndex:
    def test_index_by_id(self, store):
        store.refresh()
        index = store.customer_index
        assert set(index) == {"1", "2"}
        assert index["2"].name == "Globex"

    def test_lookup_accepts_int_or_str(self, store):
        store.refresh()
        assert store.customer_name(1) == "Acme"
        assert store.customer_name("2") == "Globex"
        assert store.customer_name(99) == ""

    def test_index_follows_customer_changes(self, store, backend):
        store.refresh()
        backend.routes[("GET", f"{BASE}/customers")] = (200, [{"id": 3, "name": "Initech"}])
        store.refresh()
        assert set(store.customer_index) == {"3"}


class TestMutations:
    def test_create_then_full_refresh(self, store, backend):
        backend.routes[("POST", f"{BASE}/orders")] = (201, {"id": 12, "customerId": 1, "title": "New", "amount": 5})
        created = store.create("orders", {"customerId": 1, "title": "New", "amount": 5, "status": "draft"})

        assert created.id == 12
        assert backend.calls[0] == ("POST", f"{BASE}/orders")
        assert len(backend.gets()) == 5

    def test_update_then_refresh(self, store, backend):
        backend.routes[("PUT", f"{BASE}/customers/1")] = (200, {"id": 1, "name": "Acme 2"})
        store.update("customers", 1, {"name": "Acme 2"})
        assert backend.calls[0] == ("PUT", f"{BASE}/customers/1")
        assert len(backend.gets()) == 5

    def test_remove_then_refresh(self, store, backend):
        backend.routes[("DELETE", f"{BASE}/finance-records/30")] = (204, None)
        store.remove("finance", 30)
        assert backend.calls[0] == ("DELETE", f"{BASE}/finance-records/30")
        assert len(backend.gets()) == 5

    def test_failed_write_propagates_and_skips_refresh(self, store, backend):
        store.refresh()
        backend.calls.clear()
        backend.routes[("POST", f"{BASE}/customers")] = (400, {"error": "name required"})

        with pytest.raises(ApiError) as exc:
            store.create("customers", {"name": ""})

        assert exc.value.status == 400
        assert backend.gets() == []
        assert len(store.customers) == 2

    def test_unknown_collection(self, store):
        with pytest.raises(KeyError):
            store.create("news", {"title": "x"})


class TestSummary:
    def test_dashboard_numbers(self, store):
        store.refresh()
        assert store.summary() == DashboardSummary(
            customer_count=2,
            order_count=2,
            total_order_amount=1500.5,
            pending_invoices=500,
            done_payments=250,
        )


class TestCollectionCache:
    def test_refresh_mirrors_and_new_store_seeds(self, client, storage, bus, backend):
        first = CrmStore(CrmApi(client), storage=storage, bus=bus, use_cache=True)
        first.refresh()
        assert storage.load_json("crm.customers")[0]["name"] == "Acme"

        second = CrmStore(CrmApi(client), storage=storage, bus=bus, use_cache=True)
        assert [c.name for c in second.customers] == ["Acme", "Globex"]
        assert second.customer_name(2) == "Globex"
        assert len(second.finance) == 4

    def test_corrupt_cache_is_empty(self, client, storage, bus, backend):
        storage.set_item("crm.orders", "{oops")
        storage.save_json("crm.customers", {"not": "a list"})
        store = CrmStore(CrmApi(client), storage=storage, bus=bus, use_cache=True)
        assert store.orders == []
        assert store.customers == []

    def test_cache_disabled_writes_nothing(self, store, storage):
        store.refresh()
        assert storage.get_item("crm.customers") is None
