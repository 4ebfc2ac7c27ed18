"""
Unit Tests for backend resource wrappers and login

Run with: pytest tests/unit/test_crm_api.py -v
"""

import json

import pytest

from core.errors import ApiError, AuthenticationError
from domain.models import Customer, Order, Session
from services.auth_service import AuthService, extract_token
from services.crm_api import CrmApi, to_payload


@pytest.fixture
def api(client):
    return CrmApi(client)


def last_call(http):
    args, kwargs = http.request.call_args
    return args[0], args[1], kwargs


class TestResources:
    def test_list_parses_models(self, api, http, response):
        http.request.return_value = response(200, [{"id": 1, "name": "Acme", "level": "A", "createdAt": "2026-01-01"}])
        customers = api.customers.list()
        assert customers == [Customer(id=1, name="Acme", level="A", created_at="2026-01-01")]
        assert last_call(http)[1] == "http://api.test/api/customers"

    def test_finance_path(self, api, http):
        api.finance.list()
        assert last_call(http)[1] == "http://api.test/api/finance-records"

    def test_non_list_body_is_empty(self, api, http, response):
        http.request.return_value = response(200, {"unexpected": True})
        assert api.orders.list() == []

    def test_invalid_items_skipped(self, api, http, response):
        http.request.return_value = response(200, [{"id": 1, "customerId": 2, "title": "ok"}, {"id": 2}])
        orders = api.orders.list()
        assert [o.id for o in orders] == [1]

    def test_create_strips_server_fields(self, api, http, response):
        http.request.return_value = response(201, {"id": 9, "customerId": 1, "title": "Kickoff", "amount": 100})
        created = api.orders.create(
            Order(id=0, customer_id=1, title="Kickoff", amount=100, created_at="x", updated_at="y")
        )

        method, url, kwargs = last_call(http)
        body = json.loads(kwargs["data"])
        assert method == "POST"
        assert url.endswith("/orders")
        assert "id" not in body and "createdAt" not in body and "updatedAt" not in body
        assert body["customerId"] == 1
        assert created.id == 9

    def test_dict_payload(self):
        assert to_payload({"id": 3, "name": "A", "createdAt": "t"}) == {"name": "A"}

    def test_update_and_remove_paths(self, api, http, response):
        http.request.return_value = response(200, {"id": 5, "name": "Beta"})
        api.customers.update(5, {"name": "Beta"})
        assert last_call(http)[:2] == ("PUT", "http://api.test/api/customers/5")

        http.request.return_value = response(204)
        assert api.customers.remove(5) is None
        assert last_call(http)[:2] == ("DELETE", "http://api.test/api/customers/5")

    def test_errors_propagate(self, api, http, response):
        http.request.return_value = response(500, {"error": "boom"})
        with pytest.raises(ApiError):
            api.visits.create({"customerId": 1, "date": "2026-01-01", "method": "call"})

    def test_unknown_resource(self, api):
        with pytest.raises(KeyError):
            api.resource("invoices")


class TestNewsAndBanners:
    def test_news_status_filter_and_sort(self, api, http, response):
        http.request.return_value = response(
            200,
            [
                {"id": 1, "title": "old", "status": "PUBLISHED", "updatedAt": "2026-01-01T00:00:00Z"},
                {"id": 2, "title": "new", "status": "PUBLISHED", "updatedAt": "2026-03-01T00:00:00Z"},
                {"id": 3, "title": "undated", "status": "PUBLISHED"},
            ],
        )
        news = api.news.list(status="PUBLISHED")
        assert [n.id for n in news] == [2, 1, 3]
        assert last_call(http)[2]["params"] == {"status": "PUBLISHED"}

    def test_news_without_filter_sends_no_params(self, api, http):
        api.news.list()
        assert last_call(http)[2]["params"] is None

    def test_banner_filters(self, api, http, response):
        http.request.return_value = response(
            200,
            [
                {"id": 1, "name": "Spring Sale", "updatedAt": "2026-02-01"},
                {"id": 2, "name": "Winter", "updatedAt": "2026-03-01"},
                {"id": 3, "name": "spring promo", "updatedAt": "2026-04-01"},
            ],
        )
        banners = api.banners.list(status="ONLINE", position="HOME_TOP", name="  SPRING ")
        assert [b.id for b in banners] == [3, 1]
        assert last_call(http)[2]["params"] == {"status": "ONLINE", "position": "HOME_TOP"}


class TestAuthService:
    @pytest.mark.parametrize("field", ["token", "accessToken", "access_token"])
    def test_token_field_variants(self, field):
        assert extract_token({field: "abc"}) == "abc"

    def test_token_precedence(self):
        assert extract_token({"access_token": "c", "accessToken": "b", "token": "a"}) == "a"
        assert extract_token("nope") == ""

    def test_login_persists_session(self, client, session_store, http, response):
        http.request.return_value = response(200, {"accessToken": "tok", "user": {"username": "Carl", "role": "Admin"}})
        session = AuthService(client, session_store).login("carl", "pw")

        method, url, kwargs = last_call(http)
        assert (method, url) == ("POST", "http://api.test/api/auth/login")
        assert json.loads(kwargs["data"]) == {"username": "carl", "password": "pw"}
        assert session.token == "tok"
        assert session_store.get_display_name() == "Carl"
        assert session_store.is_admin() is True

    def test_login_without_identity_uses_submitted_username(self, client, session_store, http, response, make_token):
        http.request.return_value = response(200, {"token": make_token({"sub": "7"})})
        AuthService(client, session_store).login("carl", "pw")
        assert session_store.get_display_name() == "carl"
        assert session_store.get_role() is None
        assert session_store.is_admin() is False

    def test_login_with_non_string_identity(self, client, session_store, http, response):
        http.request.return_value = response(200, {"token": "h.e.s", "user": {"username": 42, "role": ["admin"]}})
        session = AuthService(client, session_store).login("carl", "pw")
        assert session.user.username == "42"
        assert isinstance(session.user.role, str)
        assert session_store.is_admin() is True

    def test_login_without_token_keeps_previous_session(self, client, session_store, http, response):
        session_store.set_session(Session(token="previous"))
        http.request.return_value = response(200, {"user": {"username": "carl"}})
        with pytest.raises(AuthenticationError):
            AuthService(client, session_store).login("carl", "pw")
        assert session_store.get_token() == "previous"

    def test_login_rejected(self, client, session_store, http, response):
        http.request.return_value = response(401, {"message": "bad credentials"})
        with pytest.raises(ApiError) as exc:
            AuthService(client, session_store).login("carl", "wrong")
        assert exc.value.status == 401
        assert not session_store.is_authenticated()

    def test_logout(self, client, session_store):
        session_store.set_session(Session(token="t"))
        AuthService(client, session_store).logout()
        assert not session_store.is_authenticated()
