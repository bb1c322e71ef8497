"""
Tests for the FastAPI endpoints, run against a temporary SQLite database.
"""

from fastapi.testclient import TestClient

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


AAPL = {"ticker": "AAPL", "company_name": "Apple Inc.", "price": 150.25}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


class TestAuth:
    def test_login(self, client):
        resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        assert resp.status_code == 200
        data = resp.json()
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == ADMIN_EMAIL
        assert data["user"]["role"] == "admin"
        assert "password_hash" not in data["user"]

    def test_login_bad_password(self, client):
        resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "invalid_credentials"

    def test_login_unknown_user(self, client):
        resp = client.post("/auth/login", json={"email": "ghost@example.com", "password": "whatever1"})
        assert resp.status_code == 401

    def test_register_then_me(self, client):
        resp = client.post(
            "/auth/register",
            json={"email": "New@Example.com", "password": "password123", "full_name": "New User"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["role"] == "user"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.json()["user"]["full_name"] == "New User"

    def test_register_duplicate_email(self, client):
        body = {"email": "dup@example.com", "password": "password123"}
        assert client.post("/auth/register", json=body).status_code == 201
        resp = client.post("/auth/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "email_exists"

    def test_register_short_password(self, client):
        resp = client.post("/auth/register", json={"email": "x@example.com", "password": "short"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "password_too_short"

    def test_me_requires_token(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "missing_token"

    def test_me_rejects_garbage_token(self, client):
        resp = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "token_invalid"


class TestImport:
    def test_example_batch(self, client, admin_headers):
        resp = client.post(
            "/stocks/import?update=false",
            json={"stocks": [AAPL, {"ticker": "BAD"}]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "Import completed",
            "result": {
                "created": 1,
                "updated": 0,
                "errors": [{"ticker": "BAD", "error": "Missing required fields"}],
            },
        }

    def test_update_flag(self, client, admin_headers):
        client.post("/stocks/import", json={"stocks": [{**AAPL, "pe_ttm": 28.5}]}, headers=admin_headers)

        resp = client.post("/stocks/import", json={"stocks": [{**AAPL, "price": 1}]}, headers=admin_headers)
        assert resp.json()["result"] == {"created": 0, "updated": 0, "errors": []}

        resp = client.post(
            "/stocks/import?update=true",
            json={"stocks": [{**AAPL, "price": 175.5}]},
            headers=admin_headers,
        )
        assert resp.json()["result"] == {"created": 0, "updated": 1, "errors": []}

        stock = client.get("/stocks/AAPL", headers=admin_headers).json()
        assert stock["price"] == 175.5
        assert stock["pe_ttm"] == 28.5

    def test_stocks_not_a_list(self, client, admin_headers):
        for body in ({"stocks": {"ticker": "AAPL"}}, {}, [AAPL]):
            resp = client.post("/stocks/import", json=body, headers=admin_headers)
            assert resp.status_code == 400
            assert resp.json()["detail"] == "invalid_data_format"

    def test_requires_admin(self, client, user_headers):
        resp = client.post("/stocks/import", json={"stocks": [AAPL]}, headers=user_headers)
        assert resp.status_code == 403

    def test_requires_auth(self, client):
        resp = client.post("/stocks/import", json={"stocks": [AAPL]})
        assert resp.status_code == 401


class TestStocks:
    def _seed(self, client, headers, n=12):
        stocks = [
            {"ticker": f"T{i:02d}", "company_name": f"Company {i}", "price": float(100 - i)}
            for i in range(n)
        ]
        resp = client.post("/stocks/import", json={"stocks": stocks}, headers=headers)
        assert resp.json()["result"]["created"] == n

    def test_list_pagination(self, client, admin_headers, user_headers):
        self._seed(client, admin_headers)
        resp = client.get("/stocks?page=2&limit=5", headers=user_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert [s["ticker"] for s in data["data"]] == ["T05", "T06", "T07", "T08", "T09"]
        assert data["pagination"] == {"total": 12, "page": 2, "limit": 5, "totalPages": 3}

    def test_list_sorted(self, client, admin_headers):
        self._seed(client, admin_headers, n=3)
        resp = client.get("/stocks?sort=price&order=asc", headers=admin_headers)
        assert [s["ticker"] for s in resp.json()["data"]] == ["T02", "T01", "T00"]

    def test_list_bad_sort(self, client, admin_headers):
        resp = client.get("/stocks?sort=password_hash", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "invalid_sort"

    def test_list_requires_auth(self, client):
        assert client.get("/stocks").status_code == 401

    def test_get_not_found(self, client, user_headers):
        resp = client.get("/stocks/NEVER", headers=user_headers)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "stock_not_found"

    def test_get_with_leadership(self, client, admin_headers):
        record = {
            **AAPL,
            "leadership": {"ceo": {"name": "Tim Cook", "birth_year": 1960}, "deputy_ceos": ["Jeff Williams"]},
        }
        client.post("/stocks/import", json={"stocks": [record]}, headers=admin_headers)
        stock = client.get("/stocks/aapl", headers=admin_headers).json()
        assert stock["ticker"] == "AAPL"
        assert stock["leadership"]["ceo"] == {"name": "Tim Cook", "birth_year": 1960}
        assert stock["leadership"]["deputy_ceos"] == ["Jeff Williams"]

    def test_create_update_delete(self, client, admin_headers, user_headers):
        resp = client.post("/stocks", json=AAPL, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["ticker"] == "AAPL"

        assert client.post("/stocks", json=AAPL, headers=admin_headers).status_code == 409
        assert client.post("/stocks", json={"ticker": "X"}, headers=admin_headers).status_code == 400
        assert client.post("/stocks", json=AAPL, headers=user_headers).status_code == 403

        resp = client.put("/stocks/AAPL", json={"beta": 1.25}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["beta"] == 1.25
        assert resp.json()["price"] == 150.25

        assert client.put("/stocks/NOPE", json={"beta": 1}, headers=admin_headers).status_code == 404

        resp = client.delete("/stocks/AAPL", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"deleted": "AAPL"}
        assert client.get("/stocks/AAPL", headers=admin_headers).status_code == 404

    def test_blank_ticker_is_not_found(self, client, admin_headers):
        for resp in (
            client.get("/stocks/%20", headers=admin_headers),
            client.put("/stocks/%20", json={"beta": 1}, headers=admin_headers),
            client.delete("/stocks/%20", headers=admin_headers),
        ):
            assert resp.status_code == 404
            assert resp.json()["detail"] == "stock_not_found"

    def test_create_rejects_bad_values(self, client, admin_headers):
        resp = client.post("/stocks", json={**AAPL, "market_cap": 10**20}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid numeric value for market_cap"

        resp = client.post("/stocks", json={**AAPL, "ticker": {"a": 1}}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid record format"


def test_unhandled_errors_are_generic(cfg, monkeypatch):
    from stock_tracker.api import server

    def broken(*args, **kwargs):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(server, "cfg", cfg)
    monkeypatch.setattr(server, "list_stocks", broken)
    with TestClient(server.app, raise_server_exceptions=False) as tc:
        login = tc.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        headers = {"Authorization": f"Bearer {login.json()['token']}"}
        resp = tc.get("/stocks", headers=headers)
    assert resp.status_code == 500
    assert resp.json() == {"detail": "server_error"}
