"""
Shared fixtures: a fresh SQLite file per test and an API client bound to it.
"""

import pytest
from fastapi.testclient import TestClient

from stock_tracker.config import Config
from stock_tracker.db import init_db


ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password"


@pytest.fixture
def db_dsn(tmp_path):
    path = str(tmp_path / "stocks.sqlite")
    init_db(path)
    return path


@pytest.fixture
def cfg(db_dsn):
    return Config(
        DB_DSN=db_dsn,
        AUTH_JWT_SECRET="test-secret-of-reasonable-length-0123456789",
        AUTH_BOOTSTRAP_ADMIN_EMAIL=ADMIN_EMAIL,
        AUTH_BOOTSTRAP_ADMIN_PASSWORD=ADMIN_PASSWORD,
    )


@pytest.fixture
def client(cfg, monkeypatch):
    from stock_tracker.api import server

    monkeypatch.setattr(server, "cfg", cfg)
    with TestClient(server.app) as tc:
        yield tc


@pytest.fixture
def admin_headers(client):
    resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def user_headers(client):
    resp = client.post(
        "/auth/register",
        json={"email": "reader@example.com", "password": "reader-password", "full_name": "Reader"},
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['token']}"}
