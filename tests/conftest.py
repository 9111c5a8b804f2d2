"""Shared fixtures: an app on in-memory SQLite, a test client and user helpers."""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import pytest

from finance_tracker import auth
from finance_tracker.config import AppConfig
from finance_tracker.webapp import create_app


@pytest.fixture
def app():
    cfg = AppConfig(secret_key="test-secret", database_uri="sqlite://", admin_login="admin", log_level="WARNING")
    return create_app(cfg, overrides={"TESTING": True})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(client):
    """Register a user through the API and return bearer headers."""

    def _register(login="alice", password="secret123", **extra):
        resp = client.post("/auth/register", json={"login": login, "password": password, **extra})
        assert resp.status_code == 201, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}

    return _register


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def make_user(ctx):
    """Create a user directly through the store layer (needs an app context)."""

    def _make(login="alice"):
        return auth.register_user(login, "secret123").id

    return _make


@dataclass
class Txn:
    type: str
    amount: Decimal
    date: dt.date
    category_id: int = 1
    id: Optional[int] = None


@dataclass
class Planned:
    amount: Decimal
    date: dt.date
    category_id: int = 1


@dataclass
class Save:
    amount: Decimal
    date: dt.date
