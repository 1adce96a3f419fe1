"""
tests/conftest.py -- Shared test fixtures for forum API tests.

This module provides:
  - make_settings(): a Settings value that never touches .env
  - api_client: TestClient over create_app() with isolated stores, one per module
  - member: factory that registers an account through the API and logs it in
  - rate_limited_client: TestClient over an app with the login limit switched on

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process,
which also lets AccountStore and ForumStore see the same tables.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Generator
from dataclasses import dataclass

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import create_app
from core.config import Settings

TEST_SECRET = "forum-test-secret-key-0123456789abcdef"
ALLOWED_ORIGIN = "https://app.example.com"
SECOND_ORIGIN = "http://localhost:5173"

_counter = itertools.count(1)


def make_settings(**overrides) -> Settings:
    """Build Settings for tests. _env_file=None keeps a developer's .env out of the run."""
    values = {
        "secret_key": TEST_SECRET,
        "database_url": "sqlite:///:memory:",
        "allowed_origins": f"{ALLOWED_ORIGIN},{SECOND_ORIGIN}/",
        "rate_limit_enabled": False,
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@dataclass
class Member:
    """A registered account plus a bearer token for it."""

    id: int
    name: str
    email: str
    password: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="module")
def api_client(request, tmp_path_factory) -> Generator[tuple[TestClient, FastAPI], None, None]:
    """Yield (client, app) backed by a fresh shared-memory database.

    The database name is derived from the test module so modules never see
    each other's rows. Avatar uploads go to a per-module temp directory and
    are capped at 1 KiB so size-limit tests stay small.
    """
    db_name = request.module.__name__.replace(".", "_")
    settings = make_settings(
        database_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true",
        upload_dir=str(tmp_path_factory.mktemp("uploads")),
        max_avatar_bytes=1024,
    )
    app = create_app(settings)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, app


@pytest.fixture
def member(api_client) -> Callable[..., Member]:
    """Return a factory that registers and logs in a new account.

    Every call gets unique name/email values unless they are passed in.
    """
    client, _app = api_client

    def _make(name: str | None = None, email: str | None = None, password: str = "s3cret-pass") -> Member:
        n = next(_counter)
        name = name or f"member{n}"
        email = email or f"member{n}@example.com"
        resp = client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        login = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        return Member(id=resp.json()["id"], name=name, email=email, password=password, token=login.json()["token"])

    return _make


@pytest.fixture
def rate_limited_client(tmp_path) -> Generator[TestClient, None, None]:
    """Yield a TestClient whose app enforces rate limits.

    The slowapi limiter is module-level, so its counters are cleared on the
    way in and it is switched back off on the way out; other fixtures'
    apps keep running with limits disabled.
    """
    settings = make_settings(
        database_url="sqlite:///file:test_rate_limit?mode=memory&cache=shared&uri=true",
        upload_dir=str(tmp_path / "uploads"),
        rate_limit_enabled=True,
    )
    limiter.reset()
    app = create_app(settings)
    try:
        with TestClient(app) as client:
            yield client
    finally:
        limiter.enabled = False
        limiter.reset()
