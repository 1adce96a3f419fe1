"""
tests/test_origin.py -- Origin gate: allow-list policy and boundary middleware.

Unit tests exercise OriginPolicy directly. Integration tests send requests
through create_app() to prove the gate answers before authentication and
before any handler runs.

Allowed origins (from conftest.make_settings):
  https://app.example.com
  http://localhost:5173/   (configured with a trailing slash)
"""

from __future__ import annotations

import pytest

from auth.origin import OriginDecision, OriginPolicy, normalize_origin

ALLOWED_ORIGIN = "https://app.example.com"
SECOND_ORIGIN = "http://localhost:5173"
EVIL_ORIGIN = "https://evil.example.net"


# ---------------------------------------------------------------------------
# OriginPolicy
# ---------------------------------------------------------------------------


class TestOriginPolicy:
    policy = OriginPolicy(["https://app.example.com", "http://localhost:5173/", " ", ""])

    def test_blank_entries_are_ignored(self) -> None:
        assert self.policy.allowed == frozenset({"https://app.example.com", "http://localhost:5173"})

    @pytest.mark.parametrize(
        "origin",
        ["https://app.example.com", "https://app.example.com/", "http://localhost:5173", "http://localhost:5173/"],
    )
    def test_trailing_slash_is_ignored_on_both_sides(self, origin: str) -> None:
        assert self.policy.evaluate(origin) is OriginDecision.ALLOWED
        assert self.policy.is_allowed(origin)

    @pytest.mark.parametrize(
        "origin",
        [
            "https://evil.example.net",
            "http://app.example.com",
            "https://app.example.com:8443",
            "https://APP.example.com",
            "https://app.example.com//",
            "null",
        ],
    )
    def test_anything_else_is_rejected(self, origin: str) -> None:
        assert self.policy.evaluate(origin) is OriginDecision.REJECTED
        assert not self.policy.is_allowed(origin)

    @pytest.mark.parametrize("origin", [None, ""])
    def test_absent_origin(self, origin) -> None:
        assert self.policy.evaluate(origin) is OriginDecision.NO_ORIGIN

    def test_empty_allow_list_rejects_every_origin(self) -> None:
        assert OriginPolicy([]).evaluate(ALLOWED_ORIGIN) is OriginDecision.REJECTED

    def test_normalize_strips_one_slash(self) -> None:
        assert normalize_origin("https://a.example/") == "https://a.example"
        assert normalize_origin("https://a.example//") == "https://a.example/"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class TestOriginGate:
    def test_allowed_origin_gets_cors_headers(self, api_client) -> None:
        client, _app = api_client
        resp = client.get("/api/v1/topics", headers={"Origin": ALLOWED_ORIGIN})
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
        assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]
        assert "DELETE" in resp.headers["Access-Control-Allow-Methods"]
        assert "Origin" in resp.headers["Vary"]

    def test_allowed_origin_with_trailing_slash_is_echoed_normalized(self, api_client) -> None:
        client, _app = api_client
        resp = client.get("/api/v1/topics", headers={"Origin": SECOND_ORIGIN + "/"})
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == SECOND_ORIGIN

    def test_wildcard_is_never_sent(self, api_client) -> None:
        client, _app = api_client
        resp = client.get("/api/v1/topics", headers={"Origin": ALLOWED_ORIGIN})
        assert resp.headers["Access-Control-Allow-Origin"] != "*"

    def test_no_origin_passes_without_cors_headers(self, api_client) -> None:
        client, _app = api_client
        resp = client.get("/api/v1/topics")
        assert resp.status_code == 200
        assert "Access-Control-Allow-Origin" not in resp.headers

    def test_untrusted_origin_is_rejected(self, api_client) -> None:
        client, _app = api_client
        resp = client.get("/api/v1/topics", headers={"Origin": EVIL_ORIGIN})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "origin_rejected"
        assert "Access-Control-Allow-Origin" not in resp.headers

    def test_preflight_from_allowed_origin(self, api_client) -> None:
        client, _app = api_client
        resp = client.options(
            "/api/v1/topics",
            headers={"Origin": ALLOWED_ORIGIN, "Access-Control-Request-Method": "POST"},
        )
        assert resp.status_code == 204
        assert resp.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
        assert resp.headers["Access-Control-Max-Age"] == "3600"
        assert resp.content == b""

    def test_preflight_from_untrusted_origin(self, api_client) -> None:
        client, _app = api_client
        resp = client.options("/api/v1/topics", headers={"Origin": EVIL_ORIGIN})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "origin_rejected"

    def test_preflight_without_origin(self, api_client) -> None:
        client, _app = api_client
        resp = client.options("/api/v1/topics")
        assert resp.status_code == 403

    def test_rejected_before_authentication(self, api_client, member) -> None:
        """A valid token does not help an untrusted origin, and a missing one is not reported."""
        client, _app = api_client
        owner = member()
        resp = client.post(
            "/api/v1/topics",
            json={"title": "t", "content": "c"},
            headers={**owner.headers, "Origin": EVIL_ORIGIN},
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "origin_rejected"

        resp = client.post("/api/v1/topics", json={"title": "t", "content": "c"}, headers={"Origin": EVIL_ORIGIN})
        assert resp.status_code == 403

    def test_rejected_request_never_reaches_handler(self, api_client, member) -> None:
        client, _app = api_client
        owner = member()
        before = len(client.get("/api/v1/topics").json())
        client.post(
            "/api/v1/topics",
            json={"title": "blocked", "content": "c"},
            headers={**owner.headers, "Origin": EVIL_ORIGIN},
        )
        assert len(client.get("/api/v1/topics").json()) == before

    def test_error_responses_carry_cors_headers_for_allowed_origin(self, api_client) -> None:
        client, _app = api_client
        resp = client.post("/api/v1/topics", json={"title": "t", "content": "c"}, headers={"Origin": ALLOWED_ORIGIN})
        assert resp.status_code == 401
        assert resp.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
