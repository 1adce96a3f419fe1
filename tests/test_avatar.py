"""
tests/test_avatar.py -- Avatar upload route and file naming.

The api_client fixture caps uploads at 1024 bytes and writes them to a
per-module temp directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from api.routes.v1.accounts import avatar_filename

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.parametrize(
    "original, expected",
    [
        ("me.PNG", "u7_123.png"),
        ("photo.jpeg", "u7_123.jpeg"),
        (None, "u7_123.png"),
        ("", "u7_123.png"),
        ("noext", "u7_123.png"),
        ("a.averyveryverylongext", "u7_123.png"),
        ("../../etc/cron.d/evil.gif", "u7_123.gif"),
    ],
)
def test_avatar_filename(original, expected) -> None:
    assert avatar_filename(7, original, now_ns=123) == expected


class TestAvatarUpload:
    def test_upload_sets_avatar_and_serves_file(self, api_client, member) -> None:
        client, app = api_client
        m = member()
        resp = client.post("/api/v1/me/avatar", files={"avatar": ("me.PNG", PNG, "image/png")}, headers=m.headers)
        assert resp.status_code == 200
        url = resp.json()["avatar_url"]
        assert url.startswith(f"/uploads/u{m.id}_")
        assert url.endswith(".png")

        assert (Path(app.state.settings.upload_dir) / url.rsplit("/", 1)[1]).read_bytes() == PNG
        served = client.get(url)
        assert served.status_code == 200
        assert served.content == PNG

        assert client.get("/api/v1/auth/me", headers=m.headers).json()["avatar_url"] == url

    def test_avatar_shows_on_authored_topics(self, api_client, member) -> None:
        client, _app = api_client
        m = member()
        url = client.post(
            "/api/v1/me/avatar", files={"avatar": ("a.gif", PNG, "image/gif")}, headers=m.headers
        ).json()["avatar_url"]
        topic = client.post("/api/v1/topics", json={"title": "t", "content": "c"}, headers=m.headers).json()
        assert topic["author_avatar_url"] == url

    def test_requires_auth(self, api_client) -> None:
        client, _app = api_client
        resp = client.post("/api/v1/me/avatar", files={"avatar": ("me.png", PNG, "image/png")})
        assert resp.status_code == 401

    def test_non_image_rejected(self, api_client, member) -> None:
        client, _app = api_client
        m = member()
        resp = client.post(
            "/api/v1/me/avatar", files={"avatar": ("notes.txt", b"hello", "text/plain")}, headers=m.headers
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_upload"

    def test_oversized_rejected(self, api_client, member) -> None:
        client, _app = api_client
        m = member()
        resp = client.post(
            "/api/v1/me/avatar", files={"avatar": ("big.png", b"\x00" * 1025, "image/png")}, headers=m.headers
        )
        assert resp.status_code == 413
        assert resp.json()["error"]["code"] == "payload_too_large"

    def test_unknown_account_leaves_no_file(self, api_client) -> None:
        client, app = api_client
        token = app.state.token_codec.issue(888_888)
        resp = client.post(
            "/api/v1/me/avatar",
            files={"avatar": ("me.png", PNG, "image/png")},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert resp.headers["WWW-Authenticate"] == "Bearer"
        assert not list(Path(app.state.settings.upload_dir).glob("u888888_*"))
