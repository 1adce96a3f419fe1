"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

One credential is accepted: an "Authorization: Bearer <token>" header. The
prefix is matched exactly ("Bearer" followed by a single space), and the rest
of the header is handed to the TokenCodec stored on app.state by create_app().

get_identity() is the authentication gate for mutating routes. Every failure
(missing header, wrong scheme, malformed, bad signature, bad payload, expired)
becomes the same 401 "unauthorized" envelope; the specific reason is only
written to the log.

try_get_identity() is the soft variant for public routes: it never raises and
returns None whenever the caller is not authenticated.

Layer rule: no imports from api/ or forum/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from auth.models import Identity
from auth.tokens import TokenCodec, TokenError

logger = logging.getLogger("forumapi.auth")

_BEARER_PREFIX = "Bearer "


def _resolve(request: Request) -> Identity | None:
    header = request.headers.get("Authorization")
    if not header or not header.startswith(_BEARER_PREFIX):
        logger.info("Rejected credential on %s %s: missing", request.method, request.url.path)
        return None
    codec: TokenCodec = request.app.state.token_codec
    try:
        claims = codec.verify(header[len(_BEARER_PREFIX) :])
    except TokenError as exc:
        logger.info("Rejected credential on %s %s: %s", request.method, request.url.path, exc.reason)
        return None
    identity = Identity(subject_id=claims.subject_id)
    request.state.identity = identity
    return identity


def unauthorized() -> HTTPException:
    """The one 401 every unauthenticated request gets, from the gate or a route."""
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": "Authentication required."},
        headers={"WWW-Authenticate": "Bearer"},
    )


def try_get_identity(request: Request) -> Identity | None:
    """Return the caller's Identity, or None if the request is not authenticated.

    Never raises. Public routes use this to personalise a response without
    turning an absent or stale token into an error.
    """
    if "Authorization" not in request.headers:
        return None
    return _resolve(request)


def get_identity(request: Request) -> Identity:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.post("/topics")
        def route(identity: Identity = Depends(get_identity)): ...
    """
    identity = _resolve(request)
    if identity is None:
        raise unauthorized()
    return identity
