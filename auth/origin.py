"""
auth/origin.py -- Origin gate: cross-origin access control at the boundary.

Starlette's CORSMiddleware only withholds CORS headers from an unknown
origin; the request itself still reaches the route. This gate is stricter:
a request from an origin outside the allow-list is refused with 403 before
any authentication or handler runs.

Decision table (origin values compared after stripping one trailing "/"):

  Origin header   Method    Result
  -------------   -------   ------------------------------------------------
  absent          any       pass through, no CORS headers
  allowed         OPTIONS   204 with CORS headers, handler never runs
  allowed         other     pass through, CORS headers added to the response
  not allowed     any       403 "origin_rejected"
  absent          OPTIONS   403 "origin_rejected" (a preflight needs an origin)

Allowed responses echo the caller's exact origin, never "*", and carry
"Vary: Origin" so caches keep per-origin copies apart.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger("forumapi.origin")

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"
PREFLIGHT_MAX_AGE = 3600


def normalize_origin(origin: str) -> str:
    """Strip a single trailing slash."""
    return origin[:-1] if origin.endswith("/") else origin


class OriginDecision(str, Enum):
    NO_ORIGIN = "no_origin"
    ALLOWED = "allowed"
    REJECTED = "rejected"


class OriginPolicy:
    """Exact-match allow-list of caller origins. Immutable after construction."""

    def __init__(self, allowed_origins: Iterable[str]) -> None:
        self._allowed = frozenset(normalize_origin(o.strip()) for o in allowed_origins if o.strip())

    @property
    def allowed(self) -> frozenset[str]:
        return self._allowed

    def evaluate(self, origin: str | None) -> OriginDecision:
        if not origin:
            return OriginDecision.NO_ORIGIN
        if normalize_origin(origin) in self._allowed:
            return OriginDecision.ALLOWED
        return OriginDecision.REJECTED

    def is_allowed(self, origin: str | None) -> bool:
        return self.evaluate(origin) is OriginDecision.ALLOWED


def _cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": normalize_origin(origin),
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Vary": "Origin",
    }


def _rejection() -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={
            "error": {
                "code": "origin_rejected",
                "message": "Cross-origin requests from this site are not permitted.",
                "detail": None,
            }
        },
    )


class OriginGateMiddleware(BaseHTTPMiddleware):
    """Apply an OriginPolicy to every request.

    Register it so it wraps the routes (and therefore the authentication
    dependencies): a rejected origin never reaches get_identity().
    """

    def __init__(self, app: ASGIApp, policy: OriginPolicy) -> None:
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        origin = request.headers.get("Origin")
        decision = self.policy.evaluate(origin)

        is_preflight = request.method == "OPTIONS"
        if decision is OriginDecision.REJECTED or (is_preflight and decision is not OriginDecision.ALLOWED):
            logger.warning("Origin rejected: %r on %s %s", origin, request.method, request.url.path)
            return _rejection()

        if is_preflight:
            headers = _cors_headers(origin)
            headers["Access-Control-Max-Age"] = str(PREFLIGHT_MAX_AGE)
            return Response(status_code=204, headers=headers)

        response = await call_next(request)
        if decision is OriginDecision.ALLOWED:
            for name, value in _cors_headers(origin).items():
                if name == "Vary":
                    response.headers.add_vary_header(value)
                else:
                    response.headers[name] = value
        return response
