"""
api/routes/v1/auth.py -- Registration, login, and identity endpoints.

Routes:
  POST /api/v1/auth/register   -- create an account (public)
  POST /api/v1/auth/login      -- email/password login; returns a bearer token (public)
  GET  /api/v1/auth/me         -- current account (requires auth)

Security:
  [H2] POST /login is rate-limited to 10 requests/minute per IP.
  [C1] authenticate_account() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on login responses.

Error asymmetry (kept on purpose):
  Login answers "bad_credentials" for an unknown email and for a wrong
  password alike. Registration answers "username_taken" or "email_taken",
  which does reveal that an account exists. Revisit both together if
  account enumeration becomes a concern.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AccountResponse, LoginRequest, LoginResponse, RegisterRequest
from auth.dependencies import get_identity, unauthorized
from auth.models import Account, Identity
from auth.passwords import authenticate_account, hash_password
from auth.store import AccountConflict, AccountStore
from auth.tokens import TokenCodec
from core.config import Settings

logger = logging.getLogger("forumapi.api")

# Auth policy:
# - POST /api/v1/auth/register:  public
# - POST /api/v1/auth/login:     public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:        requires auth (get_identity)
router = APIRouter()


@router.post("/auth/register", response_model=AccountResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> AccountResponse:
    """Create an account. The password is stored only as a bcrypt digest."""
    store: AccountStore = request.app.state.account_store
    settings: Settings = request.app.state.settings
    account = Account(
        username=body.name,
        email=body.email,
        password_hash=hash_password(body.password, rounds=settings.bcrypt_rounds),
    )
    try:
        account_id = store.create_account(account)
    except AccountConflict as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": f"{exc.field}_taken", "message": f"{exc.field.capitalize()} already exists."},
        ) from exc
    logger.info("Account %d registered", account_id)
    return AccountResponse.from_account(store.get_by_id(account_id))


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit("10/minute")  # [H2] brute-force mitigation -- below @router so the limited wrapper is what gets registered
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token.

    Uses authenticate_account() which includes timing equalization [C1].
    Returns the same "bad_credentials" error for an unknown email and a wrong
    password.
    """
    store: AccountStore = request.app.state.account_store
    codec: TokenCodec = request.app.state.token_codec
    account = authenticate_account(store, body.email, body.password)
    if account is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password.", "detail": None}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            user=AccountResponse.from_account(account),
            token=codec.issue(account.id),
            expires_in=codec.lifetime_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.get("/auth/me", response_model=AccountResponse)
def me(request: Request, identity: Identity = Depends(get_identity)) -> AccountResponse:
    """Return the account behind the presented bearer token."""
    store: AccountStore = request.app.state.account_store
    account = store.get_by_id(identity.subject_id)
    if account is None:
        # Token is genuine but its account no longer exists.
        raise unauthorized()
    return AccountResponse.from_account(account)
