"""
api/routes/v1/accounts.py -- Profile endpoints for the authenticated account.

Routes:
  POST /me/avatar   -- upload a profile image (requires auth)

Uploads:
  multipart/form-data, field "avatar". Size is capped by
  Settings.max_avatar_bytes (5 MB default) and the part's content type must
  be image/*. The file lands in Settings.upload_dir as
  u{account_id}_{nanoseconds}{ext} and is served back under /uploads/.
  The stored name never contains caller-supplied path components; only the
  extension is taken from the uploaded filename.
"""

import logging
import time
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from api.models import AvatarResponse, ErrorDetail
from auth.dependencies import get_identity, unauthorized
from auth.models import Identity
from auth.store import AccountStore
from core.config import Settings

logger = logging.getLogger("forumapi.api")

router = APIRouter()

UPLOADS_PATH = "/uploads"
_DEFAULT_EXT = ".png"
_MAX_EXT_LEN = 10


def avatar_filename(account_id: int, original: str | None, now_ns: int | None = None) -> str:
    """Build the on-disk name for an avatar upload."""
    ext = Path(original or "").suffix.lower()
    if not ext or len(ext) > _MAX_EXT_LEN:
        ext = _DEFAULT_EXT
    stamp = time.time_ns() if now_ns is None else now_ns
    return f"u{account_id}_{stamp}{ext}"


@router.post("/me/avatar", response_model=AvatarResponse)
async def upload_avatar(
    request: Request,
    avatar: UploadFile = File(...),
    identity: Identity = Depends(get_identity),
) -> AvatarResponse:
    """Replace the caller's avatar image."""
    settings: Settings = request.app.state.settings
    store: AccountStore = request.app.state.account_store

    if not (avatar.content_type or "").startswith("image/"):
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="invalid_upload", message="Only image uploads are allowed.").model_dump(),
        )

    # Size guard -- read up to the limit + 1 byte; reject if over limit
    raw = await avatar.read(settings.max_avatar_bytes + 1)
    if len(raw) > settings.max_avatar_bytes:
        raise HTTPException(
            status_code=413,
            detail=ErrorDetail(
                code="payload_too_large",
                message=f"Avatar must be {settings.max_avatar_bytes} bytes or smaller.",
            ).model_dump(),
        )

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = avatar_filename(identity.subject_id, avatar.filename)
    (upload_dir / filename).write_bytes(raw)

    avatar_url = f"{UPLOADS_PATH}/{filename}"
    if not store.update_avatar(identity.subject_id, avatar_url):
        (upload_dir / filename).unlink(missing_ok=True)
        raise unauthorized()
    logger.info("Account %d uploaded avatar %s (%d bytes)", identity.subject_id, filename, len(raw))
    return AvatarResponse(avatar_url=avatar_url)
