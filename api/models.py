"""
API request and response models for the forum REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
forum/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: domain models = domain truth; api/ models = API contract.
No response model has a password or digest field, so a stored hash cannot be
serialized by accident.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Account
from forum.models import Reply, Topic

# bcrypt reads at most 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    The field is called "name" on the wire (what the sign-up form sends) and
    becomes Account.username.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1, max_length=_BCRYPT_MAX_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
            raise ValueError(f"must be at most {_BCRYPT_MAX_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    avatar_url: str = ""
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            name=account.username,
            email=account.email,
            avatar_url=account.avatar_url or "",
            created_at=account.created_at,
        )


class LoginResponse(BaseModel):
    """Response body for a successful POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    user: AccountResponse
    token: str
    token_type: str = "bearer"
    expires_in: int


class AvatarResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    avatar_url: str


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


class TopicWrite(BaseModel):
    """Request body for POST /api/v1/topics and PUT /api/v1/topics/{id}."""

    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1, max_length=50_000)

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class TopicResponse(BaseModel):
    """One topic as returned by list, detail, create, update, and search."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    content: str
    user_id: int
    author_name: str
    author_avatar_url: str
    created_at: str
    reply_count: int
    viewer_can_modify: bool = False

    @classmethod
    def from_topic(cls, topic: Topic, viewer_can_modify: bool = False) -> "TopicResponse":
        """Factory Method -- mapping lives beside the output model, not in routes."""
        return cls(
            id=topic.id,
            title=topic.title,
            content=topic.content,
            user_id=topic.user_id,
            author_name=topic.author_name,
            author_avatar_url=topic.author_avatar_url,
            created_at=topic.created_at,
            reply_count=topic.reply_count,
            viewer_can_modify=viewer_can_modify,
        )


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------


class ReplyCreate(BaseModel):
    """Request body for POST /api/v1/replies."""

    topic_id: int = Field(gt=0)
    content: str = Field(min_length=1, max_length=20_000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class ReplyUpdate(BaseModel):
    """Request body for PUT /api/v1/replies/{id}."""

    content: str = Field(min_length=1, max_length=20_000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class ReplyResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    topic_id: int
    content: str
    user_id: int
    author_name: str
    author_avatar_url: str
    created_at: str

    @classmethod
    def from_reply(cls, reply: Reply) -> "ReplyResponse":
        return cls(
            id=reply.id,
            topic_id=reply.topic_id,
            content=reply.content,
            user_id=reply.user_id,
            author_name=reply.author_name,
            author_avatar_url=reply.author_avatar_url,
            created_at=reply.created_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
