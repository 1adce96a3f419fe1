"""
auth/tokens.py -- Bearer token codec.

Wire format:
  base64url(claims_json) + "." + base64url(HMAC-SHA256(secret, encoded_claims))

  Both segments are unpadded base64url, so a token is ASCII with exactly one
  ".". claims_json is an object with exactly two integer fields: "uid" (the
  subject's account id) and "exp" (Unix expiry, seconds). Key order is not
  significant to the decoder.

Security design decisions:
  The signature covers the *encoded* claims text, not a re-serialization of
  the decoded object. Verification is a byte comparison of two ASCII strings
  with no canonicalization step in between.

  Signature first: verify() checks the signature before it decodes a single
  byte of the claims. Unverified content is never parsed.

  Constant time: signatures are compared with hmac.compare_digest on bytes.
  Comparing str values would raise TypeError on non-ASCII input instead of
  rejecting it.

  Distinguishable reasons: every rejection is a TokenError subclass with a
  stable reason code for logs. The authentication gate collapses all of them
  into one 401 so callers never learn which check failed.

  Stateless: there is no revocation store. A TokenCodec holds its secret for
  its whole life; building a codec with a new secret invalidates every token
  signed by the old one at once.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from binascii import Error as BinasciiError
from collections.abc import Callable
from dataclasses import dataclass

from jose.utils import base64url_decode, base64url_encode

_SEPARATOR = "."
_CLAIM_FIELDS = frozenset({"uid", "exp"})


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base class for every token rejection. reason is safe to log."""

    reason = "invalid"


class MalformedToken(TokenError):
    reason = "malformed"


class BadSignature(TokenError):
    reason = "bad_signature"


class BadPayload(TokenError):
    reason = "bad_payload"


class TokenExpired(TokenError):
    reason = "expired"


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Claims:
    """The two facts a token asserts. Either fully trusted or never built."""

    subject_id: int
    expires_at: int  # Unix seconds

    def to_json(self) -> bytes:
        return json.dumps({"uid": self.subject_id, "exp": self.expires_at}, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes) -> Claims:
        """Parse a decoded claims block. Raises BadPayload on any deviation."""
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise BadPayload("claims are not valid JSON") from exc
        if not isinstance(data, dict) or set(data) != _CLAIM_FIELDS:
            raise BadPayload("claims must contain exactly uid and exp")
        uid, exp = data["uid"], data["exp"]
        # bool is an int subclass; true/false are not account ids.
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in (uid, exp)):
            raise BadPayload("uid and exp must be integers")
        return cls(subject_id=uid, expires_at=exp)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """Issue and verify bearer tokens with one fixed secret and lifetime.

    Usage:
        codec = TokenCodec(settings.secret_key, settings.token_lifetime_seconds)
        token = codec.issue(account_id)
        claims = codec.verify(token)          # raises TokenError

    clock returns the current Unix time in seconds. Tests inject a fake clock
    to pin issuance and check the expiry boundary; both issue() and verify()
    also accept an explicit now.
    """

    def __init__(
        self,
        secret: str,
        lifetime_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        if lifetime_seconds <= 0:
            raise ValueError("token lifetime must be positive")
        self._secret = secret.encode("utf-8")
        self._lifetime = lifetime_seconds
        self._clock = clock

    @property
    def lifetime_seconds(self) -> int:
        return self._lifetime

    def _sign(self, encoded_claims: str) -> str:
        digest = hmac.new(self._secret, encoded_claims.encode("ascii"), hashlib.sha256).digest()
        return base64url_encode(digest).decode("ascii")

    def issue(self, subject_id: int, now: float | None = None) -> str:
        """Return a signed token for subject_id, valid for the configured lifetime."""
        if isinstance(subject_id, bool) or not isinstance(subject_id, int) or subject_id <= 0:
            raise ValueError(f"subject id must be a positive integer, got {subject_id!r}")
        issued_at = int(self._clock() if now is None else now)
        claims = Claims(subject_id=subject_id, expires_at=issued_at + self._lifetime)
        encoded = base64url_encode(claims.to_json()).decode("ascii")
        return f"{encoded}{_SEPARATOR}{self._sign(encoded)}"

    def verify(self, token: str, now: float | None = None) -> Claims:
        """Return the token's claims, or raise the TokenError naming the failed check.

        Checks run in a fixed order: shape, signature, payload, freshness.
        A token is accepted at exactly its expiry second and rejected after it.
        """
        parts = token.split(_SEPARATOR)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise MalformedToken("token must be two non-empty segments")
        encoded, signature = parts

        try:
            expected = self._sign(encoded).encode("ascii")
        except UnicodeEncodeError as exc:
            raise BadSignature("claims segment is not ASCII") from exc
        if not hmac.compare_digest(expected, signature.encode("utf-8")):
            raise BadSignature("signature mismatch")

        try:
            raw = base64url_decode(encoded.encode("ascii"))
        except (BinasciiError, ValueError) as exc:
            raise BadPayload("claims segment is not base64url") from exc
        claims = Claims.from_json(raw)

        current = self._clock() if now is None else now
        if current > claims.expires_at:
            raise TokenExpired("token expired")
        return claims
