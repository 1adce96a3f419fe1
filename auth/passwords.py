"""
auth/passwords.py -- Password hashing and credential verification.

Security design decisions:
  bcrypt directly (no passlib wrapper). gensalt() embeds a fresh random salt
      and the cost factor in every digest, so hash_password() never returns
      the same string twice and verify_password() needs nothing but the digest.

  Uniform failure: verify_password() returns False for a wrong password AND
      for a malformed digest. authenticate_account() returns None for an
      unknown email, a wrong password, or a corrupt stored digest. The login
      route turns every None into the same "bad_credentials" 401 [C1].

  Timing equalization: _DUMMY_HASH is checked when the email is unknown so
      the response time does not reveal whether an account exists [C1].

  The plaintext secret is never logged, echoed, or stored.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

if TYPE_CHECKING:
    from auth.models import Account
    from auth.store import AccountStore

logger = logging.getLogger("forumapi.auth")

DEFAULT_ROUNDS = 12


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt digest of the given plaintext password.

    bcrypt only reads the first 72 bytes of its input. RegisterRequest caps
    passwords at 72 characters so nothing a member types is silently ignored.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt digest."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed digest, or a secret over bcrypt's 72-byte input limit.
        logger.warning("Password check rejected by bcrypt")
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("forumapi_timing_dummy")


def authenticate_account(store: AccountStore, email: str, password: str) -> Account | None:
    """Authenticate an email/password login with timing equalization [C1].

    Always runs bcrypt whether or not the account exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH
    - Wrong password: bcrypt runs against the stored digest

    Returns the Account on success, None on any failure.
    """
    digest = store.load_password_hash(email)
    if digest is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, digest):
        return None
    return store.get_by_email(email)
