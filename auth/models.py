"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors forum/models.py
-- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A registered forum member.

    id is None before the record is written to the database and never changes
    afterwards. password_hash is a bcrypt digest; it never leaves the server
    (response models in api/models.py simply have no field for it).
    avatar_url is the only attribute mutated after registration.
    """

    username: str
    email: str
    password_hash: str
    id: int | None = None
    avatar_url: str | None = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as resolved by the authentication gate.

    Route handlers receive this value directly via Depends(); nothing looks
    the subject up from an untyped request attribute.
    """

    subject_id: int
