"""
auth/policy.py -- Ownership policy for topics and replies.

A topic or reply may be edited or deleted only by the account that created
it. There is no administrative override and no other role.

authorize_mutation() is the pure decision. require_owner() is the route-layer
wrapper: it logs the denial and raises the 403 envelope.

Callers must load the resource's recorded owner first and answer 404 when the
resource does not exist, before asking this module anything. That keeps a 403
from confirming that a resource id exists.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException

from auth.models import Identity

logger = logging.getLogger("forumapi.auth")


def authorize_mutation(subject_id: int | None, owner_id: int | None) -> bool:
    """Return True iff subject_id is a real account id equal to owner_id.

    0 and None never match anything, including each other.
    """
    if not subject_id or not owner_id:
        return False
    return subject_id == owner_id


def require_owner(identity: Identity, owner_id: int, resource: str, resource_id: int) -> None:
    """Raise HTTP 403 unless identity owns the resource."""
    if authorize_mutation(identity.subject_id, owner_id):
        return
    logger.warning(
        "Ownership denied: subject %d on %s %d (owner %d)",
        identity.subject_id,
        resource,
        resource_id,
        owner_id,
    )
    raise HTTPException(
        status_code=403,
        detail={"code": "forbidden", "message": f"Only the author can modify this {resource}."},
    )
