"""
forum/models.py -- Domain dataclasses for forum content.

These are pure data containers with zero logic. Persistence lives in
forum/store.py; who may change what lives in auth/policy.py.

user_id is the owner: set once at creation from the authenticated identity
and never reassigned. author_name and author_avatar_url are read-side joins
from the users table, not stored on the row.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Topic:
    """A discussion thread opened by one account.

    id is None before the record is written to the database.
    """

    title: str
    content: str
    user_id: int
    id: Optional[int] = None
    author_name: str = ""
    author_avatar_url: str = ""
    created_at: str = ""  # YYYY-MM-DDTHH:MM:SSZ, set by store on insert
    reply_count: int = 0


@dataclass
class Reply:
    """A response posted under a topic."""

    topic_id: int
    content: str
    user_id: int
    id: Optional[int] = None
    author_name: str = ""
    author_avatar_url: str = ""
    created_at: str = ""
