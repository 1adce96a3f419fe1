"""
forum/store.py -- SQLAlchemy-backed persistence for topics and replies.

Uses SQLAlchemy Core (not ORM) so the dataclasses in forum/models.py remain
the authoritative domain representation. Tables share auth.store.metadata so
topics and replies can join against users for author names and avatars, and
so both stores can point at the same database URL.

Pattern: Repository + Data Mapper. ForumStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Ownership lookups (topic_owner / reply_owner) return only the owner id, or
None when the row does not exist. Routes answer 404 on None before consulting
auth.policy, so a 403 never confirms that an id exists.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ForumStore()                                # SQLite default
    store = ForumStore("postgresql://user:pw@host/db")  # PostgreSQL
    topic_id = store.create_topic(Topic(title="Hi", content="...", user_id=7))
    store.close()
"""

import logging
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, func, or_, select
from sqlalchemy.engine import Engine

from auth.store import build_engine, metadata, now_iso, users
from forum.models import Reply, Topic

logger = logging.getLogger("forumapi.forum")

_DEFAULT_DB_URL = "sqlite:///forum.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_topics = Table(
    "topics",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_replies = Table(
    "replies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("topic_id", Integer, ForeignKey("topics.id"), nullable=False, index=True),
    Column("content", Text, nullable=False),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Query builders
# ---------------------------------------------------------------------------


def _topic_select():
    """SELECT topics joined with their author and a live reply count."""
    reply_count = (
        select(func.count(_replies.c.id)).where(_replies.c.topic_id == _topics.c.id).scalar_subquery()
    ).label("reply_count")
    return select(
        _topics,
        users.c.username.label("author_name"),
        func.coalesce(users.c.avatar_url, "").label("author_avatar_url"),
        reply_count,
    ).join(users, users.c.id == _topics.c.user_id)


def _reply_select():
    return select(
        _replies,
        users.c.username.label("author_name"),
        func.coalesce(users.c.avatar_url, "").label("author_avatar_url"),
    ).join(users, users.c.id == _replies.c.user_id)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ForumStore:
    """Repository for Topic and Reply entities."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = build_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Topics
    # ------------------------------------------------------------------

    def list_topics(self) -> list[Topic]:
        """Return every topic, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_topic_select().order_by(_topics.c.created_at.desc(), _topics.c.id.desc())).fetchall()
        return [_row_to_topic(r) for r in rows]

    def get_topic(self, topic_id: int) -> Optional[Topic]:
        with self.engine.connect() as conn:
            row = conn.execute(_topic_select().where(_topics.c.id == topic_id)).fetchone()
        return _row_to_topic(row) if row is not None else None

    def create_topic(self, topic: Topic) -> int:
        """Insert a topic and return its ID. user_id must be the caller's identity."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _topics.insert().values(
                    title=topic.title,
                    content=topic.content,
                    user_id=topic.user_id,
                    created_at=now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def update_topic(self, topic_id: int, title: str, content: str) -> bool:
        """Replace title and content. Owner and created_at never change."""
        with self.engine.begin() as conn:
            result = conn.execute(_topics.update().where(_topics.c.id == topic_id).values(title=title, content=content))
        return result.rowcount > 0

    def delete_topic(self, topic_id: int) -> bool:
        """Delete a topic and every reply under it in one transaction."""
        with self.engine.begin() as conn:
            removed = conn.execute(_replies.delete().where(_replies.c.topic_id == topic_id)).rowcount
            result = conn.execute(_topics.delete().where(_topics.c.id == topic_id))
        if result.rowcount:
            logger.info("Topic %d deleted (%d replies removed)", topic_id, removed)
        return result.rowcount > 0

    def topic_owner(self, topic_id: int) -> Optional[int]:
        with self.engine.connect() as conn:
            return conn.execute(select(_topics.c.user_id).where(_topics.c.id == topic_id)).scalar()

    def search_topics(self, query: str) -> list[Topic]:
        """Case-insensitive substring match on title, content, or author name.

        A blank query returns an empty list rather than every topic.
        """
        query = query.strip()
        if not query:
            return []
        # Escape LIKE wildcards so "%" and "_" in the query match literally.
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        stmt = (
            _topic_select()
            .where(
                or_(
                    _topics.c.title.ilike(pattern, escape="\\"),
                    _topics.c.content.ilike(pattern, escape="\\"),
                    users.c.username.ilike(pattern, escape="\\"),
                )
            )
            .order_by(_topics.c.created_at.desc(), _topics.c.id.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_topic(r) for r in rows]

    # ------------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------------

    def list_replies(self, topic_id: int) -> list[Reply]:
        """Return a topic's replies, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _reply_select()
                .where(_replies.c.topic_id == topic_id)
                .order_by(_replies.c.created_at.asc(), _replies.c.id.asc())
            ).fetchall()
        return [_row_to_reply(r) for r in rows]

    def get_reply(self, reply_id: int) -> Optional[Reply]:
        with self.engine.connect() as conn:
            row = conn.execute(_reply_select().where(_replies.c.id == reply_id)).fetchone()
        return _row_to_reply(row) if row is not None else None

    def create_reply(self, reply: Reply) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                _replies.insert().values(
                    topic_id=reply.topic_id,
                    content=reply.content,
                    user_id=reply.user_id,
                    created_at=now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def update_reply(self, reply_id: int, content: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_replies.update().where(_replies.c.id == reply_id).values(content=content))
        return result.rowcount > 0

    def delete_reply(self, reply_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_replies.delete().where(_replies.c.id == reply_id))
        return result.rowcount > 0

    def reply_owner(self, reply_id: int) -> Optional[int]:
        with self.engine.connect() as conn:
            return conn.execute(select(_replies.c.user_id).where(_replies.c.id == reply_id)).scalar()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_topic(row) -> Topic:
    return Topic(
        id=row.id,
        title=row.title,
        content=row.content,
        user_id=row.user_id,
        author_name=row.author_name,
        author_avatar_url=row.author_avatar_url,
        created_at=row.created_at,
        reply_count=row.reply_count,
    )


def _row_to_reply(row) -> Reply:
    return Reply(
        id=row.id,
        topic_id=row.topic_id,
        content=row.content,
        user_id=row.user_id,
        author_name=row.author_name,
        author_avatar_url=row.author_avatar_url,
        created_at=row.created_at,
    )
