"""
auth/store.py -- SQLAlchemy Core persistence layer for forum accounts.

Pattern: Repository + Data Mapper (same as forum/store.py).
AccountStore is the repository; _row_to_account is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  password_hash is read only via load_password_hash(); no response model
  carries it.

Registration conflicts:
  username and email are both UNIQUE. create_account() reports WHICH one
  collided (AccountConflict.field) so the register route can answer with a
  field-specific 409. The login route, by contrast, never distinguishes an
  unknown email from a wrong password.

The users table and shared metadata are public because forum/store.py joins
topics and replies against users for author names and avatars.

Layer rule: no imports from api/ or forum/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Account

_DEFAULT_DB_URL = "sqlite:///forum.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("avatar_url", Text),  # "/uploads/<file>" or NULL
    Column("created_at", String(32), nullable=False),
)


class AccountConflict(Exception):
    """Raised by create_account() when a unique field is already taken."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already exists")
        self.field = field


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys for every SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def build_engine(db_url: str) -> Engine:
    """Create an Engine with the SQLite tweaks both stores rely on."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def now_iso() -> str:
    """Current UTC time as YYYY-MM-DDTHH:MM:SSZ."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore()
        account_id = store.create_account(Account(username="ada", email="ada@example.com",
                                                  password_hash=hash_password("secret")))
        account = store.get_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = build_engine(db_url)
        metadata.create_all(self.engine)

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its assigned database ID.

        Raises AccountConflict("username") or AccountConflict("email") when
        either unique field is taken. Username is checked first, matching the
        order the register form presents the fields.
        """
        self._raise_if_taken(account)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    users.insert().values(
                        username=account.username,
                        email=account.email,
                        password_hash=account.password_hash,
                        avatar_url=account.avatar_url,
                        created_at=now_iso(),
                    )
                )
                return result.inserted_primary_key[0]
        except IntegrityError:
            # A concurrent registration won the race; report which field.
            self._raise_if_taken(account)
            raise

    def _raise_if_taken(self, account: Account) -> None:
        with self.engine.connect() as conn:
            if conn.execute(select(users.c.id).where(users.c.username == account.username)).first():
                raise AccountConflict("username")
            if conn.execute(select(users.c.id).where(users.c.email == account.email)).first():
                raise AccountConflict("email")

    def get_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def load_password_hash(self, email: str) -> str | None:
        """Return the stored digest for email, or None if no account uses it."""
        with self.engine.connect() as conn:
            return conn.execute(select(users.c.password_hash).where(users.c.email == email)).scalar()

    def update_avatar(self, account_id: int, avatar_url: str) -> bool:
        """Point the account at a new avatar. Returns False if the account is gone."""
        with self.engine.begin() as conn:
            result = conn.execute(users.update().where(users.c.id == account_id).values(avatar_url=avatar_url))
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        avatar_url=row.avatar_url,
        created_at=row.created_at,
    )
