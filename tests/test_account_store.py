"""Unit tests for auth/store.py -- AccountStore persistence.

Covers:
- create_account() assigns ids and timestamps
- duplicate username / email raise AccountConflict naming the field
- load_password_hash() and lookups by id and email
- update_avatar() on present and missing accounts
"""

import re

import pytest

from auth.models import Account
from auth.store import AccountConflict, AccountStore


@pytest.fixture
def store():
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


def _account(username="ada", email="ada@example.com", password_hash="$2b$04$digest"):
    return Account(username=username, email=email, password_hash=password_hash)


def test_create_assigns_id_and_timestamp(store):
    account_id = store.create_account(_account())
    assert account_id > 0
    account = store.get_by_id(account_id)
    assert account.username == "ada"
    assert account.email == "ada@example.com"
    assert account.avatar_url is None
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", account.created_at)


def test_ids_are_distinct(store):
    first = store.create_account(_account())
    second = store.create_account(_account(username="grace", email="grace@example.com"))
    assert first != second


def test_duplicate_username_conflict(store):
    store.create_account(_account())
    with pytest.raises(AccountConflict) as exc_info:
        store.create_account(_account(email="other@example.com"))
    assert exc_info.value.field == "username"


def test_duplicate_email_conflict(store):
    store.create_account(_account())
    with pytest.raises(AccountConflict) as exc_info:
        store.create_account(_account(username="other"))
    assert exc_info.value.field == "email"


def test_username_checked_before_email(store):
    store.create_account(_account())
    with pytest.raises(AccountConflict) as exc_info:
        store.create_account(_account())
    assert exc_info.value.field == "username"


def test_lookups(store):
    account_id = store.create_account(_account())
    assert store.get_by_email("ada@example.com").id == account_id
    assert store.get_by_email("missing@example.com") is None
    assert store.get_by_id(account_id + 100) is None
    assert store.load_password_hash("ada@example.com") == "$2b$04$digest"
    assert store.load_password_hash("missing@example.com") is None


def test_update_avatar(store):
    account_id = store.create_account(_account())
    assert store.update_avatar(account_id, "/uploads/u1_1.png") is True
    assert store.get_by_id(account_id).avatar_url == "/uploads/u1_1.png"
    assert store.update_avatar(account_id + 100, "/uploads/x.png") is False


def test_ping(store):
    assert store.ping() is True
