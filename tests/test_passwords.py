"""
Tests for auth/passwords.py -- bcrypt hashing and the credential verifier.
"""

from __future__ import annotations

import pytest

from auth.models import Account
from auth.passwords import authenticate_account, hash_password, verify_password
from auth.store import AccountStore

ROUNDS = 4  # bcrypt minimum; keeps the suite fast


@pytest.fixture(scope="module")
def store():
    s = AccountStore("sqlite:///file:test_passwords?mode=memory&cache=shared&uri=true")
    s.create_account(
        Account(username="ada", email="ada@example.com", password_hash=hash_password("correct horse", rounds=ROUNDS))
    )
    yield s
    s.close()


def test_hash_is_salted():
    first = hash_password("same secret", rounds=ROUNDS)
    second = hash_password("same secret", rounds=ROUNDS)
    assert first != second
    assert verify_password("same secret", first)
    assert verify_password("same secret", second)


def test_hash_never_contains_plaintext():
    assert "hunter2" not in hash_password("hunter2", rounds=ROUNDS)


def test_wrong_password_fails():
    digest = hash_password("right", rounds=ROUNDS)
    assert not verify_password("wrong", digest)
    assert not verify_password("Right", digest)
    assert not verify_password("", digest)


@pytest.mark.parametrize("digest", ["", "not-a-bcrypt-hash", "$2b$04$tooshort"])
def test_malformed_digest_fails_without_raising(digest):
    assert verify_password("anything", digest) is False


def test_authenticate_success_returns_account(store):
    account = authenticate_account(store, "ada@example.com", "correct horse")
    assert account is not None
    assert account.username == "ada"
    assert account.id is not None


def test_authenticate_wrong_password_returns_none(store):
    assert authenticate_account(store, "ada@example.com", "wrong horse") is None


def test_authenticate_unknown_email_returns_none(store):
    assert authenticate_account(store, "nobody@example.com", "correct horse") is None


def test_authenticate_email_is_exact_match(store):
    assert authenticate_account(store, "ADA@example.com", "correct horse") is None
