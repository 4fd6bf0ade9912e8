from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from studydesk.core.errors import StoreUnavailable
from studydesk.core.security import hash_token
from studydesk.crud.refresh_token import SessionStore


def _put(store: SessionStore, user_id: str, secret: str, ttl: timedelta = timedelta(days=7)):
    rec = store.put(user_id, hash_token(secret), store._clock() + ttl)
    store.commit()
    return rec


def test_put_and_find_valid(store, make_user) -> None:
    user = make_user()
    _put(store, user.id, "secret-1")
    found = store.find_valid(hash_token("secret-1"))
    assert found is not None
    assert found.user_id == user.id
    assert store.find_valid(hash_token("secret-2")) is None


def test_secret_is_never_stored(store, make_user) -> None:
    user = make_user()
    rec = _put(store, user.id, "plain-refresh-secret")
    assert rec.token_hash == hash_token("plain-refresh-secret")
    assert "plain-refresh-secret" not in rec.token_hash


def test_expired_record_is_not_valid_even_if_present(store, make_user, clock) -> None:
    user = make_user()
    _put(store, user.id, "secret-1", ttl=timedelta(hours=1))
    clock.advance(hours=1)
    assert store.find_valid(hash_token("secret-1")) is None


def test_delete_expired_only_removes_expired(store, make_user, clock) -> None:
    user = make_user()
    _put(store, user.id, "short", ttl=timedelta(minutes=5))
    _put(store, user.id, "long", ttl=timedelta(days=1))
    clock.advance(minutes=10)
    assert store.delete_expired() == 1
    store.commit()
    assert store.find_valid(hash_token("long")) is not None


def test_delete_all_for_user_is_scoped(store, make_user) -> None:
    ana = make_user(email="ana@example.com")
    bob = make_user(email="bob@example.com")
    _put(store, ana.id, "a1")
    _put(store, ana.id, "a2")
    _put(store, bob.id, "b1")
    assert store.delete_all_for_user(ana.id) == 2
    store.commit()
    assert store.find_valid(hash_token("a1")) is None
    assert store.find_valid(hash_token("b1")) is not None
    assert store.delete_all_for_user(ana.id) == 0


def test_consume_succeeds_once(store, make_user) -> None:
    user = make_user()
    rec = _put(store, user.id, "secret-1")
    assert store.consume(rec) is True
    assert store.consume(rec) is False
    store.commit()
    assert store.find_valid(hash_token("secret-1")) is None


def test_consume_refuses_expired_record(store, make_user, clock) -> None:
    user = make_user()
    rec = _put(store, user.id, "secret-1", ttl=timedelta(minutes=1))
    clock.advance(minutes=2)
    assert store.consume(rec) is False


def test_interleaved_consumers_only_one_wins(session_factory, store, make_user, clock) -> None:
    user = make_user()
    _put(store, user.id, "shared")

    first = SessionStore(session_factory(), clock=clock)
    second = SessionStore(session_factory(), clock=clock)
    try:
        rec_a = first.find_valid(hash_token("shared"))
        rec_b = second.find_valid(hash_token("shared"))
        assert rec_a is not None and rec_b is not None

        assert first.consume(rec_a) is True
        first.commit()
        assert second.consume(rec_b) is False
        second.commit()
    finally:
        first.db.close()
        second.db.close()


def test_unreachable_store_raises_store_unavailable(unreachable_db, clock) -> None:
    store = SessionStore(unreachable_db, clock=clock)
    with pytest.raises(StoreUnavailable):
        store.find_valid(hash_token("x"))
    with pytest.raises(StoreUnavailable):
        store.delete_all_for_user("u-1")


def test_data_errors_are_not_masked(store, make_user) -> None:
    user = make_user()
    _put(store, user.id, "dup")
    with pytest.raises(IntegrityError):
        store.put(user.id, hash_token("dup"), store._clock() + timedelta(days=1))
    store.rollback()
