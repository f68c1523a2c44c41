"""
Behaviour shared by every refresh credential store.

The same cases run against the in-memory store, the SQL store (transactional
SQLite session) and the Redis store (``fakeredis``):

- issue + validate + get (only the hash is stored)
- rotate: success, replay of the old secret, expiry, wrong owner
- revoke / revoke_all_for_account
- list_account_sessions and cleanup_expired
"""

from __future__ import annotations

from datetime import timedelta

import fakeredis
import pytest

from tests.factories.account import AccountFactory
from tests.helpers.clock import FrozenClock
from wallet_auth.infra.redis import RedisRefreshTokenStore
from wallet_auth.infra.sql import SQLAlchemyRefreshTokenStore
from wallet_auth.services._shared.ports import (
    InMemoryRefreshTokenStore,
    RefreshStatus,
    RequestMetadata,
    RotationResult,
)

TTL = timedelta(days=30)
META = RequestMetadata(ip_address="203.0.113.7", user_agent="pytest/1.0")


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture(params=["memory", "sql", "redis"])
def store(request, clock, session):
    if request.param == "memory":
        return InMemoryRefreshTokenStore(ttl=TTL, clock=clock)
    if request.param == "sql":
        return SQLAlchemyRefreshTokenStore(ttl=TTL, clock=clock)
    return RedisRefreshTokenStore(fakeredis.FakeRedis(), ttl=TTL, clock=clock)


@pytest.fixture()
def account_id(session) -> str:
    return AccountFactory().id


class TestIssueAndValidate:
    def test_issue_stores_only_the_hash(self, store, account_id, clock):
        issued = store.issue(account_id, META)

        assert issued.secret != issued.token_hash
        assert issued.token_hash == store.hash_secret(issued.secret)
        assert issued.expires_at == clock() + TTL

        view = store.get(issued.token_hash)
        assert view is not None
        assert view.account_id == account_id
        assert view.ip_address == META.ip_address
        assert view.user_agent == META.user_agent
        assert view.revoked_at is None
        assert store.get(issued.secret) is None

    def test_validate_active(self, store, account_id):
        issued = store.issue(account_id)
        result = store.validate(issued.secret)
        assert result.is_active
        assert result.account_id == account_id
        assert result.token_hash == issued.token_hash

    def test_validate_unknown(self, store):
        result = store.validate("not-a-real-secret")
        assert result.status is RefreshStatus.NOT_FOUND
        assert result.account_id is None

    def test_validate_expired(self, store, account_id, clock):
        issued = store.issue(account_id)
        clock.advance(days=30, seconds=1)
        assert store.validate(issued.secret).status is RefreshStatus.EXPIRED

    def test_secrets_are_unique(self, store, account_id):
        first = store.issue(account_id)
        second = store.issue(account_id)
        assert first.secret != second.secret


class TestRotate:
    def test_rotation_revokes_old_and_links_successor(self, store, account_id, clock):
        old = store.issue(account_id)
        clock.advance(minutes=5)

        rotation = store.rotate(old.token_hash, account_id, META)

        assert rotation.result is RotationResult.OK
        assert rotation.issued is not None
        assert rotation.issued.expires_at == clock() + TTL
        old_view = store.get(old.token_hash)
        assert old_view.revoked_at == clock()
        assert old_view.replaced_by_hash == rotation.issued.token_hash
        assert old_view.revoked_by_ip == META.ip_address
        assert store.validate(rotation.issued.secret).is_active

    def test_replaying_rotated_secret_is_revoked(self, store, account_id):
        old = store.issue(account_id)
        assert store.rotate(old.token_hash, account_id).result is RotationResult.OK

        second = store.rotate(old.token_hash, account_id)

        assert second.result is RotationResult.REVOKED
        assert second.issued is None
        assert store.validate(old.secret).status is RefreshStatus.REVOKED

    def test_expired_credential_is_not_rotated(self, store, account_id, clock):
        old = store.issue(account_id)
        clock.advance(days=31)
        rotation = store.rotate(old.token_hash, account_id)
        assert rotation.result is RotationResult.EXPIRED
        assert store.get(old.token_hash).revoked_at is None

    def test_unknown_or_foreign_credential(self, store, account_id):
        old = store.issue(account_id)
        assert store.rotate("missing", account_id).result is RotationResult.NOT_FOUND
        assert store.rotate(old.token_hash, "someone-else").result is RotationResult.NOT_FOUND
        assert store.validate(old.secret).is_active


class TestRevoke:
    def test_revoke_is_idempotent(self, store, account_id):
        issued = store.issue(account_id)
        assert store.revoke(issued.token_hash, META) is True
        assert store.revoke(issued.token_hash, META) is False
        assert store.revoke("missing") is False
        assert store.validate(issued.secret).status is RefreshStatus.REVOKED

    def test_revoke_all_for_account(self, store, account_id, session):
        other_id = AccountFactory().id
        a = store.issue(account_id)
        b = store.issue(account_id)
        store.revoke(b.token_hash)
        c = store.issue(other_id)

        assert store.revoke_all_for_account(account_id) == 1
        assert store.validate(a.secret).status is RefreshStatus.REVOKED
        assert store.validate(c.secret).is_active

    @pytest.mark.parametrize("retire", ["rotate", "revoke"])
    def test_expiry_wins_over_revocation(self, store, account_id, clock, retire):
        old = store.issue(account_id)
        if retire == "rotate":
            assert store.rotate(old.token_hash, account_id).result is RotationResult.OK
        else:
            assert store.revoke(old.token_hash) is True

        clock.advance(days=30, seconds=1)

        result = store.validate(old.secret)
        assert result.status is RefreshStatus.EXPIRED
        assert result.account_id == account_id


class TestHousekeeping:
    def test_list_account_sessions_returns_live_newest_first(self, store, account_id, clock):
        first = store.issue(account_id)
        clock.advance(minutes=1)
        second = store.issue(account_id)
        clock.advance(minutes=1)
        revoked = store.issue(account_id)
        store.revoke(revoked.token_hash)

        sessions = store.list_account_sessions(account_id)

        assert [s.token_hash for s in sessions] == [second.token_hash, first.token_hash]

    def test_cleanup_expired(self, store, account_id, clock):
        old = store.issue(account_id)
        clock.advance(days=20)
        fresh = store.issue(account_id)
        clock.advance(days=11)

        assert store.cleanup_expired() == 1
        assert store.get(old.token_hash) is None
        assert store.get(fresh.token_hash) is not None
        assert store.cleanup_expired() == 0
