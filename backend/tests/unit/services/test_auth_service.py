# tests/unit/services/test_auth_service.py
from __future__ import annotations

from datetime import timedelta

import fakeredis
import pytest

from tests.factories.account import DEFAULT_PASSWORD, AccountFactory
from tests.helpers.clock import FrozenClock
from wallet_auth.infra.redis import RedisRefreshTokenStore
from wallet_auth.infra.sql import SQLAlchemyRefreshTokenStore
from wallet_auth.models.account import Account
from wallet_auth.services._shared.errors import (
    AuthenticationError,
    AuthFailure,
    ConflictError,
    NotFoundError,
)
from wallet_auth.services._shared.ports import (
    InMemoryRefreshTokenStore,
    LegacyProfile,
    RefreshStatus,
    RequestMetadata,
)
from wallet_auth.services.auth import (
    AuthenticatedOut,
    AuthService,
    LoginIn,
    NeedsMigrationOut,
    RegisterIn,
)

META = RequestMetadata(ip_address="198.51.100.4", user_agent="pytest")


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def service(components) -> AuthService:
    """AuthService as wired by the app (SQL refresh store, in-memory legacy doubles)."""
    return components.auth


def _failure(excinfo) -> AuthFailure:
    return excinfo.value.failure


# ------------------------------- Register --------------------------------- #
class TestRegister:
    def test_creates_local_account_and_session(self, service, components):
        out = service.register(
            RegisterIn(email=" New@Example.com ", secret="long-enough", first_name="N"), META
        )

        assert isinstance(out, AuthenticatedOut)
        assert out.account.email == "new@example.com"
        assert out.account.account_number.startswith("0000")
        assert out.account.is_legacy_linked is False
        assert components.tokens.verify(out.access_token).account_id == out.account.id
        assert components.refresh_store.validate(out.refresh_secret).account_id == out.account.id

    def test_duplicate_email(self, service):
        AccountFactory(email_address="taken@example.com")
        with pytest.raises(ConflictError):
            service.register(RegisterIn(email="TAKEN@example.com", secret="long-enough"))

    def test_weak_secret(self, service):
        with pytest.raises(AuthenticationError) as info:
            service.register(RegisterIn(email="weak@example.com", secret="short"))
        assert _failure(info) is AuthFailure.WEAK_SECRET


# -------------------------------- Login ----------------------------------- #
class TestLoginDecisionTable:
    def test_no_account_and_no_credentials(self, service):
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn(email="ghost@example.com"))
        assert _failure(info) is AuthFailure.NOT_FOUND

    def test_local_account_right_secret(self, service, session):
        account = AccountFactory()
        out = service.login(LoginIn.from_fields(account.email_address, DEFAULT_PASSWORD), META)

        assert isinstance(out, AuthenticatedOut)
        assert out.account.id == account.id
        session.refresh(account)
        assert account.last_signed_in is not None

    @pytest.mark.parametrize("secret", [None, "wrong-password"])
    def test_local_account_missing_or_wrong_secret(self, service, secret):
        account = AccountFactory()
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn.from_fields(account.email_address, secret))
        assert _failure(info) is AuthFailure.BAD_CREDENTIALS

    def test_local_secret_decides_even_with_provider_token(self, service, provider_tokens):
        account = AccountFactory(migrated=True)
        provider_tokens.register("tok", account.linked_provider_id, account.email_address)
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn.from_fields(account.email_address, "wrong", "tok"))
        assert _failure(info) is AuthFailure.BAD_CREDENTIALS

    def test_legacy_account_without_token(self, service):
        account = AccountFactory(legacy=True)
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn.from_fields(account.email_address, "whatever"))
        assert _failure(info) is AuthFailure.PROVIDER_TOKEN_REQUIRED

    def test_legacy_account_with_invalid_token(self, service):
        account = AccountFactory(legacy=True)
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn.from_fields(account.email_address, None, "bogus"))
        assert _failure(info) is AuthFailure.INVALID_PROVIDER_TOKEN

    def test_token_for_another_email(self, service, provider_tokens):
        account = AccountFactory(legacy=True)
        provider_tokens.register("tok", account.linked_provider_id, "someone@example.com")
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn.from_fields(account.email_address, None, "tok"))
        assert _failure(info) is AuthFailure.EMAIL_MISMATCH

    def test_token_for_another_subject(self, service, provider_tokens):
        account = AccountFactory(legacy=True)
        provider_tokens.register("tok", "impostor", account.email_address)
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn.from_fields(account.email_address, None, "tok"))
        assert _failure(info) is AuthFailure.IDENTITY_MISMATCH

    def test_legacy_account_with_matching_token_needs_migration(self, service, provider_tokens):
        account = AccountFactory(legacy=True)
        provider_tokens.register("tok", account.linked_provider_id, account.email_address)

        out = service.login(LoginIn.from_fields(account.email_address, None, "tok"))

        assert out == NeedsMigrationOut(
            subject_id=account.linked_provider_id, email=account.email_address
        )

    def test_no_account_with_matching_token(self, service, provider_tokens):
        provider_tokens.register("tok", "sub-new", "fresh@example.com")
        with pytest.raises(AuthenticationError) as info:
            service.login(LoginIn.from_fields("fresh@example.com", None, "tok"))
        assert _failure(info) is AuthFailure.NOT_FOUND


# ----------------------------- Legacy login ------------------------------- #
class TestLegacyLogin:
    def test_links_existing_unlinked_account(self, service, provider_tokens, session):
        account = AccountFactory(password=None)
        provider_tokens.register("tok", "sub-9", account.email_address)

        out = service.legacy_login("tok", META)

        assert out.account.id == account.id
        assert out.account.is_legacy_linked is True
        session.refresh(account)
        assert account.linked_provider_id == "sub-9"

    def test_auto_provisions_from_profile(self, service, provider_tokens, legacy_profiles, session):
        provider_tokens.register("tok", "sub-new", "Fresh@Example.com")
        legacy_profiles.profiles["sub-new"] = LegacyProfile(
            first_name="Fresh", last_name="Holder", account_number="000099990000"
        )

        out = service.legacy_login("tok", META)

        assert out.account.id == "sub-new"
        assert out.account.email == "fresh@example.com"
        assert out.account.account_number == "000099990000"
        assert out.account.migrated_at is not None
        account = session.get(Account, "sub-new")
        assert account.secret_hash is None
        assert account.linked_provider_id == "sub-new"

    def test_provisioned_account_gets_default_role(
        self, service, components, provider_tokens, legacy_profiles, session
    ):
        provider_tokens.register("tok", "sub-new", "fresh@example.com")
        legacy_profiles.profiles["sub-new"] = LegacyProfile(first_name="F" * 120)

        out = service.legacy_login("tok", META)

        assert components.tokens.verify(out.access_token).role == "user"
        account = session.get(Account, "sub-new")
        assert account.role == "user"
        assert account.first_name == "F" * 80

    def test_provisioning_replaces_unusable_account_number(
        self, service, provider_tokens, legacy_profiles
    ):
        AccountFactory(account_number="000099990000")
        provider_tokens.register("tok", "sub-new", "fresh@example.com")
        legacy_profiles.profiles["sub-new"] = LegacyProfile(account_number="000099990000")

        out = service.legacy_login("tok")

        assert out.account.account_number != "000099990000"
        assert out.account.account_number.startswith("0000")

    def test_missing_profile(self, service, provider_tokens):
        provider_tokens.register("tok", "sub-new", "fresh@example.com")
        with pytest.raises(AuthenticationError) as info:
            service.legacy_login("tok")
        assert _failure(info) is AuthFailure.NOT_FOUND

    def test_provisioning_disabled(self, components, provider_tokens, legacy_profiles):
        provider_tokens.register("tok", "sub-new", "fresh@example.com")
        legacy_profiles.profiles["sub-new"] = LegacyProfile(first_name="F")
        service = AuthService(
            credentials=components.credentials,
            reconciler=components.reconciler,
            token_issuer=components.tokens,
            refresh_store=components.refresh_store,
            profiles=legacy_profiles,
            auto_provision=False,
        )
        with pytest.raises(AuthenticationError) as info:
            service.legacy_login("tok")
        assert _failure(info) is AuthFailure.NOT_FOUND

    def test_identity_mismatch(self, service, provider_tokens):
        account = AccountFactory(linked_provider_id="sub-real")
        provider_tokens.register("tok", "sub-fake", account.email_address)
        with pytest.raises(AuthenticationError) as info:
            service.legacy_login("tok")
        assert _failure(info) is AuthFailure.IDENTITY_MISMATCH


# ------------------------------- Refresh ---------------------------------- #
class TestRefreshAndLogout:
    def _login(self, service) -> AuthenticatedOut:
        account = AccountFactory()
        return service.login(LoginIn.from_fields(account.email_address, DEFAULT_PASSWORD), META)

    def test_refresh_rotates(self, service, components):
        first = self._login(service)

        second = service.refresh(first.refresh_secret, META)

        assert second.refresh_secret != first.refresh_secret
        assert second.account.id == first.account.id
        assert components.tokens.verify(second.access_token).account_id == first.account.id
        old = components.refresh_store.validate(first.refresh_secret)
        assert old.status is RefreshStatus.REVOKED

    @pytest.mark.parametrize("secret", [None, "", "never-issued"])
    def test_refresh_with_unknown_secret(self, service, secret):
        with pytest.raises(AuthenticationError) as info:
            service.refresh(secret)
        assert _failure(info) is AuthFailure.INVALID_SESSION

    def test_refresh_for_deleted_account(self, service, components, session):
        first = self._login(service)
        session.delete(session.get(Account, first.account.id))
        session.commit()

        with pytest.raises(AuthenticationError) as info:
            service.refresh(first.refresh_secret)

        assert _failure(info) is AuthFailure.INVALID_SESSION

    def test_lost_rotation_race_is_a_breach(self, service, components, monkeypatch):
        first = self._login(service)
        store = components.refresh_store
        real_rotate = store.rotate

        def _concurrent_rotate(old_hash, account_id, metadata=None):
            real_rotate(old_hash, account_id, metadata)  # the other request wins
            return real_rotate(old_hash, account_id, metadata)

        monkeypatch.setattr(store, "rotate", _concurrent_rotate)
        with pytest.raises(AuthenticationError) as info:
            service.refresh(first.refresh_secret)

        assert _failure(info) is AuthFailure.SESSION_INVALIDATED
        assert store.list_account_sessions(first.account.id) == []

    def test_logout_revokes(self, service, components):
        first = self._login(service)
        service.logout(first.refresh_secret, META)
        assert components.refresh_store.validate(first.refresh_secret).status is RefreshStatus.REVOKED

    @pytest.mark.parametrize("secret", [None, "", "never-issued"])
    def test_logout_is_a_noop_for_unknown_secrets(self, service, secret):
        service.logout(secret)


# --------------------------- Expired sessions ----------------------------- #
@pytest.fixture(params=["memory", "sql", "redis"])
def clocked(request, components):
    """AuthService over a refresh store whose clock the test moves."""
    clock = FrozenClock()
    ttl = timedelta(days=30)
    if request.param == "memory":
        store = InMemoryRefreshTokenStore(ttl=ttl, clock=clock)
    elif request.param == "sql":
        store = SQLAlchemyRefreshTokenStore(ttl=ttl, clock=clock)
    else:
        store = RedisRefreshTokenStore(fakeredis.FakeRedis(), ttl=ttl, clock=clock)
    service = AuthService(
        credentials=components.credentials,
        reconciler=components.reconciler,
        token_issuer=components.tokens,
        refresh_store=store,
        clock=clock,
    )
    return service, clock


class TestExpiredSessions:
    @pytest.mark.parametrize("retire", ["refresh", "logout"])
    def test_expired_retired_secret_is_not_a_breach(self, clocked, retire):
        service, clock = clocked
        account = AccountFactory()
        login = LoginIn.from_fields(account.email_address, DEFAULT_PASSWORD)
        first = service.login(login, META)
        if retire == "refresh":
            service.refresh(first.refresh_secret, META)
        else:
            service.logout(first.refresh_secret, META)
        clock.advance(days=20)
        other = service.login(login, META)
        clock.advance(days=10, seconds=1)

        with pytest.raises(AuthenticationError) as info:
            service.refresh(first.refresh_secret, META)

        assert _failure(info) is AuthFailure.INVALID_SESSION
        assert service.refresh_store.validate(other.refresh_secret).is_active


class TestGetAccount:
    def test_returns_public_view(self, service):
        account = AccountFactory()
        out = service.get_account(account.id)
        assert out.email == account.email_address
        assert not hasattr(out, "secret_hash")

    def test_missing(self, service):
        with pytest.raises(NotFoundError):
            service.get_account("missing")
