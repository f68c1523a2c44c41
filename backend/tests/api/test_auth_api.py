"""Tests for the authentication endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest

from tests.factories.account import DEFAULT_PASSWORD, AccountFactory
from tests.helpers.cookies import (
    AUTH,
    cookie_value,
    drop_refresh_cookie,
    refresh_cookie_header,
)


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def signed_in(client, session):
    """Register an account through the API and return the response."""
    response = client.post(
        f"{AUTH}/register",
        json={"email": "holder@example.com", "password": "correct-horse-battery", "first_name": "Ada"},
    )
    assert response.status_code == 201, response.get_json()
    return response


class TestRegister:
    def test_returns_session_and_sets_cookie(self, signed_in):
        response = signed_in

        body = response.get_json()["data"]
        assert body["account"]["email"] == "holder@example.com"
        assert body["account"]["first_name"] == "Ada"
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        assert "refresh_token" not in body
        assert "secret_hash" not in body["account"]

        header = refresh_cookie_header(response)
        assert header is not None
        assert "HttpOnly" in header
        assert "Path=/api/v1/auth" in header
        assert "SameSite=Lax" in header

    def test_duplicate_email_conflicts(self, client, signed_in):
        response = client.post(
            f"{AUTH}/register",
            json={"email": "HOLDER@example.com", "password": "another-long-one"},
        )
        assert response.status_code == 409
        assert response.mimetype == "application/problem+json"

    def test_short_password_is_rejected(self, client, session):
        response = client.post(f"{AUTH}/register", json={"email": "w@example.com", "password": "short"})
        assert response.status_code == 422
        assert response.get_json()["code"] == "weak_secret"

    def test_malformed_payload(self, client, session):
        response = client.post(f"{AUTH}/register", json={"email": "not-an-email"})
        assert response.status_code == 422
        errors = response.get_json()["details"]["errors"]
        assert {"email", "password"} <= set(errors)

    def test_names_must_fit_the_account_columns(self, client, session):
        response = client.post(
            f"{AUTH}/register",
            json={"email": "n@example.com", "password": "long-enough", "last_name": "x" * 81},
        )
        assert response.status_code == 422
        assert "last_name" in response.get_json()["details"]["errors"]


class TestLogin:
    def test_password_login(self, client, session):
        account = AccountFactory()
        response = client.post(
            f"{AUTH}/login", json={"email": account.email_address, "password": DEFAULT_PASSWORD}
        )
        assert response.status_code == 200
        assert response.get_json()["data"]["account"]["id"] == account.id
        assert refresh_cookie_header(response) is not None

    def test_long_user_agent_is_clipped(self, client, components):
        account = AccountFactory()
        response = client.post(
            f"{AUTH}/login",
            json={"email": account.email_address, "password": DEFAULT_PASSWORD},
            headers={"User-Agent": "ua" * 200},
        )
        assert response.status_code == 200

        secret = cookie_value(refresh_cookie_header(response))
        record = components.refresh_store.get(components.refresh_store.hash_secret(secret))
        assert record.user_agent == ("ua" * 200)[:255]

    @pytest.mark.parametrize("email", ["nobody@example.com", None])
    def test_unknown_email_and_wrong_password_look_alike(self, client, session, email):
        account = AccountFactory()
        payload = {"email": email or account.email_address}
        if email is None:
            payload["password"] = "wrong-password"

        response = client.post(f"{AUTH}/login", json=payload)

        problem = response.get_json()
        assert response.status_code == 401
        assert problem["code"] == "invalid_credentials"
        assert problem["detail"] == "Invalid email or password"

    def test_legacy_account_needs_migration(self, client, session, provider_tokens):
        account = AccountFactory(legacy=True)
        provider_tokens.register("tok", account.linked_provider_id, account.email_address)

        response = client.post(
            f"{AUTH}/login", json={"email": account.email_address, "provider_token": "tok"}
        )

        assert response.status_code == 200
        payload = response.get_json()
        assert payload["needs_migration"] is True
        assert payload["data"] == {
            "subject_id": account.linked_provider_id,
            "email": account.email_address,
        }
        assert refresh_cookie_header(response) is None

    def test_legacy_account_without_token(self, client, session):
        account = AccountFactory(legacy=True)
        response = client.post(f"{AUTH}/login", json={"email": account.email_address})
        assert response.status_code == 401
        assert response.get_json()["code"] == "provider_token_required"

    def test_email_mismatch_is_forbidden(self, client, session, provider_tokens):
        account = AccountFactory(legacy=True)
        provider_tokens.register("tok", account.linked_provider_id, "other@example.com")
        response = client.post(
            f"{AUTH}/login", json={"email": account.email_address, "provider_token": "tok"}
        )
        assert response.status_code == 403
        assert response.get_json()["code"] == "email_mismatch"


class TestLegacyLogin:
    def test_signs_in_linked_account(self, client, session, provider_tokens):
        account = AccountFactory(legacy=True)
        provider_tokens.register("tok", account.linked_provider_id, account.email_address)

        response = client.post(f"{AUTH}/legacy-login", json={"provider_token": "tok"})

        assert response.status_code == 200
        assert response.get_json()["data"]["account"]["is_legacy_linked"] is True

    def test_invalid_token(self, client, session):
        response = client.post(f"{AUTH}/legacy-login", json={"provider_token": "bogus"})
        assert response.status_code == 401
        assert response.get_json()["code"] == "invalid_provider_token"


class TestRefreshAndLogout:
    def test_refresh_rotates_cookie(self, client, signed_in):
        response = signed_in
        first = cookie_value(refresh_cookie_header(response))

        rotated = client.post(f"{AUTH}/refresh")

        assert rotated.status_code == 200
        second = cookie_value(refresh_cookie_header(rotated))
        assert second != first
        assert rotated.get_json()["data"]["access_token"]

    def test_body_fallback(self, client, signed_in):
        response = signed_in
        secret = cookie_value(refresh_cookie_header(response))
        drop_refresh_cookie(client)

        rotated = client.post(f"{AUTH}/refresh", json={"refresh_token": secret})

        assert rotated.status_code == 200

    def test_replay_invalidates_and_clears_cookie(self, client, signed_in):
        response = signed_in
        stale = cookie_value(refresh_cookie_header(response))
        rotated = client.post(f"{AUTH}/refresh")
        assert rotated.status_code == 200
        successor = cookie_value(refresh_cookie_header(rotated))
        drop_refresh_cookie(client)

        replay = client.post(f"{AUTH}/refresh", json={"refresh_token": stale})

        assert replay.status_code == 401
        assert replay.mimetype == "application/problem+json"
        assert replay.get_json()["code"] == "session_invalidated"
        header = refresh_cookie_header(replay)
        assert header is not None
        assert "Expires=Thu, 01 Jan 1970" in header

        # The rotated successor is dead too.
        again = client.post(f"{AUTH}/refresh", json={"refresh_token": successor})
        assert again.status_code == 401
        assert again.get_json()["code"] == "session_invalidated"

    def test_refresh_without_credential(self, client, session):
        response = client.post(f"{AUTH}/refresh")
        assert response.status_code == 401
        assert response.get_json()["code"] == "invalid_session"

    def test_logout_revokes_and_clears(self, client, signed_in):
        response = signed_in
        secret = cookie_value(refresh_cookie_header(response))

        out = client.post(f"{AUTH}/logout")

        assert out.status_code == 200
        assert out.get_json() == {"data": {"logged_out": True}}
        assert refresh_cookie_header(out) is not None
        again = client.post(f"{AUTH}/refresh", json={"refresh_token": secret})
        assert again.status_code == 401

    def test_logout_without_session_still_succeeds(self, client, session):
        assert client.post(f"{AUTH}/logout").status_code == 200


class TestMe:
    def test_returns_account(self, client, signed_in):
        response = signed_in
        token = response.get_json()["data"]["access_token"]

        me = client.get(f"{AUTH}/me", headers=_bearer(token))

        assert me.status_code == 200
        assert me.get_json()["data"]["email"] == "holder@example.com"

    def test_missing_token(self, client, session):
        response = client.get(f"{AUTH}/me")
        assert response.status_code == 401
        assert response.get_json()["code"] == "missing_token"

    def test_garbage_token(self, client, session):
        response = client.get(f"{AUTH}/me", headers=_bearer("not-a-jwt"))
        assert response.status_code == 401
        assert response.get_json()["code"] == "invalid_token"

    def test_expired_token(self, client, components):
        account = AccountFactory()
        token = components.tokens.provider.create_access_token(
            identity=account.id,
            additional_claims={"email": account.email_address},
            expires_delta=timedelta(seconds=-30),
        )

        response = client.get(f"{AUTH}/me", headers=_bearer(token))

        assert response.status_code == 401
        assert response.mimetype == "application/problem+json"
        assert response.get_json()["code"] == "invalid_token"
        assert response.headers["WWW-Authenticate"] == 'Bearer error="invalid_token"'

    def test_token_without_account_claims(self, client, components):
        token = components.tokens.provider.create_access_token(identity="acct-1")

        response = client.get(f"{AUTH}/me", headers=_bearer(token))

        assert response.status_code == 401
        assert response.get_json()["code"] == "invalid_token"
