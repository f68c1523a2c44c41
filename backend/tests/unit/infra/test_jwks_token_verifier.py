"""JWKSProviderTokenVerifier with an injected key resolver (HS256 keys)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from wallet_auth.infra.legacy import JWKSProviderTokenVerifier
from wallet_auth.services._shared.ports import ProviderIdentity

KEY = "legacy-provider-test-key-with-32-bytes!"
ISSUER = "https://securetoken.google.com/legacy-project"
AUDIENCE = "legacy-project"


@dataclass
class _SigningKey:
    key: str


class FakeJWKClient:
    """Stands in for :class:`jwt.PyJWKClient`; returns one static key."""

    def __init__(self, key: str = KEY) -> None:
        self.key = key
        self.calls = 0

    def get_signing_key_from_jwt(self, token: str) -> _SigningKey:
        self.calls += 1
        return _SigningKey(self.key)


def _token(**overrides) -> str:
    now = datetime.now(UTC)
    claims = {
        "sub": "legacy-sub-1",
        "email": "Holder@Example.com",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + timedelta(minutes=5),
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, KEY, algorithm="HS256")


@pytest.fixture()
def verifier() -> JWKSProviderTokenVerifier:
    return JWKSProviderTokenVerifier(
        jwks_url="https://keys.example.test/jwks.json",
        audience=AUDIENCE,
        issuer=ISSUER,
        algorithms=("HS256",),
        jwk_client=FakeJWKClient(),
    )


def test_valid_token_yields_identity(verifier):
    identity = verifier.verify(_token())
    assert identity == ProviderIdentity(subject_id="legacy-sub-1", email="Holder@Example.com")
    assert verifier.jwk_client.calls == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"exp": datetime.now(UTC) - timedelta(seconds=5)},
        {"aud": "another-project"},
        {"iss": "https://evil.example"},
        {"sub": None},
    ],
)
def test_rejects_invalid_claims(verifier, overrides):
    with pytest.raises(jwt.PyJWTError):
        verifier.verify(_token(**overrides))


def test_rejects_wrong_signature(verifier):
    verifier.jwk_client = FakeJWKClient(key="a-completely-different-key-of-32-bytes")
    with pytest.raises(jwt.InvalidSignatureError):
        verifier.verify(_token())


def test_audience_check_is_optional():
    verifier = JWKSProviderTokenVerifier(
        jwks_url="https://keys.example.test/jwks.json",
        algorithms=("HS256",),
        jwk_client=FakeJWKClient(),
    )
    assert verifier.verify(_token(aud="anything")).subject_id == "legacy-sub-1"


def test_default_client_is_pyjwkclient():
    verifier = JWKSProviderTokenVerifier(jwks_url="https://keys.example.test/jwks.json")
    assert isinstance(verifier.jwk_client, jwt.PyJWKClient)
