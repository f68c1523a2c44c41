"""Factory Boy definitions for accounts and refresh credentials."""

from __future__ import annotations

from datetime import timedelta

import factory
from werkzeug.security import generate_password_hash

from tests.factories import BaseFactory
from wallet_auth.models.account import Account, new_account_id
from wallet_auth.models.base import utcnow
from wallet_auth.models.refresh_credential import RefreshCredential
from wallet_auth.services._shared.ports.refresh_token_store import hash_refresh_secret

DEFAULT_PASSWORD = "Passw0rd!"
# Cheapest scrypt cost accepted by the app (log2 N = 12)
TEST_HASH_METHOD = "scrypt:4096:8:1"


def hash_password(value: str) -> str:
    return generate_password_hash(value, method=TEST_HASH_METHOD)


class AccountFactory(BaseFactory):
    """
    Build persisted :class:`Account` instances.

    By default the account is locally authenticable with
    :data:`DEFAULT_PASSWORD`. Traits:

    - ``legacy``: linked to a provider subject, no local secret yet.
    - ``migrated``: linked and holding a local secret.
    """

    class Meta:
        model = Account

    class Params:
        password = DEFAULT_PASSWORD
        legacy = factory.Trait(
            password=None,
            linked_provider_id=factory.LazyAttribute(lambda o: f"legacy-{o.id}"),
        )
        migrated = factory.Trait(
            linked_provider_id=factory.LazyAttribute(lambda o: f"legacy-{o.id}"),
            migrated_at=factory.LazyFunction(utcnow),
        )

    id = factory.LazyFunction(new_account_id)
    email_address = factory.Sequence(lambda n: f"holder{n}@example.com")
    secret_hash = factory.LazyAttribute(lambda o: hash_password(o.password) if o.password else None)
    linked_provider_id = None
    migrated_at = None
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    account_number = factory.Sequence(lambda n: f"0000{n:08d}")
    role = "user"


class RefreshCredentialFactory(BaseFactory):
    """Persist a refresh credential row for a known raw ``secret``."""

    class Meta:
        model = RefreshCredential
        exclude = ("secret", "account")

    account = factory.SubFactory(AccountFactory)
    secret = factory.Sequence(lambda n: f"refresh-secret-{n}")
    token_hash = factory.LazyAttribute(lambda o: hash_refresh_secret(o.secret))
    account_id = factory.LazyAttribute(lambda o: o.account.id)
    issued_at = factory.LazyFunction(utcnow)
    expires_at = factory.LazyAttribute(lambda o: o.issued_at + timedelta(days=30))
    revoked_at = None
    replaced_by_hash = None
