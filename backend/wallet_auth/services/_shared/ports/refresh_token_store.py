"""Refresh-credential store port, value types and an in-memory adapter."""

from __future__ import annotations

import hashlib
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum, auto
from typing import Protocol

#: Bytes of entropy in a refresh secret (hex-encoded to twice as many chars).
REFRESH_SECRET_BYTES = 64

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Default clock: the current UTC time."""
    return datetime.now(UTC)


def hash_refresh_secret(secret: str) -> str:
    """Return the sha256 hex digest used as the credential lookup key."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


class RefreshStatus(Enum):
    """Derived state of a stored refresh credential."""

    ACTIVE = auto()
    EXPIRED = auto()
    REVOKED = auto()
    NOT_FOUND = auto()


class RotationResult(Enum):
    """Outcome of an atomic refresh rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()
    EXPIRED = auto()
    REVOKED = auto()


def classify(
    *,
    expires_at: datetime | None,
    revoked_at: datetime | None,
    now: datetime,
) -> RefreshStatus:
    """
    Derive the credential status from its timestamps.

    Expiry wins over revocation so that an expired secret always reads as
    expired, whatever happened to it before.

    :param expires_at: Absolute expiry, or ``None`` when no record exists.
    :param revoked_at: Revocation timestamp, if any.
    :param now: Reference time.
    :returns: The derived :class:`RefreshStatus`.
    """
    if expires_at is None:
        return RefreshStatus.NOT_FOUND
    if expires_at <= now:
        return RefreshStatus.EXPIRED
    if revoked_at is not None:
        return RefreshStatus.REVOKED
    return RefreshStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class RequestMetadata:
    """Client context recorded alongside credential writes."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True, slots=True)
class IssuedRefreshToken:
    """
    Freshly minted refresh credential.

    :ivar secret: Raw bearer secret. Returned exactly once, never stored.
    :ivar token_hash: Lookup key persisted by the store.
    :ivar expires_at: Absolute expiry (UTC).
    """

    secret: str
    token_hash: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class RefreshValidation:
    """Result of :meth:`RefreshTokenStore.validate`."""

    status: RefreshStatus
    token_hash: str
    account_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is RefreshStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class Rotation:
    """Result of :meth:`RefreshTokenStore.rotate`; ``issued`` is set only on ``OK``."""

    result: RotationResult
    issued: IssuedRefreshToken | None = None


@dataclass(frozen=True, slots=True)
class RefreshSessionView:
    """
    Read-model for a stored refresh credential.

    :ivar token_hash: Lookup key (never the secret).
    :ivar account_id: Owning account.
    :ivar issued_at: Creation time (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    :ivar revoked_at: Revocation time, if revoked.
    :ivar replaced_by_hash: Successor in the rotation chain, if rotated.
    """

    token_hash: str
    account_id: str
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    replaced_by_hash: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    revoked_by_ip: str | None = None

    def status(self, now: datetime) -> RefreshStatus:
        return classify(expires_at=self.expires_at, revoked_at=self.revoked_at, now=now)


class RefreshTokenStore(Protocol):
    """
    Stateful store for refresh credentials.

    Only hashes are persisted. ``rotate`` MUST be atomic: either the old
    credential is revoked and its successor exists, or nothing changed.
    """

    def issue(
        self, account_id: str, metadata: RequestMetadata | None = None
    ) -> IssuedRefreshToken:
        """Create a new credential for ``account_id`` and return its secret once."""

    def rotate(
        self,
        old_hash: str,
        account_id: str,
        metadata: RequestMetadata | None = None,
    ) -> Rotation:
        """
        Compare-and-swap ``old_hash`` for a new credential.

        Succeeds only if ``old_hash`` is live and owned by ``account_id``;
        otherwise returns the failing status and writes nothing.
        """

    def revoke(self, token_hash: str, metadata: RequestMetadata | None = None) -> bool:
        """Revoke one credential. Idempotent. :returns: True if this call revoked it."""

    def revoke_all_for_account(self, account_id: str) -> int:
        """Revoke every unrevoked credential of an account. :returns: count."""

    def validate(self, secret: str) -> RefreshValidation:
        """Resolve a raw secret to its status and owning account."""

    def get(self, token_hash: str) -> RefreshSessionView | None:
        """Fetch a single credential snapshot (if present)."""

    def list_account_sessions(self, account_id: str) -> list[RefreshSessionView]:
        """List live credentials of an account, newest first."""

    def cleanup_expired(self) -> int:
        """Delete credentials past their expiry. :returns: count."""

    def hash_secret(self, secret: str) -> str:
        """Map a raw secret to its lookup key."""
        return hash_refresh_secret(secret)


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh credential store with atomic rotation.

    .. note::
       A single lock serializes every operation; meant for unit tests and
       single-process development.
    """

    def __init__(self, *, ttl: timedelta = timedelta(days=30), clock: Clock = system_clock) -> None:
        self.ttl = ttl
        self._clock = clock
        self._by_hash: dict[str, RefreshSessionView] = {}
        self._by_account: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _mint(self, account_id: str, metadata: RequestMetadata, now: datetime):
        secret = secrets.token_hex(REFRESH_SECRET_BYTES)
        token_hash = self.hash_secret(secret)
        record = RefreshSessionView(
            token_hash=token_hash,
            account_id=account_id,
            issued_at=now,
            expires_at=now + self.ttl,
            ip_address=metadata.ip_address,
            user_agent=metadata.user_agent,
        )
        self._by_hash[token_hash] = record
        self._by_account.setdefault(account_id, set()).add(token_hash)
        return IssuedRefreshToken(secret=secret, token_hash=token_hash, expires_at=record.expires_at)

    # -------------------------- API ----------------------------

    def issue(self, account_id, metadata=None):
        with self._lock:
            return self._mint(account_id, metadata or RequestMetadata(), self._clock())

    def rotate(self, old_hash, account_id, metadata=None):
        metadata = metadata or RequestMetadata()
        with self._lock:
            now = self._clock()
            old = self._by_hash.get(old_hash)
            if old is None or old.account_id != account_id:
                return Rotation(RotationResult.NOT_FOUND)
            status = old.status(now)
            if status is RefreshStatus.EXPIRED:
                return Rotation(RotationResult.EXPIRED)
            if status is RefreshStatus.REVOKED:
                return Rotation(RotationResult.REVOKED)

            issued = self._mint(account_id, metadata, now)
            self._by_hash[old_hash] = replace(
                old,
                revoked_at=now,
                replaced_by_hash=issued.token_hash,
                revoked_by_ip=metadata.ip_address,
            )
            return Rotation(RotationResult.OK, issued)

    def revoke(self, token_hash, metadata=None):
        metadata = metadata or RequestMetadata()
        with self._lock:
            record = self._by_hash.get(token_hash)
            if record is None or record.revoked_at is not None:
                return False
            self._by_hash[token_hash] = replace(
                record, revoked_at=self._clock(), revoked_by_ip=metadata.ip_address
            )
            return True

    def revoke_all_for_account(self, account_id):
        with self._lock:
            now = self._clock()
            count = 0
            for token_hash in self._by_account.get(account_id, set()):
                record = self._by_hash.get(token_hash)
                if record is not None and record.revoked_at is None:
                    self._by_hash[token_hash] = replace(record, revoked_at=now)
                    count += 1
            return count

    def validate(self, secret):
        token_hash = self.hash_secret(secret)
        with self._lock:
            record = self._by_hash.get(token_hash)
            if record is None:
                return RefreshValidation(RefreshStatus.NOT_FOUND, token_hash)
            return RefreshValidation(record.status(self._clock()), token_hash, record.account_id)

    def get(self, token_hash):
        return self._by_hash.get(token_hash)

    def list_account_sessions(self, account_id):
        with self._lock:
            now = self._clock()
            records = [
                self._by_hash[h]
                for h in self._by_account.get(account_id, set())
                if h in self._by_hash
            ]
        live = [r for r in records if r.status(now) is RefreshStatus.ACTIVE]
        return sorted(live, key=lambda r: r.issued_at, reverse=True)

    def cleanup_expired(self):
        with self._lock:
            now = self._clock()
            expired = [h for h, r in self._by_hash.items() if r.expires_at < now]
            for token_hash in expired:
                record = self._by_hash.pop(token_hash)
                self._by_account.get(record.account_id, set()).discard(token_hash)
            return len(expired)
