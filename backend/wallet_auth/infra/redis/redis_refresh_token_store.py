# comments in English; reST docstrings
from __future__ import annotations

import secrets
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

import redis  # type: ignore[import-untyped]

from wallet_auth.services._shared.ports.refresh_token_store import (
    REFRESH_SECRET_BYTES,
    Clock,
    IssuedRefreshToken,
    RefreshSessionView,
    RefreshStatus,
    RefreshTokenStore,
    RefreshValidation,
    RequestMetadata,
    Rotation,
    RotationResult,
    system_clock,
)

# Expired records stay readable this long so replays still report EXPIRED.
EXPIRED_RECORD_GRACE = timedelta(days=1)
# Bound for WATCH conflicts; state is re-read on every attempt.
MAX_WATCH_ATTEMPTS = 5

EXPIRY_INDEX_KEY = "rt:exp"


def _s(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)


class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh credential store with atomic rotation.

    Layout
    ------
    * ``rt:{hash}``: hash with the credential fields (ISO-8601 timestamps).
    * ``rt:a:{account_id}``: set of credential hashes per account.
    * ``rt:exp``: sorted set ``hash -> expiry epoch`` for the cleanup sweep.

    :param r: A Redis client (already connected).
    :param ttl: Lifetime of issued credentials.
    :param clock: Source of "now" (UTC).
    """

    def __init__(
        self,
        r: redis.Redis,
        *,
        ttl: timedelta = timedelta(days=30),
        clock: Clock = system_clock,
    ) -> None:
        self.r = r
        self.ttl = ttl
        self._clock = clock

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token_hash: str) -> str:
        return f"rt:{token_hash}"

    @staticmethod
    def _ka(account_id: str) -> str:
        return f"rt:a:{account_id}"

    @staticmethod
    def _key_ttl(expires_at: datetime, now: datetime) -> int:
        return max(1, int((expires_at - now + EXPIRED_RECORD_GRACE).total_seconds()))

    def _new_record(
        self, account_id: str, metadata: RequestMetadata, now: datetime
    ) -> tuple[IssuedRefreshToken, dict[str, str]]:
        secret = secrets.token_hex(REFRESH_SECRET_BYTES)
        issued = IssuedRefreshToken(
            secret=secret,
            token_hash=self.hash_secret(secret),
            expires_at=now + self.ttl,
        )
        mapping = {
            "account_id": account_id,
            "issued_at": now.isoformat(),
            "expires_at": issued.expires_at.isoformat(),
        }
        if metadata.ip_address:
            mapping["ip_address"] = metadata.ip_address
        if metadata.user_agent:
            mapping["user_agent"] = metadata.user_agent
        return issued, mapping

    def _queue_insert(
        self, p, issued: IssuedRefreshToken, mapping: Mapping[str, str], now: datetime
    ) -> None:
        key = self._k(issued.token_hash)
        p.hset(key, mapping=dict(mapping))
        p.expire(key, self._key_ttl(issued.expires_at, now))
        p.sadd(self._ka(mapping["account_id"]), issued.token_hash)
        p.zadd(EXPIRY_INDEX_KEY, {issued.token_hash: issued.expires_at.timestamp()})

    @staticmethod
    def _view(token_hash: str, h: Mapping[Any, Any]) -> RefreshSessionView | None:
        fields = {_s(k): _s(v) for k, v in h.items()}
        if not fields.get("account_id") or not fields.get("expires_at"):
            return None

        def _dt(name: str) -> datetime | None:
            raw = fields.get(name)
            return datetime.fromisoformat(raw) if raw else None

        return RefreshSessionView(
            token_hash=token_hash,
            account_id=fields["account_id"] or "",
            issued_at=_dt("issued_at") or _dt("expires_at"),  # type: ignore[arg-type]
            expires_at=_dt("expires_at"),  # type: ignore[arg-type]
            revoked_at=_dt("revoked_at"),
            replaced_by_hash=fields.get("replaced_by_hash"),
            ip_address=fields.get("ip_address"),
            user_agent=fields.get("user_agent"),
            revoked_by_ip=fields.get("revoked_by_ip"),
        )

    # -------------------- API ------------------------

    def issue(self, account_id, metadata=None):
        """Insert the credential *before* its secret is handed to the client."""
        now = self._clock()
        issued, mapping = self._new_record(account_id, metadata or RequestMetadata(), now)
        with self.r.pipeline(transaction=True) as p:
            self._queue_insert(p, issued, mapping, now)
            p.execute()
        return issued

    def rotate(self, old_hash, account_id, metadata=None):
        """
        Atomically revoke ``old_hash`` and create its successor.

        Uses WATCH/MULTI/EXEC: the old record is re-read under WATCH on every
        attempt, so a concurrent rotation or revocation turns this call into a
        ``REVOKED`` result instead of a second successor.
        """
        metadata = metadata or RequestMetadata()
        k_old = self._k(old_hash)

        for _ in range(MAX_WATCH_ATTEMPTS):
            try:
                with self.r.pipeline() as p:
                    p.watch(k_old)
                    now = self._clock()
                    current = self._view(old_hash, p.hgetall(k_old))
                    if current is None or current.account_id != account_id:
                        p.unwatch()
                        return Rotation(RotationResult.NOT_FOUND)
                    status = current.status(now)
                    if status is RefreshStatus.EXPIRED:
                        p.unwatch()
                        return Rotation(RotationResult.EXPIRED)
                    if status is RefreshStatus.REVOKED:
                        p.unwatch()
                        return Rotation(RotationResult.REVOKED)

                    issued, mapping = self._new_record(account_id, metadata, now)
                    p.multi()
                    revoked = {"revoked_at": now.isoformat(), "replaced_by_hash": issued.token_hash}
                    if metadata.ip_address:
                        revoked["revoked_by_ip"] = metadata.ip_address
                    p.hset(k_old, mapping=revoked)
                    self._queue_insert(p, issued, mapping, now)
                    p.execute()
                return Rotation(RotationResult.OK, issued)
            except redis.WatchError:
                continue
        raise RuntimeError("Refresh rotation kept conflicting; giving up.")

    def revoke(self, token_hash, metadata=None):
        metadata = metadata or RequestMetadata()
        key = self._k(token_hash)
        for _ in range(MAX_WATCH_ATTEMPTS):
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    current = self._view(token_hash, p.hgetall(key))
                    if current is None or current.revoked_at is not None:
                        p.unwatch()
                        return False
                    p.multi()
                    fields = {"revoked_at": self._clock().isoformat()}
                    if metadata.ip_address:
                        fields["revoked_by_ip"] = metadata.ip_address
                    p.hset(key, mapping=fields)
                    p.execute()
                return True
            except redis.WatchError:
                continue
        raise RuntimeError("Refresh revocation kept conflicting; giving up.")

    def revoke_all_for_account(self, account_id):
        count = 0
        for member in self.r.smembers(self._ka(account_id)):
            if self.revoke(_s(member) or ""):
                count += 1
        return count

    def validate(self, secret):
        token_hash = self.hash_secret(secret)
        current = self.get(token_hash)
        if current is None:
            return RefreshValidation(RefreshStatus.NOT_FOUND, token_hash)
        return RefreshValidation(current.status(self._clock()), token_hash, current.account_id)

    def get(self, token_hash):
        return self._view(token_hash, self.r.hgetall(self._k(token_hash)))

    def list_account_sessions(self, account_id):
        key_a = self._ka(account_id)
        now = self._clock()
        live: list[RefreshSessionView] = []
        stale: list[str] = []
        for member in self.r.smembers(key_a):
            token_hash = _s(member) or ""
            view = self.get(token_hash)
            if view is None:
                # Underlying hash expired out of Redis
                stale.append(token_hash)
            elif view.status(now) is RefreshStatus.ACTIVE:
                live.append(view)
        if stale:
            self.r.srem(key_a, *stale)
        return sorted(live, key=lambda v: v.issued_at, reverse=True)

    def cleanup_expired(self):
        now = self._clock()
        expired = [
            _s(m) or "" for m in self.r.zrangebyscore(EXPIRY_INDEX_KEY, "-inf", f"({now.timestamp()}")
        ]
        if not expired:
            return 0
        owners = [self.r.hget(self._k(h), "account_id") for h in expired]
        with self.r.pipeline(transaction=True) as p:
            for token_hash, owner in zip(expired, owners, strict=True):
                p.delete(self._k(token_hash))
                if owner is not None:
                    p.srem(self._ka(_s(owner) or ""), token_hash)
            p.zrem(EXPIRY_INDEX_KEY, *expired)
            p.execute()
        return len(expired)
