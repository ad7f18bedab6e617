# comments in English; reST docstrings
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError, WatchError  # type: ignore[import-untyped]

from tokenauth.services._shared.errors import LedgerConflictError, LedgerUnavailableError
from tokenauth.services._shared.ports.refresh_token_ledger import (
    RefreshTokenLedger,
    RefreshTokenRecord,
)

log = logging.getLogger(__name__)

MAX_WATCH_RETRIES = 16


class RedisRefreshTokenLedger(RefreshTokenLedger):
    """
    Redis-backed refresh-token ledger.

    Layout: one hash ``rt:{token_id}`` per token (TTL = remaining lifetime) and
    one set ``rt:u:{owner_id}`` indexing an owner's token ids. Insert and
    revoke use WATCH/MULTI/EXEC so concurrent writers are serialised by Redis.

    :param r: A Redis client (already connected, with socket timeouts set).
    :param clock: Current aware UTC instant, used for key TTLs.
    """

    def __init__(self, r: redis.Redis, *, clock: Callable[[], datetime] | None = None) -> None:
        self.r = r
        self._clock = clock or (lambda: datetime.now(UTC))

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token_id: str) -> str:
        return f"rt:{token_id}"

    @staticmethod
    def _ku(owner_id: str) -> str:
        return f"rt:u:{owner_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return int(dt.timestamp())

    @staticmethod
    def _s(value: bytes | str | None, default: str = "") -> str:
        if value is None:
            return default
        return value.decode() if isinstance(value, bytes | bytearray) else str(value)

    def _to_record(self, token_id: str, h: dict) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            token_id=token_id,
            owner_id=self._s(h.get(b"owner_id")),
            token=self._s(h.get(b"token")),
            expires_at=datetime.fromtimestamp(int(self._s(h.get(b"expires_at"), "0")), tz=UTC),
            revoked=self._s(h.get(b"revoked"), "0") == "1",
            created_at=datetime.fromtimestamp(int(self._s(h.get(b"created_at"), "0")), tz=UTC),
        )

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except RedisError as exc:
            log.error("ledger.redis.unavailable", exc_info=True)
            raise LedgerUnavailableError("Refresh-token store is unavailable.") from exc

    # -------------------- API ------------------------

    def insert(self, record: RefreshTokenRecord) -> None:
        """Create the hash only if absent and index it under its owner."""
        key = self._k(record.token_id)
        now = self._clock()
        ttl = max(1, self._to_ts(record.expires_at) - self._to_ts(now))
        created = record.created_at or now

        with self._guard():
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        if p.exists(key):
                            p.unwatch()
                            raise LedgerConflictError(
                                f"Refresh token {record.token_id} already recorded."
                            )
                        p.multi()
                        p.hset(
                            key,
                            mapping={
                                "owner_id": record.owner_id,
                                "token": record.token,
                                "expires_at": str(self._to_ts(record.expires_at)),
                                "created_at": str(self._to_ts(created)),
                                "revoked": "1" if record.revoked else "0",
                            },
                        )
                        p.expire(key, ttl)
                        p.sadd(self._ku(record.owner_id), record.token_id)
                        p.execute()
                    return
                except WatchError:
                    continue
            raise LedgerUnavailableError("Refresh-token insert kept conflicting; giving up.")

    def mark_revoked(self, token_id: str) -> bool:
        """
        Compare-and-set ``revoked`` from ``"0"`` to ``"1"``.

        :returns: ``True`` only when this call performed the flip.
        """
        key = self._k(token_id)
        with self._guard():
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        current = p.hget(key, "revoked")
                        if current is None or self._s(current) == "1":
                            p.unwatch()
                            return False
                        p.multi()
                        p.hset(key, "revoked", "1")
                        p.execute()
                    return True
                except WatchError:
                    # someone touched the key; re-read and decide again
                    continue
            raise LedgerUnavailableError("Refresh-token revoke kept conflicting; giving up.")

    def find_by_id(self, token_id: str) -> RefreshTokenRecord | None:
        with self._guard():
            h = self.r.hgetall(self._k(token_id))
        if not h:
            return None
        return self._to_record(token_id, h)

    def find_by_owner(self, owner_id: str) -> list[RefreshTokenRecord]:
        key_u = self._ku(owner_id)
        with self._guard():
            members = sorted(self._s(m) for m in self.r.smembers(key_u))
            records: list[RefreshTokenRecord] = []
            stale: list[str] = []
            for j in members:
                h = self.r.hgetall(self._k(j))
                if h:
                    records.append(self._to_record(j, h))
                else:
                    # hash expired through its TTL
                    stale.append(j)
            if stale:
                self.r.srem(key_u, *stale)
        return records

    def purge_expired(self, now: datetime) -> int:
        """
        Delete hashes already past ``expires_at`` and prune owner indexes.

        Redis TTLs normally remove hashes on their own; this catches clock
        skew and cleans the index sets.
        """
        now_ts = self._to_ts(now)
        removed = 0
        with self._guard():
            for key_u in self.r.scan_iter(match="rt:u:*"):
                members = [self._s(m) for m in self.r.smembers(key_u)]
                dead: list[str] = []
                for j in members:
                    exp = self.r.hget(self._k(j), "expires_at")
                    if exp is None:
                        dead.append(j)
                    elif int(self._s(exp)) <= now_ts:
                        self.r.delete(self._k(j))
                        dead.append(j)
                        removed += 1
                if dead:
                    self.r.srem(key_u, *dead)
        if removed:
            log.info("ledger.redis.purged count=%s", removed)
        return removed
