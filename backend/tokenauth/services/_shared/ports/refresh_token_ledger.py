from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from tokenauth.services._shared.errors import LedgerConflictError, LedgerUnavailableError


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Ledger row for one issued refresh token.

    :ivar token_id: Matches the token ``jti``; primary lookup key.
    :ivar owner_id: Owning user identifier (token ``sub``).
    :ivar token: Raw encoded token value.
    :ivar expires_at: Absolute expiry (aware UTC).
    :ivar revoked: Flipped to ``True`` exactly once, on rotation or revocation.
    :ivar created_at: Insertion instant (aware UTC).
    """

    token_id: str
    owner_id: str
    token: str
    expires_at: datetime
    revoked: bool = False
    created_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and self.expires_at > now


class RefreshTokenLedger(Protocol):
    """
    Source of truth for refresh-token revocation.

    Implementations MUST make :meth:`insert` insert-if-absent and
    :meth:`mark_revoked` a compare-and-set, so two racing rotations of the same
    token cannot both win. Every call is bounded in time; a store that cannot
    answer raises :class:`LedgerUnavailableError`.
    """

    def insert(self, record: RefreshTokenRecord) -> None:
        """
        Persist a new record.

        :raises LedgerConflictError: When ``token_id`` (or ``token``) already exists.
        """
        ...

    def mark_revoked(self, token_id: str) -> bool:
        """
        Flip ``revoked`` from ``False`` to ``True``.

        :returns: ``True`` only for the caller whose update changed the row;
            ``False`` when the row was already revoked or does not exist.
        """
        ...

    def find_by_id(self, token_id: str) -> RefreshTokenRecord | None:
        """Fetch a single record snapshot (if present)."""
        ...

    def find_by_owner(self, owner_id: str) -> list[RefreshTokenRecord]:
        """List every record (active or not) owned by ``owner_id``."""
        ...

    def purge_expired(self, now: datetime) -> int:
        """Delete records whose expiry has passed. :returns: Rows removed."""
        ...


class InMemoryRefreshTokenLedger(RefreshTokenLedger):
    """
    Process-local ledger guarded by a single lock.

    Suitable for single-process deployments and unit tests. Lock acquisition
    is bounded by ``timeout`` so a stuck holder surfaces as
    :class:`LedgerUnavailableError` instead of a hang.
    """

    def __init__(self, *, timeout: float = 5.0) -> None:
        self._by_id: dict[str, RefreshTokenRecord] = {}
        self._by_owner: dict[str, set[str]] = {}
        self._tokens: set[str] = set()
        self._lock = threading.Lock()
        self._timeout = timeout

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._timeout):
            raise LedgerUnavailableError("Timed out waiting for the refresh-token ledger lock.")
        try:
            yield
        finally:
            self._lock.release()

    # -------------------------- API ----------------------------

    def insert(self, record: RefreshTokenRecord) -> None:
        with self._locked():
            if record.token_id in self._by_id or record.token in self._tokens:
                raise LedgerConflictError(f"Refresh token {record.token_id} already recorded.")
            if record.created_at is None:
                record = replace(record, created_at=datetime.now(UTC))
            self._by_id[record.token_id] = record
            self._tokens.add(record.token)
            self._by_owner.setdefault(record.owner_id, set()).add(record.token_id)

    def mark_revoked(self, token_id: str) -> bool:
        with self._locked():
            record = self._by_id.get(token_id)
            if record is None or record.revoked:
                return False
            self._by_id[token_id] = replace(record, revoked=True)
            return True

    def find_by_id(self, token_id: str) -> RefreshTokenRecord | None:
        with self._locked():
            return self._by_id.get(token_id)

    def find_by_owner(self, owner_id: str) -> list[RefreshTokenRecord]:
        with self._locked():
            ids = sorted(self._by_owner.get(owner_id, set()))
            return [self._by_id[j] for j in ids if j in self._by_id]

    def purge_expired(self, now: datetime) -> int:
        with self._locked():
            expired = [r for r in self._by_id.values() if r.expires_at <= now]
            for r in expired:
                del self._by_id[r.token_id]
                self._tokens.discard(r.token)
                owned = self._by_owner.get(r.owner_id)
                if owned is not None:
                    owned.discard(r.token_id)
                    if not owned:
                        del self._by_owner[r.owner_id]
            return len(expired)
