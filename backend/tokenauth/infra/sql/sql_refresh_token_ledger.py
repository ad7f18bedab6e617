"""SQL-backed refresh-token ledger (default backend)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from tokenauth.models.refresh_token import RefreshToken
from tokenauth.services._shared.errors import LedgerConflictError, LedgerUnavailableError
from tokenauth.services._shared.ports.refresh_token_ledger import (
    RefreshTokenLedger,
    RefreshTokenRecord,
)
from tokenauth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


def _aware(dt: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; values are always written in UTC
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=UTC)


def to_record(row: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        token_id=row.token_id,
        owner_id=row.owner_id,
        token=row.token,
        expires_at=_aware(row.expires_at),
        revoked=bool(row.revoked),
        created_at=_aware(row.created_at),
    )


class SqlRefreshTokenLedger(RefreshTokenLedger):
    """
    Ledger over the ``refresh_tokens`` table.

    Each call runs in its own read-write Unit of Work and commits before
    returning, so a revocation is visible to every worker immediately.

    :param uow_factory: Builds a fresh Unit of Work per call.
    """

    def __init__(self, uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork):
        self._uow_factory = uow_factory

    @contextmanager
    def _unit(self) -> Iterator[SQLAlchemyUnitOfWork]:
        try:
            with self._uow_factory() as uow:
                yield uow
        except IntegrityError as exc:
            raise LedgerConflictError("Refresh token already recorded.") from exc
        except (OperationalError, PoolTimeoutError, DBAPIError) as exc:
            log.error("ledger.sql.unavailable", exc_info=True)
            raise LedgerUnavailableError("Refresh-token store is unavailable.") from exc

    # -------------------------- API ----------------------------

    def insert(self, record: RefreshTokenRecord) -> None:
        with self._unit() as uow:
            uow.refresh_tokens.add(
                RefreshToken(
                    token_id=record.token_id,
                    owner_id=record.owner_id,
                    token=record.token,
                    expires_at=record.expires_at,
                    revoked=record.revoked,
                )
            )

    def mark_revoked(self, token_id: str) -> bool:
        with self._unit() as uow:
            return uow.refresh_tokens.compare_and_revoke(token_id)

    def find_by_id(self, token_id: str) -> RefreshTokenRecord | None:
        with self._unit() as uow:
            row = uow.refresh_tokens.get_by_token_id(token_id)
            return to_record(row) if row is not None else None

    def find_by_owner(self, owner_id: str) -> list[RefreshTokenRecord]:
        with self._unit() as uow:
            return [to_record(row) for row in uow.refresh_tokens.list_by_owner(owner_id)]

    def purge_expired(self, now: datetime) -> int:
        with self._unit() as uow:
            removed = uow.refresh_tokens.delete_expired(now)
        if removed:
            log.info("ledger.sql.purged count=%s", removed)
        return removed
