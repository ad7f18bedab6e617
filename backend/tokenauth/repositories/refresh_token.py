"""Refresh-token ledger repository.

Every write is a single statement so concurrent callers are arbitrated by the
database: uniqueness by the ``token_id``/``token`` constraints, revocation by
a conditional ``UPDATE`` whose rowcount says who won.
"""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, select, update

from tokenauth.models.refresh_token import RefreshToken
from tokenauth.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`."""

    model = RefreshToken

    def _filterable_fields(self):
        return {
            "token_id": RefreshToken.token_id,
            "owner_id": RefreshToken.owner_id,
            "revoked": RefreshToken.revoked,
        }

    def get_by_token_id(self, token_id: str) -> RefreshToken | None:
        stmt = select(RefreshToken).where(RefreshToken.token_id == token_id)
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def list_by_owner(self, owner_id: str) -> list[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.owner_id == owner_id)
            .order_by(RefreshToken.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def compare_and_revoke(self, token_id: str) -> bool:
        """Flip ``revoked`` to true only if it is currently false.

        :returns: ``True`` when this statement changed the row.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_id == token_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def delete_expired(self, now: datetime) -> int:
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)
