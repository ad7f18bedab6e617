"""Persistent refresh-token ledger rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from tokenauth.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class RefreshToken(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    One issued refresh token.

    ``owner_id`` is stored as the token subject string and carries no foreign
    key, so the ledger does not depend on where users live.

    Fields
    ------
    token_id : str
        Token ``jti`` (UUID4). Unique.
    owner_id : str
        Token ``sub``.
    token : str
        Raw encoded token. Unique.
    expires_at : datetime
        Absolute expiry.
    revoked : bool
        Flipped once on rotation or logout.
    """

    __tablename__ = "refresh_tokens"

    token_id: Mapped[str] = mapped_column(String(36), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        UniqueConstraint("token_id", name="uq_refresh_tokens_token_id"),
        UniqueConstraint("token", name="uq_refresh_tokens_token"),
        Index("ix_refresh_tokens_owner_id", "owner_id"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )
