"""Role repository."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from tokenauth.models.role import Role
from tokenauth.repositories.base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    """Persistence-only repository for :class:`Role`."""

    model = Role

    def _filterable_fields(self):
        return {"name": Role.name}

    def get_by_name(self, name: str) -> Role | None:
        stmt = select(Role).where(Role.name == name.strip().upper())
        return cast(Role | None, self.session.execute(stmt).scalars().first())

    def get_or_create(self, name: str) -> tuple[Role, bool]:
        """Return ``(role, created)``, inserting the role when missing."""
        role = self.get_by_name(name)
        if role is not None:
            return role, False
        return self.add(Role(name=name)), True
