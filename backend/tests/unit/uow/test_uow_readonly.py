import pytest
from sqlalchemy import text

from tests.factories.user import UserFactory
from tokenauth.models.user import User
from tokenauth.uow import (
    SQLAlchemyReadOnlyUnitOfWork as ROuow,
)
from tokenauth.uow import (
    SQLAlchemyUnitOfWork as RWuow,
)


class TestSQLAlchemyReadOnlyUnitOfWork:
    def test_blocks_orm_flush_writes(self, session):
        """
        Ensure that attempting to flush ORM changes inside the RO UoW raises.
        """
        with ROuow() as uow, pytest.raises(RuntimeError, match="ORM flush blocked"):
            # Any flush must be blocked by the before_flush guard.
            uow.session.add(UserFactory.build())
            uow.session.flush()

    def test_blocks_core_dml(self, session):
        """
        Ensure that raw SQL DML is blocked inside the RO UoW.
        """
        with ROuow() as uow, pytest.raises(RuntimeError, match="SQL statement blocked"):
            uow.session.execute(
                text("UPDATE refresh_tokens SET revoked = 1 WHERE token_id = :j"), {"j": "x"}
            )

    def test_allows_reads(self, session):
        """
        Read operations should work normally within RO UoW.
        """
        with RWuow() as uow:
            uow.users.add(UserFactory.build())

        with ROuow() as uow:
            assert uow.session.query(User).count() >= 1

    def test_disallows_commit(self, session):
        """
        RO UoW must reject commit().
        """
        with ROuow() as uow, pytest.raises(RuntimeError, match="does not allow commit"):
            uow.commit()

    def test_guards_are_removed_on_exit(self, session):
        with ROuow():
            pass
        with RWuow() as uow:
            uow.users.add(UserFactory.build())
