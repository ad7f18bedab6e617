"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from tests.factories.user import UserFactory
from tokenauth.models import RefreshToken, User
from tokenauth.uow import SQLAlchemyUnitOfWork


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, db, session):
        """
        GIVEN a writer UoW
        WHEN we create a user via repo inside the context and leave without exception
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = db.session.query(User).count()

        with SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserFactory.build())

        after = db.session.query(User).count()
        assert after == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN the transaction is rolled back and no rows are persisted.
        """
        initial = db.session.query(RefreshToken).count()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.refresh_tokens.add(
                RefreshToken(
                    token_id="jti-rollback",
                    owner_id="1",
                    token="raw",
                    expires_at=datetime.now(UTC) + timedelta(days=1),
                )
            )
            raise RuntimeError("boom")

        after = db.session.query(RefreshToken).count()
        assert after == initial

    def test_repositories_share_the_session(self, session):
        uow = SQLAlchemyUnitOfWork()
        assert uow.users.session is uow.session
        assert uow.roles.session is uow.session
        assert uow.refresh_tokens.session is uow.session
