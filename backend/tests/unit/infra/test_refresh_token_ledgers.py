# tests/unit/infra/test_refresh_token_ledgers.py
"""
Behaviour shared by every refresh-token ledger backend.

The same cases run against the in-memory, SQL (transactional SQLite) and
Redis (fakeredis) ledgers:
- insert + find_by_id / find_by_owner
- duplicate insert conflicts
- mark_revoked compare-and-set semantics
- purge_expired
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tokenauth.core.extensions import db
from tokenauth.infra.redis.redis_refresh_token_ledger import RedisRefreshTokenLedger
from tokenauth.infra.sql.sql_refresh_token_ledger import SqlRefreshTokenLedger
from tokenauth.services._shared.errors import LedgerConflictError
from tokenauth.services._shared.ports import InMemoryRefreshTokenLedger, RefreshTokenRecord
from tokenauth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

NOW = datetime.now(UTC).replace(microsecond=0)


def _record(i: int, *, owner: str = "user-1", expires_in: int = 3600) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        token_id=f"jti-{i}",
        owner_id=owner,
        token=f"token-{i}",
        expires_at=NOW + timedelta(seconds=expires_in),
        created_at=NOW,
    )


@pytest.fixture(params=["memory", "sql", "redis"])
def ledger_under_test(request):
    """Provide each ledger backend in turn."""
    if request.param == "memory":
        return InMemoryRefreshTokenLedger()
    if request.param == "sql":
        request.getfixturevalue("session")
        return SqlRefreshTokenLedger()
    r = fakeredis.FakeRedis()
    r.flushall()
    return RedisRefreshTokenLedger(r, clock=lambda: NOW)


class TestLedgerContract:
    def test_insert_and_find_by_id(self, ledger_under_test):
        ledger_under_test.insert(_record(1))

        found = ledger_under_test.find_by_id("jti-1")
        assert found is not None
        assert found.owner_id == "user-1"
        assert found.token == "token-1"
        assert found.expires_at == NOW + timedelta(seconds=3600)
        assert found.revoked is False
        assert found.is_active(NOW)

    def test_find_unknown_returns_none(self, ledger_under_test):
        assert ledger_under_test.find_by_id("missing") is None

    def test_duplicate_token_id_conflicts(self, ledger_under_test):
        ledger_under_test.insert(_record(1))
        with pytest.raises(LedgerConflictError):
            ledger_under_test.insert(_record(1))

    def test_find_by_owner(self, ledger_under_test):
        ledger_under_test.insert(_record(1))
        ledger_under_test.insert(_record(2))
        ledger_under_test.insert(_record(3, owner="user-2"))

        ids = sorted(r.token_id for r in ledger_under_test.find_by_owner("user-1"))
        assert ids == ["jti-1", "jti-2"]
        assert ledger_under_test.find_by_owner("nobody") == []

    def test_mark_revoked_is_compare_and_set(self, ledger_under_test):
        ledger_under_test.insert(_record(1))

        assert ledger_under_test.mark_revoked("jti-1") is True
        assert ledger_under_test.mark_revoked("jti-1") is False
        assert ledger_under_test.find_by_id("jti-1").revoked is True

    def test_mark_revoked_unknown(self, ledger_under_test):
        assert ledger_under_test.mark_revoked("missing") is False

    def test_revoked_records_stay_listed(self, ledger_under_test):
        ledger_under_test.insert(_record(1))
        ledger_under_test.mark_revoked("jti-1")
        (record,) = ledger_under_test.find_by_owner("user-1")
        assert record.revoked is True
        assert not record.is_active(NOW)

    def test_purge_expired(self, ledger_under_test):
        ledger_under_test.insert(_record(1, expires_in=10))
        ledger_under_test.insert(_record(2, expires_in=3600))

        assert ledger_under_test.purge_expired(NOW + timedelta(seconds=60)) == 1
        assert ledger_under_test.find_by_id("jti-1") is None
        assert ledger_under_test.find_by_id("jti-2") is not None
        assert [r.token_id for r in ledger_under_test.find_by_owner("user-1")] == ["jti-2"]


class TestInMemoryLedger:
    def test_duplicate_raw_token_conflicts(self):
        ledger = InMemoryRefreshTokenLedger()
        ledger.insert(_record(1))
        duplicate = RefreshTokenRecord(
            token_id="jti-other", owner_id="user-1", token="token-1", expires_at=NOW
        )
        with pytest.raises(LedgerConflictError):
            ledger.insert(duplicate)

    def test_insert_stamps_created_at(self, freeze_time):
        ledger = InMemoryRefreshTokenLedger()
        with freeze_time("2024-03-01 08:30:00"):
            ledger.insert(
                RefreshTokenRecord(token_id="j", owner_id="u", token="t", expires_at=NOW)
            )
        assert ledger.find_by_id("j").created_at == datetime(2024, 3, 1, 8, 30, tzinfo=UTC)

    def test_concurrent_mark_revoked_has_one_winner(self):
        ledger = InMemoryRefreshTokenLedger()
        ledger.insert(_record(1))
        barrier = threading.Barrier(10)
        results: list[bool] = []

        def worker():
            barrier.wait()
            results.append(ledger.mark_revoked("jti-1"))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1


class TestSqlLedgerConcurrency:
    """Runs against a file-backed SQLite database so every thread gets its own connection."""

    @pytest.fixture()
    def sql_ledger(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'ledger.db'}",
            connect_args={"timeout": 30, "check_same_thread": False},
        )
        db.metadata.create_all(engine)
        Session = sessionmaker(bind=engine, future=True)
        try:
            yield SqlRefreshTokenLedger(lambda: SQLAlchemyUnitOfWork(Session()))
        finally:
            engine.dispose()

    def test_concurrent_mark_revoked_has_one_winner(self, sql_ledger):
        sql_ledger.insert(_record(1))
        barrier = threading.Barrier(8)
        results: list[bool] = []
        errors: list[Exception] = []

        def worker():
            barrier.wait()
            try:
                results.append(sql_ledger.mark_revoked("jti-1"))
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert results.count(True) == 1
        assert results.count(False) == 7
        assert sql_ledger.find_by_id("jti-1").revoked is True
