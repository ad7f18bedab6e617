"""Constants and a controllable clock shared by token-core tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

STRONG_PASSWORD = "Tr0ub4dor&Zebra"
ISSUER = "tokenauth-test"
AUDIENCE = "tokenauth-test-api"


class MutableClock:
    """Callable UTC clock that tests move forward explicitly."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)
