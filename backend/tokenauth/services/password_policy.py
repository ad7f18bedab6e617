"""Password strength rules applied at registration.

Every rule is evaluated independently so callers receive the full set of
violations in one pass.
"""

from __future__ import annotations

import re
from typing import Final

MIN_LENGTH: Final[int] = 8
MAX_LENGTH: Final[int] = 128
RUN_LENGTH: Final[int] = 3

_HAS_UPPERCASE = re.compile(r"[A-Z]")
_HAS_LOWERCASE = re.compile(r"[a-z]")
_HAS_DIGIT = re.compile(r"[0-9]")
_HAS_SPECIAL = re.compile(r"[^A-Za-z0-9]")

# Matched as case-insensitive substrings.
COMMON_PASSWORDS: Final[tuple[str, ...]] = (
    "password",
    "123456",
    "qwerty",
    "admin",
    "welcome",
    "letmein",
    "abc123",
    "monkey",
    "1234567890",
    "000000",
    "iloveyou",
    "1234",
    "superman",
    "princess",
    "rockyou",
    "ashley",
    "bailey",
    "shadow",
    "123123",
    "654321",
    "football",
    "baseball",
    "welcome1",
    "!@#$%^&*",
    "donald",
    "password1",
    "qwerty123",
)

EMPTY = "Password cannot be empty"
TOO_SHORT = f"Password must be at least {MIN_LENGTH} characters long"
TOO_LONG = f"Password cannot be longer than {MAX_LENGTH} characters"
NO_UPPERCASE = "Password must contain at least one uppercase letter"
NO_LOWERCASE = "Password must contain at least one lowercase letter"
NO_DIGIT = "Password must contain at least one digit"
NO_SPECIAL = "Password must contain at least one special character"
COMMON_PATTERN = "Password contains a common pattern and is too easy to guess"
SEQUENTIAL = "Password contains sequential characters (e.g., 'abc', '123')"
REPEATED = "Password contains repeated characters (e.g., 'aaa', '111')"


def has_sequential_run(password: str, length: int = RUN_LENGTH) -> bool:
    """Return ``True`` when ``length`` consecutive code points ascend by one."""
    run = 1
    for prev, cur in zip(password, password[1:]):
        run = run + 1 if ord(cur) == ord(prev) + 1 else 1
        if run >= length:
            return True
    return False


def has_repeated_run(password: str, length: int = RUN_LENGTH) -> bool:
    """Return ``True`` when the same character appears ``length`` times in a row."""
    run = 1
    for prev, cur in zip(password, password[1:]):
        run = run + 1 if cur == prev else 1
        if run >= length:
            return True
    return False


def contains_common_pattern(password: str) -> bool:
    lowered = password.lower()
    return any(pattern in lowered for pattern in COMMON_PASSWORDS)


def check_password(password: str | None) -> list[str]:
    """Evaluate ``password`` against the policy.

    :param password: Candidate password (``None`` is treated as empty).
    :returns: Violation messages; an empty list means the password is acceptable.
    """
    if not password:
        return [EMPTY]

    violations: list[str] = []
    if len(password) < MIN_LENGTH:
        violations.append(TOO_SHORT)
    if len(password) > MAX_LENGTH:
        violations.append(TOO_LONG)
    if not _HAS_UPPERCASE.search(password):
        violations.append(NO_UPPERCASE)
    if not _HAS_LOWERCASE.search(password):
        violations.append(NO_LOWERCASE)
    if not _HAS_DIGIT.search(password):
        violations.append(NO_DIGIT)
    if not _HAS_SPECIAL.search(password):
        violations.append(NO_SPECIAL)
    if contains_common_pattern(password):
        violations.append(COMMON_PATTERN)
    if has_sequential_run(password):
        violations.append(SEQUENTIAL)
    if has_repeated_run(password):
        violations.append(REPEATED)
    return violations


def is_acceptable(password: str | None) -> bool:
    """Shorthand for ``not check_password(password)``."""
    return not check_password(password)
