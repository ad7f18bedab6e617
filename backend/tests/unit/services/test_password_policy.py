"""Unit tests for the registration password policy."""

from __future__ import annotations

import pytest

from tokenauth.services import password_policy as policy


class TestCheckPassword:
    def test_strong_password_has_no_violations(self):
        assert policy.check_password("Tr0ub4dor&Zebra") == []
        assert policy.is_acceptable("Tr0ub4dor&Zebra") is True

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_password_reports_only_empty(self, value):
        assert policy.check_password(value) == [policy.EMPTY]

    def test_every_rule_is_reported_in_one_pass(self):
        violations = policy.check_password("aaa")
        assert policy.TOO_SHORT in violations
        assert policy.NO_UPPERCASE in violations
        assert policy.NO_DIGIT in violations
        assert policy.NO_SPECIAL in violations
        assert policy.REPEATED in violations
        assert policy.NO_LOWERCASE not in violations

    def test_lowercase_digits_example(self):
        """"abc12345" also hits the deny-list through "abc123" and "1234"."""
        violations = policy.check_password("abc12345")

        assert set(violations) == {
            policy.NO_UPPERCASE,
            policy.NO_SPECIAL,
            policy.SEQUENTIAL,
            policy.COMMON_PATTERN,
        }
        assert len(violations) == 4

    def test_too_long(self):
        value = "Xy7#" + "q1W!" * 40
        assert policy.TOO_LONG in policy.check_password(value)

    def test_exact_bounds_are_accepted(self):
        assert policy.TOO_SHORT not in policy.check_password("Zq7#mK2$")
        assert len("Zq7#mK2$") == policy.MIN_LENGTH

    @pytest.mark.parametrize(
        "value",
        ["Password123!", "MyQwerty#9x", "xAdminx#9Z"],
    )
    def test_common_patterns_are_case_insensitive(self, value):
        assert policy.COMMON_PATTERN in policy.check_password(value)

    def test_sequential_runs(self):
        assert policy.has_sequential_run("xxabcxx") is True
        assert policy.has_sequential_run("x789x") is True
        assert policy.has_sequential_run("acegik") is False
        assert policy.SEQUENTIAL in policy.check_password("Zq#abcW9")

    def test_repeated_runs(self):
        assert policy.has_repeated_run("xx111x") is True
        assert policy.has_repeated_run("aabbcc") is False
        assert policy.REPEATED in policy.check_password("Zq#7WWWk")

    def test_descending_run_is_not_sequential(self):
        assert policy.has_sequential_run("cba321") is False
