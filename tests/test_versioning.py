"""Tests for version coercion and comparison."""

import pytest
from semantic_version import Version

from depure.versioning import coerce_version, is_newer, is_strict_release, pick_latest


class TestCoerceVersion:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2.31.0", Version("2.31.0")),
            ("1.0", Version("1.0.0")),
            ("3", Version("3.0.0")),
            ("v1.2.3", Version("1.2.3")),
            ("1.0rc1", Version("1.0.0")),
            ("2024.1.1.post2", Version("2024.1.1")),
        ],
    )
    def test_coerces_partial_and_decorated_versions(self, value, expected):
        assert coerce_version(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "   "])
    def test_uncoercible_returns_none(self, value):
        assert coerce_version(value) is None


class TestIsNewer:
    def test_newer_major(self):
        assert is_newer("2.0.0", "1.9.9") is True

    def test_older_is_not_newer(self):
        assert is_newer("1.9.9", "2.0.0") is False

    def test_partial_equal_versions(self):
        assert is_newer("1.0", "1.0.0") is False

    @pytest.mark.parametrize("value", ["1.2.3", "1.0", "abc", "", "v2", "1.0rc1"])
    def test_same_version_never_newer(self, value):
        assert is_newer(value, value) is False

    @pytest.mark.parametrize(
        "candidate,base",
        [("", "1.0.0"), ("abc", "1.0.0"), ("1.0.0", None), (None, None), ("2.0.0", "garbage")],
    )
    def test_uncomparable_pair_is_false(self, candidate, base):
        assert is_newer(candidate, base) is False

    def test_result_is_stable(self):
        results = {is_newer("2.1.0", "2.0.5") for _ in range(5)}
        assert results == {True}


class TestPickLatest:
    def test_highest_strict_release(self):
        assert pick_latest(["1.0.0", "1.10.0", "1.9.3"]) == "1.10.0"

    def test_prereleases_and_non_semver_keys_ignored(self):
        assert pick_latest(["1.0.0", "2.0.0-rc.1", "2.0b1", "1.5"]) == "1.0.0"

    def test_no_valid_keys(self):
        assert pick_latest(["1.0", "2021.10.8.1"]) is None
        assert pick_latest([]) is None

    def test_is_strict_release(self):
        assert is_strict_release("1.2.3") is True
        assert is_strict_release("1.2.3-alpha") is False
        assert is_strict_release("1.2") is False
