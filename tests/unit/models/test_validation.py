"""
Unit tests for models._validation module.

Tests:
- validate_int() / validate_timestamp() / validate_kind()
- validate_str_no_null() / validate_str_not_empty() / validate_hex64()
- freeze_sequence() and deep_freeze()
"""

from types import MappingProxyType

import pytest

from emfguardian.models._validation import (
    deep_freeze,
    freeze_sequence,
    validate_hex64,
    validate_int,
    validate_kind,
    validate_str_no_null,
    validate_str_not_empty,
    validate_timestamp,
)


class TestNumbers:
    """Integer validators."""

    def test_bool_is_not_int(self) -> None:
        with pytest.raises(TypeError, match="must be an int"):
            validate_int(True, "value")

    def test_timestamp_zero_accepted(self) -> None:
        validate_timestamp(0, "created_at")

    def test_timestamp_negative(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            validate_timestamp(-1, "created_at")

    def test_kind_bounds(self) -> None:
        validate_kind(0, "kind")
        validate_kind(65_535, "kind")
        with pytest.raises(ValueError):
            validate_kind(65_536, "kind")


class TestStrings:
    """String validators."""

    def test_null_bytes(self) -> None:
        with pytest.raises(ValueError, match="null bytes"):
            validate_str_no_null("a\x00", "content")

    def test_empty_allowed_by_no_null(self) -> None:
        validate_str_no_null("", "content")

    def test_not_empty(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            validate_str_not_empty("", "name")

    def test_hex64(self) -> None:
        validate_hex64("0" * 64, "id")
        with pytest.raises(ValueError):
            validate_hex64("0" * 63, "id")
        with pytest.raises(ValueError):
            validate_hex64("g" * 64, "id")
        with pytest.raises(TypeError):
            validate_hex64(b"0" * 64, "id")


class TestFreezing:
    """Immutability helpers."""

    def test_freeze_sequence(self) -> None:
        assert freeze_sequence([1, 2], "items") == (1, 2)
        assert freeze_sequence((1,), "items") == (1,)

    @pytest.mark.parametrize("value", ["ab", b"ab", {1, 2}, None])
    def test_freeze_sequence_rejects(self, value: object) -> None:
        with pytest.raises(TypeError, match="must be a list"):
            freeze_sequence(value, "items")

    def test_deep_freeze(self) -> None:
        frozen = deep_freeze({"a": [1, {"b": [2]}]})
        assert isinstance(frozen, MappingProxyType)
        assert frozen["a"][0] == 1
        assert isinstance(frozen["a"], tuple)
        assert isinstance(frozen["a"][1], MappingProxyType)
        assert frozen["a"][1]["b"] == (2,)
