"""
Tests for the validation utilities.

This module tests the colour normalisation and parsing used by the palette
and by card background colours.
"""

import pytest

from kard.utils.validation import normalize_hex_color, parse_hex_color
from kard.utils.error_handler import ConfigurationError


class TestNormalizeHexColor:
    """Test colour normalisation."""

    @pytest.mark.parametrize("value,expected", [
        ("#0a84ff", "#0A84FF"),
        ("0A84FF", "#0A84FF"),
        ("  #d4af37\n", "#D4AF37"),
        ("#B87333", "#B87333"),
    ])
    def test_normalize_valid(self, value, expected):
        assert normalize_hex_color(value) == expected

    @pytest.mark.parametrize("value", ["", "#", "#FFF", "#GGGGGG", "#0A84FF00", "blue", "##0A84FF"])
    def test_normalize_invalid(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_hex_color(value)

        error = exc_info.value
        assert "Invalid hex colour" in error.message
        assert error.details["value"] == value

    def test_normalize_non_string(self):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_hex_color(0x0A84FF)
        assert exc_info.value.details["value_type"] == "int"


class TestParseHexColor:
    """Test colour parsing into RGB fractions."""

    def test_parse_primary_colours(self):
        assert parse_hex_color("#FF0000") == (1.0, 0.0, 0.0)
        assert parse_hex_color("#00FF00") == (0.0, 1.0, 0.0)
        assert parse_hex_color("#0000ff") == (0.0, 0.0, 1.0)

    def test_parse_default_background(self):
        r, g, b = parse_hex_color("#0F1720")
        assert r == pytest.approx(15 / 255)
        assert g == pytest.approx(23 / 255)
        assert b == pytest.approx(32 / 255)

    @pytest.mark.parametrize("value", ["", "navy", "#12345", None])
    def test_parse_invalid_returns_none(self, value):
        assert parse_hex_color(value) is None
