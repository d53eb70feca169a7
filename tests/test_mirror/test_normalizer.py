"""Tests for content normalization."""

import pytest

from src.mirror.normalizer import normalize_content


class TestNormalizeContent:
    """Tests for normalize_content()."""

    def test_crlf_becomes_lf(self):
        assert normalize_content("a\r\nb") == "a\nb"

    def test_strips_surrounding_whitespace(self):
        assert normalize_content("  x  ") == "x"

    def test_strips_trailing_newlines(self):
        assert normalize_content("# Title\r\n\r\nBody\r\n\r\n") == "# Title\n\nBody"

    def test_keeps_inner_whitespace(self):
        assert normalize_content("a  b\n\n  c") == "a  b\n\n  c"

    def test_lone_cr_is_kept(self):
        """Only CR directly before LF is a line ending."""
        assert normalize_content("a\rb") == "a\rb"

    def test_empty_and_none(self):
        assert normalize_content("") == ""
        assert normalize_content(None) == ""
        assert normalize_content(" \r\n\t ") == ""

    @pytest.mark.parametrize(
        "text",
        [
            "plain",
            "a\r\nb",
            "a\r\r\nb",
            "  lead\r\n",
            "\r\n\r\n",
            "x\r\n\r\r\n y \r",
            "",
        ],
    )
    def test_idempotent(self, text):
        """Normalizing twice gives the same result as once."""
        once = normalize_content(text)
        assert normalize_content(once) == once
