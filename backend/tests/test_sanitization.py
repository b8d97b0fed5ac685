"""
Tests for input sanitization.
"""

from community_connect.core.sanitization import (
    MAX_INPUT_LENGTH,
    is_valid_email,
    normalize_email,
    sanitize_input,
)


class TestSanitizeInput:
    """Tests for free-text sanitization."""

    def test_removes_angle_brackets(self):
        """Angle brackets should be stripped, text kept."""
        assert sanitize_input("<b>hello</b>") == "bhello/b"

    def test_removes_javascript_protocol(self):
        """javascript: should be removed regardless of case."""
        result = sanitize_input("JavaScript:alert(1)")
        assert "javascript:" not in result.lower()
        assert result == "alert(1)"

    def test_removes_event_handlers(self):
        """Inline event handler patterns should be removed."""
        result = sanitize_input('<img src=x onerror=alert(1)>')
        assert "onerror=" not in result.lower()
        assert "<" not in result
        assert result == "img src=x alert(1)"

    def test_event_handler_pattern_is_case_insensitive(self):
        assert sanitize_input("x OnClick=run()") == "x run()"

    def test_trims_whitespace(self):
        assert sanitize_input("   Alice  \n") == "Alice"

    def test_truncates_long_input(self):
        """Output never exceeds the maximum length."""
        result = sanitize_input("a" * (MAX_INPUT_LENGTH + 500))
        assert len(result) == MAX_INPUT_LENGTH

    def test_preserves_plain_text(self):
        """Plain text should be unchanged."""
        assert sanitize_input("Hello world!") == "Hello world!"

    def test_non_string_input(self):
        """Anything that is not a string becomes an empty string."""
        assert sanitize_input(None) == ""
        assert sanitize_input(42) == ""
        assert sanitize_input({"$ne": ""}) == ""

    def test_empty_input(self):
        assert sanitize_input("") == ""


class TestEmailValidation:
    """Tests for email shape checks."""

    def test_valid_addresses(self):
        assert is_valid_email("a@b.com") is True
        assert is_valid_email("first.last+tag@sub.example.org") is True

    def test_invalid_addresses(self):
        assert is_valid_email("not-an-email") is False
        assert is_valid_email("missing@tld") is False
        assert is_valid_email("two words@example.com") is False
        assert is_valid_email("@example.com") is False
        assert is_valid_email("") is False

    def test_rejects_overlong_address(self):
        """Addresses over 254 characters are rejected."""
        local = "a" * 250
        assert is_valid_email(f"{local}@example.com") is False

    def test_non_string_is_invalid(self):
        assert is_valid_email(None) is False
        assert is_valid_email(["a@b.com"]) is False

    def test_normalize_lowercases_and_sanitizes(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"
        assert normalize_email(None) == ""
