"""
Input sanitization for security.

Free-text fields are cleaned before they are stored or compared.
"""
import re
from typing import Any

MAX_INPUT_LENGTH = 1000
MAX_EMAIL_LENGTH = 254

# Patterns for dangerous content
DANGEROUS_PATTERNS = [
    r'[<>]',  # Angle brackets (HTML tags)
    r'javascript:',  # JavaScript protocol
    r'on\w+=',  # Event handlers (onclick=, onload=, etc.)
]

COMPILED_PATTERNS = [re.compile(pattern, re.IGNORECASE) for pattern in DANGEROUS_PATTERNS]

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def sanitize_input(value: Any) -> str:
    """
    Sanitize a free-text field.

    Strips angle brackets, ``javascript:`` prefixes and inline event-handler
    patterns, trims whitespace and truncates to 1000 characters.

    Args:
        value: Raw input; anything that is not a string becomes ""

    Returns:
        Sanitized string

    Examples:
        >>> sanitize_input("  <b>hi</b> ")
        'bhi/b'
        >>> sanitize_input('x onclick=alert(1)')
        'x alert(1)'
    """
    if not isinstance(value, str):
        return ""

    sanitized = value
    for pattern in COMPILED_PATTERNS:
        sanitized = pattern.sub('', sanitized)

    return sanitized.strip()[:MAX_INPUT_LENGTH]


def is_valid_email(email: Any) -> bool:
    """Check the ``local@domain.tld`` shape and the RFC 5321 length limit."""
    if not isinstance(email, str):
        return False
    return len(email) <= MAX_EMAIL_LENGTH and bool(EMAIL_PATTERN.match(email))


def normalize_email(email: Any) -> str:
    """Lower-case and sanitize an email address for lookups."""
    if not isinstance(email, str):
        return ""
    return sanitize_input(email.lower())
