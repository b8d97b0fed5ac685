"""
Anti-forgery (CSRF) token helpers.

Uses the double submit pattern: the token is set in an http-only cookie at
login/registration and client script echoes it in the ``x-csrf-token``
header on state-changing requests.
"""

import secrets

# CSRF token length (bytes)
CSRF_TOKEN_LENGTH = 32

# CSRF token name for cookie and header
CSRF_COOKIE_NAME = "csrf-token"
CSRF_HEADER_NAME = "x-csrf-token"

# Methods that change state and therefore need a matching token
MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def generate_csrf_token() -> str:
    """Generate a secure random CSRF token."""
    return secrets.token_hex(CSRF_TOKEN_LENGTH)


def csrf_tokens_match(cookie_token: str | None, header_token: str | None) -> bool:
    """Constant-time comparison; a missing value on either side never matches."""
    if not cookie_token or not header_token:
        return False
    return secrets.compare_digest(cookie_token.encode(), header_token.encode())
