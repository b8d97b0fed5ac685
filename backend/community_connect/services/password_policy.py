"""
Password composition rules and salted hashing.
"""

import logging
from dataclasses import dataclass, field

import bcrypt

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_SPECIAL_CHARS = '!@#$%^&*(),.?":{}|<>'

# bcrypt only reads the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


@dataclass
class PasswordValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_password(password: str) -> PasswordValidation:
    """
    Validate password composition.

    Requirements:
    - Between 8 and 128 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one number
    - At least one special character from PASSWORD_SPECIAL_CHARS

    Every failing rule is reported; callers usually surface only the first.
    """
    errors: list[str] = []

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters")
    if not any("A" <= c <= "Z" for c in password):
        errors.append("Password must contain at least one uppercase letter")
    if not any("a" <= c <= "z" for c in password):
        errors.append("Password must contain at least one lowercase letter")
    if not any("0" <= c <= "9" for c in password):
        errors.append("Password must contain at least one number")
    if not any(c in PASSWORD_SPECIAL_CHARS for c in password):
        errors.append("Password must contain at least one special character")

    return PasswordValidation(is_valid=not errors, errors=errors)


class PasswordHasher:
    """bcrypt hashing with a configurable work factor."""

    def __init__(self, rounds: int = 14):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(self._encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check; malformed hashes count as a mismatch."""
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False
