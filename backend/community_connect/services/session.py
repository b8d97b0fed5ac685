"""
Session issuance.

Sessions are stateless signed JWTs carried in the ``auth-token`` cookie. A
paired anti-forgery token goes in the ``csrf-token`` cookie with the same
lifetime. There is no server-side revocation: a token stays valid until it
expires or the cookie is deleted.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Response

from community_connect.core.config import Settings
from community_connect.core.csrf import CSRF_COOKIE_NAME, generate_csrf_token
from community_connect.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "auth-token"

REQUIRED_CLAIMS = ["userId", "email", "iat", "exp"]


@dataclass(frozen=True)
class SessionClaims:
    user_id: uuid.UUID
    email: str
    issued_at: datetime
    expires_at: datetime


class SessionIssuer:
    """Mints and checks session tokens using the configured signing secret."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def issue(self, user_id: uuid.UUID | str, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": str(user_id),
            "email": email,
            "iat": now,
            "exp": now + timedelta(seconds=self.settings.SESSION_TTL_SECONDS),
        }
        return jwt.encode(payload, self.settings.JWT_SECRET_KEY, algorithm=self.settings.JWT_ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        """
        Check signature, expiry and claim shape.

        Raises:
            AuthenticationError: on any failure; callers must not distinguish causes
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.JWT_SECRET_KEY,
                algorithms=[self.settings.JWT_ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
            return SessionClaims(
                user_id=uuid.UUID(str(payload["userId"])),
                email=str(payload["email"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.debug(f"Session token rejected: {type(e).__name__}")
            raise AuthenticationError("Unauthorized") from e

    @staticmethod
    def new_csrf_token() -> str:
        return generate_csrf_token()

    def _set_cookie(self, response: Response, key: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key=key,
            value=value,
            max_age=max_age,
            httponly=True,
            secure=self.settings.is_production,
            samesite="strict",
            path="/",
        )

    def set_session_cookies(self, response: Response, session_token: str, csrf_token: str) -> None:
        self._set_cookie(response, SESSION_COOKIE_NAME, session_token, self.settings.SESSION_TTL_SECONDS)
        self._set_cookie(response, CSRF_COOKIE_NAME, csrf_token, self.settings.SESSION_TTL_SECONDS)

    def set_registration_csrf_cookie(self, response: Response, csrf_token: str) -> None:
        self._set_cookie(response, CSRF_COOKIE_NAME, csrf_token, self.settings.REGISTRATION_CSRF_TTL_SECONDS)

    def clear_session_cookie(self, response: Response) -> None:
        response.delete_cookie(
            SESSION_COOKIE_NAME,
            path="/",
            httponly=True,
            secure=self.settings.is_production,
            samesite="strict",
        )

    def clear_session_cookies(self, response: Response) -> None:
        self.clear_session_cookie(response)
        response.delete_cookie(
            CSRF_COOKIE_NAME,
            path="/",
            httponly=True,
            secure=self.settings.is_production,
            samesite="strict",
        )
