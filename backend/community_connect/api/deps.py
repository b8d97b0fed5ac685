from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from community_connect.core.config import Settings
from community_connect.core.exceptions import AuthenticationError
from community_connect.db.session import get_db
from community_connect.models.user import User
from community_connect.services.captcha import CaptchaEngine
from community_connect.services.credentials import CredentialStore
from community_connect.services.password_policy import PasswordHasher
from community_connect.services.rate_limit import RateLimitBackend
from community_connect.services.session import SESSION_COOKIE_NAME, SessionClaims, SessionIssuer
from community_connect.services.verification import VerificationTokenService

__all__ = [
    "get_db",
    "get_settings",
    "get_session_issuer",
    "get_captcha_engine",
    "get_rate_limiter",
    "get_password_hasher",
    "get_credential_store",
    "get_verification_service",
    "get_current_session",
    "get_current_user",
]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


def get_captcha_engine(request: Request) -> CaptchaEngine:
    return request.app.state.captcha_engine


def get_rate_limiter(request: Request) -> RateLimitBackend:
    return request.app.state.rate_limiter


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_credential_store(db: Annotated[AsyncSession, Depends(get_db)]) -> CredentialStore:
    return CredentialStore(db)


def get_verification_service(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
) -> VerificationTokenService:
    return VerificationTokenService(settings, store)


def get_current_session(
    request: Request,
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
) -> SessionClaims:
    """
    Session claims for the request.

    The gate middleware has already verified the cookie on protected routes;
    this re-verifies for any route it does not cover.
    """
    claims = getattr(request.state, "session", None)
    if claims is not None:
        return claims

    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise AuthenticationError("Unauthorized")
    return session_issuer.verify(token)


async def get_current_user(
    claims: Annotated[SessionClaims, Depends(get_current_session)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
) -> User:
    """Stored user for the session. A token for a deleted user is an untrusted session."""
    user = await store.find_by_id(claims.user_id)
    if user is None:
        raise AuthenticationError()
    return user
