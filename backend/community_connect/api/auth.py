from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from community_connect.api.deps import (
    get_captcha_engine,
    get_credential_store,
    get_current_session,
    get_current_user,
    get_password_hasher,
    get_rate_limiter,
    get_session_issuer,
    get_settings,
    get_verification_service,
)
from community_connect.core.config import Settings
from community_connect.core.errors import ErrorResponse
from community_connect.core.exceptions import (
    AppError,
    AuthenticationError,
    LockoutError,
    RateLimitError,
    ValidationError,
)
from community_connect.core.sanitization import is_valid_email, normalize_email, sanitize_input
from community_connect.db.base import as_utc, utcnow
from community_connect.models.user import User
from community_connect.schemas.auth import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    VerifyEmailRequest,
)
from community_connect.schemas.user import LoginResponse, ProfileUpdate, UserEnvelope, UserProfile
from community_connect.services.audit import security_event
from community_connect.services.captcha import CAPTCHA_COOKIE_NAME, CaptchaEngine, clear_captcha_cookie
from community_connect.services.credentials import CredentialStore
from community_connect.services.email import send_verification_email
from community_connect.services.password_policy import PasswordHasher, validate_password
from community_connect.services.rate_limit import RateLimitBackend, login_policy, register_policy
from community_connect.services.session import SessionClaims, SessionIssuer
from community_connect.services.verification import VerificationTokenService
from community_connect.utils.request import get_client_ip

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid credentials"


def _error_clearing_captcha(exc: AppError, settings: Settings) -> JSONResponse:
    """Render an error; the CAPTCHA cookie is single-use whatever the outcome."""
    response = ErrorResponse.from_exception(exc)
    clear_captcha_cookie(response, settings)
    return response


@router.post("/register", response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
    rate_limiter: Annotated[RateLimitBackend, Depends(get_rate_limiter)],
    captcha: Annotated[CaptchaEngine, Depends(get_captcha_engine)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    verification: Annotated[VerificationTokenService, Depends(get_verification_service)],
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
):
    """
    Create an unverified account.

    Order: rate limit, field presence, sanitization, email shape, password
    policy, CAPTCHA, duplicate check. The verification email is sent last;
    a delivery failure is reported in ``emailSent`` and does not undo the
    registration.
    """
    client_ip = get_client_ip(request)

    if not await rate_limiter.check(register_policy(settings), client_ip):
        security_event("RATE_LIMIT_EXCEEDED", {"action": "register", "ip": client_ip}, request)
        return ErrorResponse.from_exception(
            RateLimitError("Too many registration attempts. Please try again later.")
        )

    try:
        if not body.first_name or not body.last_name or not body.email or not body.password or body.captcha_answer is None:
            raise ValidationError("All fields are required")

        first_name = sanitize_input(body.first_name)
        last_name = sanitize_input(body.last_name)
        email = normalize_email(body.email)

        if not is_valid_email(email):
            raise ValidationError("Please enter a valid email address")

        password_check = validate_password(body.password)
        if not password_check.is_valid:
            raise ValidationError(password_check.errors[0])

        if not captcha.verify(body.captcha_answer, request.cookies.get(CAPTCHA_COOKIE_NAME)):
            security_event("CAPTCHA_FAILED", {"email": email, "ip": client_ip}, request)
            raise ValidationError("CAPTCHA verification failed")

        if await store.find_by_email(email) is not None:
            security_event("DUPLICATE_REGISTRATION", {"email": email, "ip": client_ip}, request)
            raise ValidationError("User already exists with this email")
    except AppError as e:
        return _error_clearing_captcha(e, settings)

    password_hash = await run_in_threadpool(hasher.hash, body.password)
    token, expires_at = verification.issue(email)

    user = User(
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        avatar=None,
        bio="",
        location="",
        phone="",
        community_score=0,
        is_email_verified=False,
        email_verification_token=token,
        email_verification_expires=expires_at,
    )
    user_id = await store.insert(user)

    email_sent = await send_verification_email(settings, email, token)

    security_event(
        "USER_REGISTERED",
        {"userId": str(user_id), "email": email, "emailSent": email_sent, "ip": client_ip},
        request,
    )

    csrf_token = session_issuer.new_csrf_token()
    session_issuer.set_registration_csrf_cookie(response, csrf_token)
    clear_captcha_cookie(response, settings)

    return RegisterResponse(
        message="Registration successful! Please check your email to verify your account.",
        email_sent=email_sent,
        user_id=str(user_id),
        csrf_token=csrf_token,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
    rate_limiter: Annotated[RateLimitBackend, Depends(get_rate_limiter)],
    captcha: Annotated[CaptchaEngine, Depends(get_captcha_engine)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
):
    """
    Authenticate and set the session and CSRF cookies.

    A locked account answers 423 before the password is looked at. Failed
    password checks count towards the lock; the account's verified status is
    only revealed to a caller who knows the password.
    """
    client_ip = get_client_ip(request)

    if not await rate_limiter.check(login_policy(settings), client_ip):
        security_event("RATE_LIMIT_EXCEEDED", {"action": "login", "ip": client_ip}, request)
        return ErrorResponse.from_exception(RateLimitError("Too many login attempts. Please try again later."))

    try:
        user = await _authenticate(body, request, settings, captcha, hasher, store, client_ip)
    except AppError as e:
        return _error_clearing_captcha(e, settings)

    await store.update_fields(
        user.id,
        {"last_login_at": utcnow()},
        unset_fields=("login_attempts", "lock_until"),
    )

    session_token = session_issuer.issue(user.id, user.email)
    csrf_token = session_issuer.new_csrf_token()
    session_issuer.set_session_cookies(response, session_token, csrf_token)
    clear_captcha_cookie(response, settings)

    security_event("LOGIN_SUCCESS", {"userId": str(user.id), "email": user.email, "ip": client_ip}, request)

    return LoginResponse(user=UserProfile.from_user(user), csrf_token=csrf_token)


async def _authenticate(
    body: LoginRequest,
    request: Request,
    settings: Settings,
    captcha: CaptchaEngine,
    hasher: PasswordHasher,
    store: CredentialStore,
    client_ip: str,
) -> User:
    if not body.email or not body.password or body.captcha_answer is None:
        raise ValidationError("Email, password, and CAPTCHA are required")

    email = normalize_email(body.email)
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address")

    if not captcha.verify(body.captcha_answer, request.cookies.get(CAPTCHA_COOKIE_NAME)):
        security_event("LOGIN_CAPTCHA_FAILED", {"email": email, "ip": client_ip}, request)
        raise ValidationError("CAPTCHA verification failed")

    user = await store.find_by_email(email)
    if user is None:
        security_event("LOGIN_FAILED", {"email": email, "reason": "user_not_found", "ip": client_ip}, request)
        raise AuthenticationError(INVALID_CREDENTIALS)

    lock_until = as_utc(user.lock_until)
    if lock_until is not None and lock_until > utcnow():
        security_event("LOGIN_BLOCKED", {"email": email, "reason": "account_locked", "ip": client_ip}, request)
        raise LockoutError()

    if not await run_in_threadpool(hasher.verify, body.password, user.password_hash):
        attempts = (user.login_attempts or 0) + 1
        updates: dict = {"login_attempts": attempts}
        if attempts >= settings.MAX_LOGIN_ATTEMPTS:
            updates["lock_until"] = utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)
            security_event("ACCOUNT_LOCKED", {"email": email, "attempts": attempts, "ip": client_ip}, request)
        await store.update_fields(user.id, updates)

        security_event(
            "LOGIN_FAILED",
            {"email": email, "reason": "invalid_password", "attempts": attempts, "ip": client_ip},
            request,
        )
        raise AuthenticationError(INVALID_CREDENTIALS)

    if not user.is_email_verified:
        security_event("LOGIN_FAILED", {"email": email, "reason": "email_not_verified", "ip": client_ip}, request)
        raise AuthenticationError("Please verify your email address before logging in.")

    return user


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    body: VerifyEmailRequest,
    request: Request,
    verification: Annotated[VerificationTokenService, Depends(get_verification_service)],
):
    if not body.email or not body.token:
        raise ValidationError("Email and token are required")

    email = normalize_email(body.email)
    token = sanitize_input(body.token)
    client_ip = get_client_ip(request)

    if not await verification.consume(email, token):
        security_event(
            "EMAIL_VERIFICATION_FAILED",
            {"email": email, "reason": "invalid_token", "ip": client_ip},
            request,
        )
        raise ValidationError("Invalid or expired verification token")

    security_event("EMAIL_VERIFIED", {"email": email, "ip": client_ip}, request)
    return MessageResponse(message="Email verified successfully! You can now log in.")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    claims: Annotated[SessionClaims, Depends(get_current_session)],
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
):
    """Delete the session and CSRF cookies. The token itself stays valid until expiry."""
    session_issuer.clear_session_cookies(response)
    security_event("LOGOUT", {"userId": str(claims.user_id), "ip": get_client_ip(request)}, request)
    return MessageResponse(message="Logged out successfully")


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
):
    return UserEnvelope(user=UserProfile.from_user(current_user))


@router.put("/profile", response_model=UserEnvelope)
async def update_profile(
    body: ProfileUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Update the caller's own profile. Every supplied field is sanitized."""
    updates = {
        field: sanitize_input(value)
        for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items()
    }
    if "first_name" in updates and not updates["first_name"]:
        raise ValidationError("First name cannot be empty")
    if "last_name" in updates and not updates["last_name"]:
        raise ValidationError("Last name cannot be empty")

    if updates:
        await store.update_fields(current_user.id, updates)

    user = await store.find_by_id(current_user.id)
    if user is None:
        raise AuthenticationError()
    return UserEnvelope(user=UserProfile.from_user(user))
