"""Custom middleware for request validation and the security gate."""

import logging
import uuid
from collections.abc import Callable

import structlog
from fastapi import Request, Response, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from community_connect.core.config import Settings
from community_connect.core.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, MUTATING_METHODS, csrf_tokens_match
from community_connect.core.errors import ErrorResponse
from community_connect.core.exceptions import AuthenticationError, AuthorizationError, InternalError
from community_connect.services.session import SESSION_COOKIE_NAME, SessionIssuer
from community_connect.utils.request import get_client_ip, is_api_path

logger = logging.getLogger(__name__)

# Routes that require a valid session cookie
PROTECTED_ROUTES = (
    "/dashboard",
    "/api/users",
    "/api/help-posts",
    "/api/events",
    "/api/conversations",
    "/api/messages",
    "/api/forum-posts",
    "/api/auth/profile",
    "/api/auth/logout",
)

# API routes reachable without a session or CSRF token
PUBLIC_API_ROUTES = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/verify-email",
    "/api/captcha",
)

LOGIN_PAGE = "/login"

SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "Content-Security-Policy": "; ".join([
        "default-src 'self'",
        "script-src 'self'",
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
        "font-src 'self' https://fonts.gstatic.com",
        "img-src 'self' data: https: blob:",
        "connect-src 'self'",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
        "upgrade-insecure-requests",
    ]),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Cross-Origin-Embedder-Policy": "unsafe-none",
}


def _matches(path: str, prefixes: tuple[str, ...]) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def is_protected_route(path: str) -> bool:
    return _matches(path, PROTECTED_ROUTES) and not is_public_api_route(path)


def is_public_api_route(path: str) -> bool:
    return _matches(path, PUBLIC_API_ROUTES)


def is_secure_request(request: Request) -> bool:
    forwarded_proto = request.headers.get("x-forwarded-proto")
    if forwarded_proto:
        return forwarded_proto.split(",")[0].strip().lower() == "https"
    return request.url.scheme == "https"


def apply_security_headers(response: Response) -> Response:
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response


class RequestGateMiddleware(BaseHTTPMiddleware):
    """
    Security gate in front of every route.

    Per request:
    1. Production requests that did not arrive over HTTPS get a 301 to https://
    2. Protected routes need a valid session cookie; missing or invalid
       sessions get 401 JSON on /api/ paths and a redirect to /login otherwise,
       and an invalid cookie is cleared
    3. Mutating methods on any non-public route need the x-csrf-token header
       to match the csrf-token cookie, else 403
    4. Every response carries SECURITY_HEADERS
    """

    def __init__(self, app: ASGIApp, *, settings: Settings, session_issuer: SessionIssuer) -> None:
        super().__init__(app)
        self.settings = settings
        self.session_issuer = session_issuer

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await self._gate(request, call_next)
        return apply_security_headers(response)

    async def _gate(self, request: Request, call_next: Callable) -> Response:
        if self.settings.is_production and not is_secure_request(request):
            host = request.headers.get("host", request.url.netloc)
            target = f"https://{host}{request.url.path}"
            if request.url.query:
                target = f"{target}?{request.url.query}"
            return RedirectResponse(target, status_code=status.HTTP_301_MOVED_PERMANENTLY)

        path = request.url.path
        request.state.session = None

        if is_protected_route(path):
            token = request.cookies.get(SESSION_COOKIE_NAME)
            if not token:
                return self._reject_unauthenticated(path, clear_cookie=False)
            try:
                request.state.session = self.session_issuer.verify(token)
            except AuthenticationError:
                logger.info(f"Rejected invalid session cookie from {get_client_ip(request)} for {path}")
                return self._reject_unauthenticated(path, clear_cookie=True)

        if request.method in MUTATING_METHODS and not is_public_api_route(path):
            cookie_token = request.cookies.get(CSRF_COOKIE_NAME)
            header_token = request.headers.get(CSRF_HEADER_NAME)
            if not csrf_tokens_match(cookie_token, header_token):
                logger.warning(f"CSRF: token mismatch for {request.method} {path} from {get_client_ip(request)}")
                return ErrorResponse.from_exception(AuthorizationError("CSRF token mismatch"))

        return await call_next(request)

    def _reject_unauthenticated(self, path: str, *, clear_cookie: bool) -> Response:
        if is_api_path(path):
            response: Response = ErrorResponse.create("Unauthorized", status.HTTP_401_UNAUTHORIZED)
        else:
            response = RedirectResponse(LOGIN_PAGE, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
        if clear_cookie:
            self.session_issuer.clear_session_cookie(response)
        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Middleware for request validation and error containment.

    Enforces:
    - Request size limits
    - Request ID generation, bound to structlog context
    - Generic 500 for anything unhandled
    """

    def __init__(self, app: ASGIApp, max_request_size: int = 1024 * 1024) -> None:
        super().__init__(app)
        self.max_request_size = max_request_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            content_length = request.headers.get("content-length")
            if content_length:
                try:
                    size = int(content_length)
                except ValueError:
                    size = 0
                if size > self.max_request_size:
                    logger.warning(f"Request too large: {size} bytes from {get_client_ip(request)}")
                    response = ErrorResponse.create(
                        "Request too large",
                        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    )
                    response.headers["X-Request-ID"] = request_id
                    return response

            try:
                response = await call_next(request)
            except Exception as e:
                logger.exception(f"Unhandled exception during {request.method} {request.url.path}: {e}")
                response = ErrorResponse.from_exception(InternalError())
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            structlog.contextvars.clear_contextvars()
