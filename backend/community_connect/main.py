import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from community_connect.api.auth import router as auth_router
from community_connect.api.captcha import router as captcha_router
from community_connect.api.deps import get_db
from community_connect.core.config import APP_VERSION, Settings
from community_connect.core.config import settings as default_settings
from community_connect.core.csrf import CSRF_HEADER_NAME
from community_connect.core.errors import register_exception_handlers
from community_connect.core.logging import setup_logging
from community_connect.core.middleware import RequestGateMiddleware, RequestValidationMiddleware
from community_connect.core.redis import close_redis
from community_connect.db.session import create_engine, create_session_maker
from community_connect.services.captcha import CaptchaEngine
from community_connect.services.password_policy import PasswordHasher
from community_connect.services.rate_limit import create_rate_limiter
from community_connect.services.session import SessionIssuer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    settings: Settings = app.state.settings
    setup_logging(settings)
    logger.info(
        f"Starting {settings.APP_NAME} {APP_VERSION} "
        f"(environment={settings.ENVIRONMENT}, rate_limit_backend={settings.RATE_LIMIT_BACKEND})"
    )

    yield

    logger.info("Closing Redis connection")
    await close_redis()
    await app.state.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Every component gets the same Settings instance; tests pass their own.
    """
    settings = settings or default_settings

    app = FastAPI(
        title=settings.APP_NAME,
        version=APP_VERSION,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    session_issuer = SessionIssuer(settings)

    app.state.settings = settings
    app.state.session_issuer = session_issuer
    app.state.captcha_engine = CaptchaEngine(settings)
    app.state.rate_limiter = create_rate_limiter(settings)
    app.state.password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    app.state.engine = create_engine(settings)
    app.state.session_maker = create_session_maker(app.state.engine)

    register_exception_handlers(app)

    # Added first so it runs innermost: request IDs and the 500 fallback
    app.add_middleware(RequestValidationMiddleware, max_request_size=settings.MAX_REQUEST_SIZE)

    # HTTPS redirect, session and CSRF checks, security headers
    app.add_middleware(RequestGateMiddleware, settings=settings, session_issuer=session_issuer)

    # Outermost: preflights are answered before the gate, and gate rejections
    # still carry Access-Control-Allow-Origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.APP_URL.rstrip("/")],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", CSRF_HEADER_NAME],
    )

    @app.get("/health")
    async def health_check(db: AsyncSession = Depends(get_db)):
        """Health check endpoint for container orchestration.

        Returns 200 if the database answers, 503 otherwise.
        """
        checks = {"status": "healthy", "database": False}

        try:
            await db.execute(text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            checks["status"] = "unhealthy"

        status_code = 200 if checks["database"] else 503
        return JSONResponse(content=checks, status_code=status_code)

    # Include routers with /api prefix
    app.include_router(auth_router, prefix="/api")
    app.include_router(captcha_router, prefix="/api")

    return app


app = create_app()
