import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api import auth, health
from app.config import DEFAULT_JWT_SECRET, settings
from app.db_init import init_db
from app.models import Database
from app.services.auth_service import AuthService
from app.services.email_service import EmailSender, build_email_sender
from app.services.errors import AuthError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("app.startup")

POSTGRES_SCHEMES = {"postgres", "postgresql", "postgresql+psycopg"}


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.hostname)


def _get_cors_origins(cors_raw: str) -> list[str]:
    return [origin.strip() for origin in cors_raw.split(",") if origin.strip()]


def _validate_database_url_for_runtime(database_url: str) -> None:
    parsed = urlparse(database_url)
    scheme = parsed.scheme

    if not scheme:
        raise RuntimeError("DATABASE_URL is missing URL scheme (expected postgresql:// or postgresql+psycopg://).")
    if scheme == "sqlite":
        return
    if scheme not in POSTGRES_SCHEMES:
        raise RuntimeError(
            f"DATABASE_URL has unsupported scheme '{scheme}' "
            "(expected postgresql:// or postgresql+psycopg://)."
        )
    if not parsed.hostname:
        raise RuntimeError("DATABASE_URL is missing host.")
    if not parsed.path.lstrip("/"):
        raise RuntimeError("DATABASE_URL is missing database name in path.")


def _db_url_diagnostics(database_url: str) -> str:
    parsed = urlparse(database_url)
    host = parsed.hostname or "<missing>"
    port = parsed.port or "<missing>"
    db_name = parsed.path.lstrip("/") or "<missing>"
    scheme = parsed.scheme or "<missing>"
    return f"scheme={scheme}, host={host}, port={port}, database={db_name}"


def _validate_required_env_for_runtime() -> None:
    errors = []

    jwt_secret = settings.JWT_SECRET.strip()
    if not jwt_secret:
        errors.append("JWT_SECRET is required.")
    elif jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET uses the insecure default value.")

    origins = _get_cors_origins(settings.CORS_ORIGINS)
    if not origins:
        errors.append("CORS_ORIGINS must contain at least one comma-separated origin URL.")
    else:
        invalid_origins = [origin for origin in origins if not _is_http_url(origin)]
        if invalid_origins:
            errors.append(f"CORS_ORIGINS contains invalid URL(s): {', '.join(invalid_origins)}")

    if settings.EMAIL_BACKEND == "smtp" and not (settings.SMTP_HOST and settings.SMTP_FROM_EMAIL):
        errors.append("EMAIL_BACKEND=smtp requires SMTP_HOST and SMTP_FROM_EMAIL.")

    if errors:
        raise RuntimeError("Startup environment validation failed: " + " | ".join(errors))


def _open_database() -> Database:
    database_url = settings.DATABASE_URL
    logger.info("DATABASE_URL diagnostics at startup: %s", _db_url_diagnostics(database_url))
    _validate_database_url_for_runtime(database_url)
    database = Database.from_url(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
        statement_timeout=settings.DB_STATEMENT_TIMEOUT_SECONDS,
    )
    try:
        init_db(
            database,
            database_url,
            retries=settings.DB_CONNECT_RETRIES,
            retry_delay_seconds=settings.DB_CONNECT_RETRY_DELAY_SECONDS,
        )
    except Exception:
        database.dispose()
        raise
    return database


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup initiated.")
    owns_database = app.state.database is None
    if owns_database:
        _validate_required_env_for_runtime()
        try:
            app.state.database = _open_database()
        except Exception as exc:
            logger.exception("Database initialization failed: %s", str(exc))
            raise
        app.state.auth_service = AuthService(
            app.state.database,
            app.state.email_sender or build_email_sender(settings),
            settings,
        )
    logger.info("Application startup completed successfully.")
    try:
        yield
    finally:
        if owns_database and app.state.database is not None:
            app.state.database.dispose()
            app.state.database = None
            app.state.auth_service = None


def create_app(database: Database | None = None, email_sender: EmailSender | None = None) -> FastAPI:
    """Build the application.

    Passing ``database`` skips opening one from settings at startup; the
    caller then owns its lifecycle.
    """
    application = FastAPI(
        title="Event RSVP Auth API",
        description=(
            "Account registration, email verification and cookie-based sessions "
            "for the event RSVP app."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Auth", "description": "Register, verify email, login and logout."},
            {"name": "Health", "description": "Database readiness."},
        ],
    )
    application.state.database = database
    application.state.email_sender = email_sender
    application.state.auth_service = None
    if database is not None:
        application.state.auth_service = AuthService(
            database,
            email_sender or build_email_sender(settings),
            settings,
        )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=_get_cors_origins(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    application.add_exception_handler(AuthError, auth.auth_error_handler)
    application.add_exception_handler(RequestValidationError, auth.request_validation_error_handler)

    application.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
    application.include_router(health.router, tags=["Health"])
    application.include_router(health.router, prefix="/api", tags=["Health"], include_in_schema=False)

    @application.get("/")
    def root():
        return {"status": "ok", "service": "Event RSVP Auth API"}

    return application


app = create_app()
