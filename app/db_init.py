import logging
import time
from pathlib import Path

from sqlalchemy.exc import OperationalError

from app.models.database import Base, Database, _normalize_database_url
from app.models import EmailVerificationToken, User, UserSession  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def wait_for_db(database: Database, retries: int, retry_delay_seconds: int) -> None:
    """Wait for database to accept connections before running migrations."""
    last_error = None
    for attempt in range(1, retries + 1):
        try:
            database.ping()
            logger.info("Database connection established on attempt %s", attempt)
            return
        except OperationalError as exc:
            last_error = exc
            logger.warning(
                "Database not reachable yet (attempt %s/%s): %s",
                attempt,
                retries,
                exc,
            )
            if attempt < retries:
                time.sleep(retry_delay_seconds)

    raise RuntimeError(
        "Database is unreachable after "
        f"{retries} attempts. Check DATABASE_URL and ensure the DB server is running."
    ) from last_error


def init_db(
    database: Database,
    database_url: str,
    retries: int = 10,
    retry_delay_seconds: int = 2,
) -> None:
    wait_for_db(database, retries=retries, retry_delay_seconds=retry_delay_seconds)
    if database_url.startswith("sqlite://"):
        Base.metadata.create_all(bind=database.engine)
        return

    run_migrations(database_url)
    Base.metadata.create_all(bind=database.engine)


def run_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the latest revision."""
    try:
        from alembic import command
        from alembic.config import Config
    except ImportError as exc:  # pragma: no cover - environment/setup failure
        raise RuntimeError(
            "Alembic is required for non-sqlite runtime. Install the project dependencies."
        ) from exc

    project_root = Path(__file__).resolve().parent.parent
    alembic_ini = project_root / "alembic.ini"
    script_location = project_root / "alembic"
    if not alembic_ini.exists() or not script_location.exists():
        raise RuntimeError("Alembic configuration is missing (alembic.ini or alembic/ directory not found).")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(script_location))
    config.set_main_option("sqlalchemy.url", _normalize_database_url(database_url))
    command.upgrade(config, "head")
