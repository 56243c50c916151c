import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()
logger = logging.getLogger(__name__)


def _normalize_database_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+psycopg://", 1)

    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)

    return database_url


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Database:
    """Storage handle owning the engine, its connection pool and session factory.

    Opened once at process start and disposed at shutdown. Every unit of work
    goes through :meth:`session`, which always returns the connection to the
    pool, whatever way the block exits.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        if engine.dialect.name == "sqlite":
            _enable_sqlite_foreign_keys(engine)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @classmethod
    def from_url(
        cls,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 5,
        pool_timeout: int = 10,
        statement_timeout: int = 15,
    ) -> "Database":
        url = _normalize_database_url(database_url)
        if url.startswith("sqlite"):
            options = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url in {"sqlite://", "sqlite:///"}:
                options["poolclass"] = StaticPool
            return cls(create_engine(url, **options))

        engine = create_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
            connect_args={
                "connect_timeout": pool_timeout,
                "options": f"-c statement_timeout={statement_timeout * 1000}",
            },
        )
        return cls(engine)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        logger.info("Disposing database connection pool")
        self.engine.dispose()
