import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from app.dependencies import get_database
from app.models import Database

router = APIRouter()
logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("users", "email_verification_tokens", "user_sessions")


@router.get("/health")
def health(database: Annotated[Database, Depends(get_database)]):
    """Report database connectivity and whether the auth tables exist."""
    try:
        database.ping()
        existing_names = set(inspect(database.engine).get_table_names())
    except SQLAlchemyError as exc:
        logger.error("Health check failed: %s", exc.__class__.__name__, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": {"connected": False}},
        )

    existing = sorted(name for name in REQUIRED_TABLES if name in existing_names)
    missing = [name for name in REQUIRED_TABLES if name not in existing_names]
    return {
        "status": "healthy",
        "database": {
            "connected": True,
            "dialect": database.dialect_name,
            "tables": {"existing": existing, "missing": missing, "ready": not missing},
        },
    }
