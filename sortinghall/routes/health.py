import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from sortinghall.database import get_session

router = APIRouter()
logger = logging.getLogger("app")


@router.get("/health")
def health(session: Session = Depends(get_session)):
    """Maschinenlesbarer Health-Endpoint (Datenbank erreichbar?)."""
    database = "ok"
    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health-Check: Datenbank nicht erreichbar: %s", exc)
        database = "error"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "server": "running",
    }
