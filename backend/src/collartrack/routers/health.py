from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from ..core.database import Database, get_database
from ..core.errors import StoreError

logger = logging.getLogger(__name__)

router = APIRouter()

USAGE = (
    "Use GET /ingest or POST /app to store input_readings, GET /collar to send output metrics, "
    "GET /1 .. /6 for the latest record and GET /by-collar for history"
)


@router.get("/", summary="Usage message")
def root():
    return {"ok": True, "msg": USAGE}


@router.get("/health", summary="Service and database reachable?")
def health(database: Database = Depends(get_database)):
    try:
        database.ping()
    except (SQLAlchemyError, OverflowError) as exc:
        logger.exception("health check failed")
        raise StoreError.from_exception(exc) from exc
    return {"ok": True, "database": "up"}
