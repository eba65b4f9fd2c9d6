# backend/src/collartrack/routers/ingest.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..core.database import get_session
from ..core.errors import MissingFieldError, StoreError, UnsupportedOperationError
from ..models import MetricIn, MetricRead, ReadingIn, ReadingRead

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingest"])

COLLAR_INSERT_ONLY = "GET /collar is insert-only; provide output metric query parameters to insert"


def _require_dog_name(reading: ReadingIn, path: str) -> None:
    if reading.dog_name is None:
        logger.info("rejected ingest", extra={"path": path, "reason": "missing dog_name"})
        raise MissingFieldError("dog_name is required")


def _store(session: Session, reading: Optional[ReadingIn], metric: Optional[MetricIn]) -> Dict[str, Any]:
    """
    Insert an optional reading and an optional metric in one transaction.

    The reading is flushed before the metric, so a failing metric insert rolls
    the reading back with it. A metric written together with a reading always
    carries the reading's collar_id.
    """
    result: Dict[str, Any] = {"input": None, "output": None}
    try:
        with session.begin():
            if reading is not None:
                row = reading.to_row()
                session.add(row)
                session.flush()
                result["input"] = ReadingRead.model_validate(row)
            if metric is not None:
                out = metric.to_row()
                if reading is not None:
                    out.collar_id = row.collar_id
                session.add(out)
                session.flush()
                result["output"] = MetricRead.model_validate(out)
    except (SQLAlchemyError, OverflowError) as exc:
        logger.exception("insert failed, transaction rolled back")
        raise StoreError.from_exception(exc) from exc
    return result


def _log_stored(result: Dict[str, Any]) -> None:
    reading, metric = result["input"], result["output"]
    logger.info(
        "stored collar data",
        extra={
            "collar_id": (reading or metric).collar_id,
            "reading_id": reading.id if reading else None,
            "metric_id": metric.id if metric else None,
        },
    )


@router.get("/ingest", summary="Store a reading and, when metric fields are given, its metric")
def ingest(request: Request, session: Session = Depends(get_session)):
    params = dict(request.query_params)
    reading = ReadingIn.model_validate(params)
    _require_dog_name(reading, "/ingest")

    metric = MetricIn.model_validate(params)
    result = _store(session, reading, metric if metric.has_values() else None)
    _log_stored(result)

    inserted = result["input"]
    return {
        "ok": True,
        "inserted": {
            "input": {
                "id": inserted.id,
                "created_at": inserted.created_at,
                "collar_id": inserted.collar_id,
            },
            "output": result["output"],
        },
    }


@router.post("/app", summary="Store a reading from a JSON body")
def create_reading(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_session),
):
    reading = ReadingIn.model_validate(payload or {})
    _require_dog_name(reading, "/app")

    result = _store(session, reading, None)
    _log_stored(result)

    inserted = result["input"]
    return {
        "ok": True,
        "inserted": {
            "id": inserted.id,
            "created_at": inserted.created_at,
            "collar_id": inserted.collar_id,
        },
    }


def _insert_metric(metric: MetricIn, session: Session, empty_error: Exception) -> Dict[str, Any]:
    if metric.collar_id is None:
        logger.info("rejected metric", extra={"path": "/collar", "reason": "missing collar_id"})
        raise MissingFieldError("collar_id is required")
    if not metric.has_values():
        logger.info("rejected metric", extra={"path": "/collar", "collar_id": metric.collar_id, "reason": "no metric fields"})
        raise empty_error

    result = _store(session, None, metric)
    _log_stored(result)
    return {"ok": True, "output": result["output"]}


@router.get("/collar", summary="Insert-only metric write through the query string")
def collar_metric_query(request: Request, session: Session = Depends(get_session)):
    return _insert_metric(
        MetricIn.model_validate(dict(request.query_params)),
        session,
        UnsupportedOperationError(COLLAR_INSERT_ONLY),
    )


@router.post("/collar", summary="Metric write from a JSON body")
def collar_metric_body(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_session),
):
    return _insert_metric(
        MetricIn.model_validate(payload or {}),
        session,
        MissingFieldError("at least one output metric field is required"),
    )
