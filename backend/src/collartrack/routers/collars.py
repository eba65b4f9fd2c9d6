# backend/src/collartrack/routers/collars.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core.database import get_session
from ..core.errors import MissingFieldError, RecordNotFoundError, StoreError
from ..models import Metric, MetricRead, Reading, ReadingRead
from ..utils.validators import BIGINT_MAX, clamp, parse_int, to_text

logger = logging.getLogger(__name__)

router = APIRouter(tags=["collars"])

# Collars 1..6 have short routes (/1 .. /6)
SHORT_COLLAR_IDS = frozenset(str(n) for n in range(1, 7))

DEFAULT_PAGE_SIZE = 100


def _latest_metric(session: Session, collar_id: str) -> Optional[Metric]:
    stmt = (
        select(Metric)
        .where(Metric.collar_id == collar_id)
        .order_by(func.coalesce(Metric.npl_time, Metric.created_at).desc(), Metric.id.desc())
        .limit(1)
    )
    return session.exec(stmt).first()


def _latest_reading(session: Session, collar_id: str) -> Optional[Reading]:
    stmt = (
        select(Reading)
        .where(Reading.collar_id == collar_id)
        .order_by(Reading.created_at.desc(), Reading.id.desc())
        .limit(1)
    )
    return session.exec(stmt).first()


@router.get("/by-collar", summary="Readings joined with metrics for one collar, newest first")
def history_by_collar(
    request: Request,
    collar_id: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None, description=f"1..max page size, default {DEFAULT_PAGE_SIZE}"),
    offset: Optional[str] = Query(default=None, description=">= 0, default 0"),
    session: Session = Depends(get_session),
):
    collar = to_text(collar_id)
    if collar is None:
        raise MissingFieldError("collar_id is required")

    max_page = request.app.state.settings.max_page_size
    lim = int(clamp(parse_int(limit, DEFAULT_PAGE_SIZE), 1, max_page))
    off = int(clamp(parse_int(offset, 0), 0, BIGINT_MAX))

    stmt = (
        select(Reading, Metric)
        .join(Metric, Metric.collar_id == Reading.collar_id, isouter=True)
        .where(Reading.collar_id == collar)
        .order_by(
            Reading.created_at.desc(),
            Metric.created_at.desc().nulls_last(),
            Reading.id.desc(),
            Metric.id.desc(),
        )
        .offset(off)
        .limit(lim)
    )
    try:
        rows = session.exec(stmt).all()
    except (SQLAlchemyError, OverflowError) as exc:
        logger.exception("history query failed", extra={"collar_id": collar})
        raise StoreError.from_exception(exc) from exc

    data: List[Dict[str, Any]] = [
        {
            "input": ReadingRead.model_validate(reading),
            "output": MetricRead.model_validate(metric) if metric is not None else None,
        }
        for reading, metric in rows
    ]
    return {"ok": True, "count": len(data), "limit": lim, "offset": off, "data": data}


def _latest_payload(session: Session, collar_id: str) -> Dict[str, Any]:
    try:
        metric = _latest_metric(session, collar_id)
        if metric is None:
            raise RecordNotFoundError("no output data for collar_id")
        reading = _latest_reading(session, collar_id)
    except (SQLAlchemyError, OverflowError) as exc:
        logger.exception("latest query failed", extra={"collar_id": collar_id})
        raise StoreError.from_exception(exc) from exc

    return {
        "ok": True,
        "input": ReadingRead.model_validate(reading) if reading is not None else None,
        "output": MetricRead.model_validate(metric),
    }


def _latest_route(collar_id: str):
    def latest_for_collar(session: Session = Depends(get_session)):
        return _latest_payload(session, collar_id)

    return latest_for_collar


# One fixed route per short collar, so other paths stay plain 404s
for _collar_id in sorted(SHORT_COLLAR_IDS):
    router.add_api_route(
        f"/{_collar_id}",
        _latest_route(_collar_id),
        methods=["GET"],
        summary=f"Latest metric and reading for collar {_collar_id}",
    )
