"""
Salary HTTP routes: POST /api/salary/calculate,
                     GET  /api/salary/calculations,
                     GET  /api/salary/calculations/user/{user_id}

The engine itself is I/O-free; this module wires it to the city-tax store
(Redis cache → PostgreSQL) and persists each breakdown to history.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll.cache import get_cached_city_tax, set_cached_city_tax
from payroll.database import get_db
from payroll.salary.professional_tax import CityTaxLookup, build_professional_tax_resolver
from payroll.salary.salary_engine import calculate_salary
from payroll.salary.schemas import CalculationRequest, CityTaxRecord
from payroll.store import MAX_HISTORY_ROWS, get_city_tax, list_calculations, save_calculation

router = APIRouter(prefix="/api/salary", tags=["salary"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_city_tax_lookup(db: AsyncSession, redis_client=None) -> CityTaxLookup:
    """
    Build the store tier's lookup: Redis first (if available), then PostgreSQL.

    Redis errors are logged and skipped. Database errors roll the session
    back (so the history insert can still run) and propagate; the resolver's
    store tier turns them into a fallback.
    """
    async def lookup(city: str) -> Optional[CityTaxRecord]:
        if redis_client is not None:
            try:
                cached = await get_cached_city_tax(redis_client, city)
            except RedisError as exc:
                logger.warning("City tax cache read failed city=%s: %s", city, exc)
                cached = None
            if cached is not None:
                return cached

        try:
            record = await get_city_tax(db, city)
        except SQLAlchemyError:
            await db.rollback()
            raise

        if record is not None and redis_client is not None:
            try:
                await set_cached_city_tax(redis_client, record)
            except RedisError as exc:
                logger.warning("City tax cache write failed city=%s: %s", city, exc)
        return record

    return lookup


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/calculate")
async def calculate(
    request: Request,
    body: CalculationRequest,
    x_user_id: Optional[str] = Header(default=None, max_length=64),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Compute the CTC → take-home breakdown and record it in history.

    Returns:
      200: SalaryBreakdown
      422: INVALID_INPUT (ctc <= 0, variable_pay + insurance > ctc)
           VALIDATION_ERROR (malformed body)
    """
    redis_client = getattr(request.app.state, "redis", None)
    resolver = build_professional_tax_resolver(make_city_tax_lookup(db, redis_client))

    breakdown = await calculate_salary(body, resolver)
    calculation_id = await save_calculation(db, body, breakdown, user_id=x_user_id)

    logger.info(
        "Salary calculated calculation_id=%s city=%s user_id=%s",
        calculation_id, body.city, x_user_id,
    )
    return JSONResponse(
        status_code=200,
        content=breakdown.model_dump(),
        headers={"X-Calculation-Id": calculation_id},
    )


@router.get("/calculations")
async def get_calculations(
    limit: int = Query(default=MAX_HISTORY_ROWS, ge=1, le=MAX_HISTORY_ROWS),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Most recent calculations across all users."""
    rows = await list_calculations(db, limit=limit)
    return JSONResponse(status_code=200, content=rows)


@router.get("/calculations/user/{user_id}")
async def get_user_calculations(
    user_id: str,
    limit: int = Query(default=MAX_HISTORY_ROWS, ge=1, le=MAX_HISTORY_ROWS),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Most recent calculations for one user."""
    rows = await list_calculations(db, user_id=user_id, limit=limit)
    logger.info("Calculation history returned user_id=%s rows=%d", user_id, len(rows))
    return JSONResponse(status_code=200, content=rows)
