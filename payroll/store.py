"""
store.py: Data access facade for the payroll service.

All routes use these functions: no route touches SQLAlchemy directly.

Design principles:
  - All functions are async and accept an AsyncSession parameter
  - No raw SQL: ORM-only queries
  - flush(), never commit(): the get_db() dependency owns the transaction
  - Logs only city / calculation_id / user_id: never salary values
  - Returns Pydantic objects or plain dicts, not ORM instances
"""
import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll.models.city_tax import CityTaxORM
from payroll.models.salary_calculation import SalaryCalculationORM
from payroll.salary.schemas import CalculationRequest, CityTaxRecord, SalaryBreakdown

logger = logging.getLogger(__name__)

MAX_HISTORY_ROWS = 100


def _to_record(orm: CityTaxORM) -> CityTaxRecord:
    return CityTaxRecord(
        city=orm.city,
        state=orm.state,
        professional_tax=float(orm.professional_tax),
    )


# ---------------------------------------------------------------------------
# City-tax operations
# ---------------------------------------------------------------------------

async def get_city_tax(db: AsyncSession, city: str) -> Optional[CityTaxRecord]:
    """
    Exact, case-sensitive lookup by city.
    Returns None if no row exists (the engine then falls back to its static table).
    """
    result = await db.execute(select(CityTaxORM).where(CityTaxORM.city == city))
    orm = result.scalar_one_or_none()
    if orm is None:
        return None
    return _to_record(orm)


async def list_city_tax(db: AsyncSession) -> list[CityTaxRecord]:
    """All city-tax rows, ordered by city ascending."""
    result = await db.execute(select(CityTaxORM).order_by(CityTaxORM.city.asc()))
    return [_to_record(orm) for orm in result.scalars().all()]


async def create_city_tax(
    db: AsyncSession,
    city: str,
    professional_tax: float,
    state: Optional[str] = None,
) -> CityTaxRecord:
    """Insert a new city row. Caller checks for an existing row first (409)."""
    orm = CityTaxORM(
        city=city,
        state=state,
        professional_tax=Decimal(str(professional_tax)),
    )
    db.add(orm)
    await db.flush()
    logger.info("Created city tax city=%s", city)
    return _to_record(orm)


async def update_city_tax(
    db: AsyncSession,
    city: str,
    changes: dict[str, Any],
) -> Optional[CityTaxRecord]:
    """
    Apply a partial update. Returns None if the city has no row (caller raises 404).
    Only `state` and `professional_tax` are mutable; the city name is the key.
    """
    result = await db.execute(select(CityTaxORM).where(CityTaxORM.city == city))
    orm = result.scalar_one_or_none()
    if orm is None:
        return None

    if "state" in changes:
        orm.state = changes["state"]
    if changes.get("professional_tax") is not None:
        orm.professional_tax = Decimal(str(changes["professional_tax"]))

    await db.flush()
    logger.info("Updated city tax city=%s fields=%s", city, sorted(changes))
    return _to_record(orm)


async def delete_city_tax(db: AsyncSession, city: str) -> bool:
    """Delete a city row. Returns True if a row was removed."""
    result = await db.execute(delete(CityTaxORM).where(CityTaxORM.city == city))
    await db.flush()
    deleted = (result.rowcount or 0) > 0
    logger.info("Deleted city tax city=%s deleted=%s", city, deleted)
    return deleted


# ---------------------------------------------------------------------------
# Calculation history
# ---------------------------------------------------------------------------

async def save_calculation(
    db: AsyncSession,
    request: CalculationRequest,
    breakdown: SalaryBreakdown,
    user_id: Optional[str] = None,
) -> str:
    """
    Persist one calculation. Returns the generated calculation id.
    Monetary values go into the JSONB blobs only.
    """
    orm = SalaryCalculationORM(
        user_id=user_id,
        city=request.city,
        request_data=request.model_dump(mode="json"),
        breakdown_data=breakdown.model_dump(),
    )
    db.add(orm)
    await db.flush()
    logger.info("Saved salary calculation calculation_id=%s user_id=%s", orm.id, user_id)
    return orm.id


async def list_calculations(
    db: AsyncSession,
    user_id: Optional[str] = None,
    limit: int = MAX_HISTORY_ROWS,
) -> list[dict]:
    """
    Most recent calculations first, optionally filtered by user.
    limit is clamped to 1..MAX_HISTORY_ROWS.
    """
    limit = max(1, min(limit, MAX_HISTORY_ROWS))
    query = select(SalaryCalculationORM)
    if user_id is not None:
        query = query.where(SalaryCalculationORM.user_id == user_id)
    query = query.order_by(SalaryCalculationORM.created_at.desc()).limit(limit)

    result = await db.execute(query)
    return [
        {
            "id": row.id,
            "user_id": row.user_id,
            "city": row.city,
            "request": row.request_data,
            "breakdown": row.breakdown_data,
            "created_at": row.created_at.isoformat(),
        }
        for row in result.scalars().all()
    ]
