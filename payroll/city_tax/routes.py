"""
City-tax admin routes: CRUD over the city_tax_data table.

  GET    /api/city-tax
  GET    /api/city-tax/{city}
  POST   /api/city-tax
  PUT    /api/city-tax/{city}
  DELETE /api/city-tax/{city}

Every write drops the city's Redis entry so the next salary calculation
reads the new value.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll.cache import invalidate_city_tax
from payroll.city_tax.schemas import CityTaxCreate, CityTaxUpdate
from payroll.database import get_db
from payroll.store import (
    create_city_tax,
    delete_city_tax,
    get_city_tax,
    list_city_tax,
    update_city_tax,
)

router = APIRouter(prefix="/api/city-tax", tags=["city_tax"])
logger = logging.getLogger(__name__)


async def _invalidate(request: Request, city: str) -> None:
    redis_client = getattr(request.app.state, "redis", None)
    if redis_client is None:
        return
    try:
        await invalidate_city_tax(redis_client, city)
    except RedisError as exc:
        # Entry expires on its own after city_tax_cache_ttl
        logger.warning("City tax cache invalidation failed city=%s: %s", city, exc)


@router.get("")
async def list_cities(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    records = await list_city_tax(db)
    return JSONResponse(status_code=200, content=[r.model_dump() for r in records])


@router.get("/{city}")
async def get_city(city: str, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    record = await get_city_tax(db, city)
    if record is None:
        raise HTTPException(status_code=404, detail=f"City tax data for {city} not found")
    return JSONResponse(status_code=200, content=record.model_dump())


@router.post("")
async def create_city(
    request: Request,
    body: CityTaxCreate,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    if await get_city_tax(db, body.city) is not None:
        raise HTTPException(status_code=409, detail=f"City tax data for {body.city} already exists")

    record = await create_city_tax(
        db, city=body.city, professional_tax=body.professional_tax, state=body.state,
    )
    await _invalidate(request, body.city)
    return JSONResponse(status_code=201, content=record.model_dump())


@router.put("/{city}")
async def update_city(
    request: Request,
    city: str,
    body: CityTaxUpdate,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    record = await update_city_tax(db, city, body.model_dump(exclude_unset=True))
    if record is None:
        raise HTTPException(status_code=404, detail=f"City tax data for {city} not found")
    await _invalidate(request, city)
    return JSONResponse(status_code=200, content=record.model_dump())


@router.delete("/{city}")
async def delete_city(
    request: Request,
    city: str,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    deleted = await delete_city_tax(db, city)
    if deleted:
        await _invalidate(request, city)
    return JSONResponse(status_code=200, content={"success": deleted})
