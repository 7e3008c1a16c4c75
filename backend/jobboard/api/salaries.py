"""
Salary statistics and currency endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_db
from jobboard.schemas.salary import SalaryStatsResponse, CurrencyResponse
from jobboard.services import currency as currency_service
from jobboard.services.salary import get_salary_stats

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/salaries", response_model=SalaryStatsResponse)
async def salaries(
    location: Optional[str] = Query(default=None),
    currency: Optional[str] = Query(default=None, description="Salary currency symbol"),
    db: AsyncSession = Depends(get_db)
):
    """Salary ranges and monthly percentiles for live jobs in a location."""
    stats = await get_salary_stats(db, location, currency)
    return SalaryStatsResponse.model_validate(stats)


@router.get("/currency", response_model=CurrencyResponse)
async def currency_for_caller(request: Request):
    """Currency for the caller's IP. Defaults to USD."""
    ip = currency_service.client_ip(
        request.headers.get("x-forwarded-for"),
        request.client.host if request.client else None,
    )
    result = await currency_service.lookup(ip)
    return CurrencyResponse.model_validate(result)
