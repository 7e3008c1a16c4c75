"""Salary statistics and currency schemas."""
from pydantic import BaseModel, ConfigDict


class SalaryDataPointResponse(BaseModel):
    min: int
    max: int

    model_config = ConfigDict(from_attributes=True)


class SalaryTrendResponse(BaseModel):
    date: str
    p10: int
    p25: int
    p50: int
    p75: int
    p90: int

    model_config = ConfigDict(from_attributes=True)


class SalaryStatsResponse(BaseModel):
    location: str
    currency: str
    complementary_remote: bool
    data: list[SalaryDataPointResponse]
    trends: list[SalaryTrendResponse]

    model_config = ConfigDict(from_attributes=True)


class CurrencyResponse(BaseModel):
    code: str
    symbol: str

    model_config = ConfigDict(from_attributes=True)
