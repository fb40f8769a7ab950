"""
schemas.py: Salary engine Pydantic v2 data contracts.

Defines:
  - CalculationRequest  (engine input: annual CTC and its carve-outs)
  - CityTaxRecord       (one row of the city-tax table, read-only to the engine)
  - SalaryBreakdown     (engine output: immutable once produced)
  - ErrorDetail, ErrorBody, ErrorResponse  (cross-cutting error envelope)

Units:
  - ctc, fixed_ctc, variable_pay, insurance, annual_deductions are ANNUAL.
  - Every other SalaryBreakdown field is MONTHLY.
  - All amounts are INR.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field


# ---------------------------------------------------------------------------
# CalculationRequest: engine input
# ---------------------------------------------------------------------------

class CalculationRequest(BaseModel):
    """
    Annual CTC plus the parts of it that are not paid out monthly.

    ctc is deliberately unconstrained here: ctc <= 0 and
    variable_pay + insurance > ctc are rejected by the engine with
    InvalidInputError, so direct callers get the same error as HTTP callers.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    ctc: Decimal = Field(
        ...,
        description="Annual cost to company in INR.",
    )
    city: str = Field(
        ..., min_length=1, max_length=100,
        description="City name, exact case (e.g. 'Mumbai'). Drives professional tax and HRA metro rate.",
    )
    variable_pay: Decimal = Field(
        default=Decimal("0"), ge=0,
        validation_alias=AliasChoices("variable_pay", "variablePay"),
        description="Annual variable pay included in CTC but not in monthly salary.",
    )
    insurance: Decimal = Field(
        default=Decimal("0"), ge=0,
        description="Annual employer-paid insurance included in CTC.",
    )


# ---------------------------------------------------------------------------
# CityTaxRecord: external city-tax data
# ---------------------------------------------------------------------------

class CityTaxRecord(BaseModel):
    """Professional tax for one city, as stored by the admin tooling."""
    model_config = ConfigDict(frozen=True)

    city: str
    professional_tax: float          # Monthly, INR
    state: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_metro(self) -> bool:
        # Local import: salary_engine imports this module at load time
        from payroll.salary.salary_engine import is_metro_city

        return is_metro_city(self.city)


# ---------------------------------------------------------------------------
# SalaryBreakdown: engine output
# ---------------------------------------------------------------------------

class SalaryBreakdown(BaseModel):
    """
    Full CTC → take-home breakdown, every field rounded to 2 decimals.

    Invariants (on the unrounded values; rounded fields agree to ±0.01):
      monthly_deductions = pf + esi + professional_tax + income_tax
      in_hand_salary     = basic_salary + hra + special_allowance - monthly_deductions
      annual_deductions  = monthly_deductions * 12
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    # Annual
    ctc: float
    fixed_ctc: float
    variable_pay: float
    insurance: float

    # Monthly earnings
    basic_salary: float
    hra: float
    special_allowance: float

    # Monthly deductions
    pf: float
    esi: float
    professional_tax: float
    income_tax: float

    # Totals
    in_hand_salary: float        # Monthly
    monthly_deductions: float
    annual_deductions: float     # Annual


# ---------------------------------------------------------------------------
# Error response models: used by main.py exception handlers (cross-cutting)
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single field-level validation or business-rule error."""
    model_config = ConfigDict(extra="forbid")

    field: Optional[str] = None   # Dot-notation field path, e.g. "variable_pay"
    issue: str


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str                                      # VALIDATION_ERROR, NOT_FOUND, etc.
    message: str
    details: List[ErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response format for all payroll endpoints.

    Structure: {"error": {"code": "...", "message": "...", "details": [...]}}
    """
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


__all__ = [
    "CalculationRequest",
    "CityTaxRecord",
    "SalaryBreakdown",
    "ErrorDetail",
    "ErrorBody",
    "ErrorResponse",
]
