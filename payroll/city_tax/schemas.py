"""
schemas.py: city-tax admin request bodies.

Responses reuse CityTaxRecord from the salary schemas.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Article 276(2) caps professional tax at ₹2,500 per year
PROFESSIONAL_TAX_MAX_MONTHLY = 2500


class CityTaxCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    city: str = Field(
        ..., min_length=1, max_length=100,
        description="City name, exact case. The salary engine matches it case-sensitively.",
    )
    state: Optional[str] = Field(default=None, max_length=100)
    professional_tax: float = Field(
        ..., ge=0, le=PROFESSIONAL_TAX_MAX_MONTHLY,
        description="Monthly professional tax in INR.",
    )


class CityTaxUpdate(BaseModel):
    """Partial update: omitted fields are left unchanged."""
    model_config = ConfigDict(extra="forbid")

    state: Optional[str] = Field(default=None, max_length=100)
    professional_tax: Optional[float] = Field(
        default=None, ge=0, le=PROFESSIONAL_TAX_MAX_MONTHLY,
    )
