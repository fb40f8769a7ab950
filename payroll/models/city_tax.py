"""
models/city_tax.py: SQLAlchemy ORM model for per-city professional tax.

Table: city_tax_data
One row per city. `city` is matched exactly (case-sensitive) by the salary engine.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from payroll.database import Base


class CityTaxORM(Base):
    """
    ORM model for a city's monthly professional tax.

    Metro status is NOT stored: it is derived from the fixed metro set in
    the salary engine so the two can never disagree.
    """
    __tablename__ = "city_tax_data"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    city: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
        comment="City name, exact case: e.g. 'Mumbai'",
    )
    state: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    professional_tax: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Monthly professional tax in INR",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
