"""
models/salary_calculation.py: SQLAlchemy ORM model for calculation history.

Table: salary_calculations
Storage strategy: request and breakdown as JSONB blobs.
Salary figures live only in the blobs, never in indexed columns or filters.
The blobs are bound parameters, which the engine keeps out of SQL logs
(hide_parameters=True in database.py).
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from payroll.database import Base


class SalaryCalculationORM(Base):
    """
    One CTC → take-home calculation.

    request_data: CalculationRequest (ctc, city, variable_pay, insurance).
    breakdown_data: SalaryBreakdown exactly as returned to the caller.
    """
    __tablename__ = "salary_calculations"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        comment="Caller-supplied user id (X-User-Id header); NULL for anonymous",
    )
    city: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Denormalized for analytics without parsing JSONB",
    )
    request_data: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
    )
    breakdown_data: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        comment="Full SalaryBreakdown serialized as JSONB",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
