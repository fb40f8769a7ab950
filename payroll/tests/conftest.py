"""
Test configuration for the payroll tests.

sys.path is configured so 'from payroll...' resolves whether pytest is run
from the project root or from payroll/, installed or not.
"""
import sys
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock

import pytest

_package_dir = Path(__file__).parent.parent        # .../payroll/
_project_root = _package_dir.parent               # project root

if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from payroll.salary.professional_tax import (  # noqa: E402
    ProfessionalTaxResolver,
    build_professional_tax_resolver,
)
from payroll.salary.schemas import CityTaxRecord  # noqa: E402


@pytest.fixture
def static_resolver() -> ProfessionalTaxResolver:
    """Static table → default only; no store tier."""
    return build_professional_tax_resolver()


@pytest.fixture
def empty_store_lookup() -> AsyncMock:
    """Store tier that finds nothing for any city."""
    return AsyncMock(return_value=None)


@pytest.fixture
def store_lookup_factory():
    """Build an AsyncMock store lookup backed by {city: monthly_pt}."""
    def _factory(records: dict[str, float]) -> AsyncMock:
        async def _lookup(city: str) -> Optional[CityTaxRecord]:
            if city not in records:
                return None
            return CityTaxRecord(city=city, professional_tax=records[city])

        return AsyncMock(side_effect=_lookup)

    return _factory
