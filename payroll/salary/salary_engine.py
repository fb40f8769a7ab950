"""
Salary Engine: Indian CTC → take-home breakdown.
Pure Python, zero I/O except the single professional-tax lookup.
Same input + same city-tax data → same output.

Pipeline (ORDER DETERMINES CORRECTNESS):
  1. allocate_ctc              fixed CTC → Basic 50% / HRA 40% / Special 10%, monthly
  2. calculate_epf             12% of monthly basic, basic capped at ₹15,000
  3. calculate_esi             0.75% of monthly gross, only if gross <= ₹21,000
  4. professional tax          ProfessionalTaxResolver (store → static table → ₹200)
  5. calculate_hra_exemption   min(HRA, 50%/40% of basic), annual
  6. calculate_taxable_income  taxable gross − std deduction − PF − ESI − PT, floored at 0
  7. calculate_income_tax      progressive slabs, annual → /12
  8. aggregate deductions and in-hand
  9. round every output field to 2 decimals: HERE and nowhere earlier

All intermediates are Decimal. Rounding earlier compounds error across
the dependent steps (PF/ESI/PT feed taxable income, which feeds tax).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, getcontext, localcontext
from typing import TYPE_CHECKING, Union

from payroll.salary.errors import InvalidInputError
from payroll.salary.schemas import CalculationRequest, SalaryBreakdown

if TYPE_CHECKING:
    from payroll.salary.professional_tax import ProfessionalTaxResolver

logger = logging.getLogger(__name__)

Money = Union[Decimal, int, float, str]

ZERO = Decimal("0")
MONTHS_PER_YEAR = 12

# ===========================================================================
# CTC ALLOCATION RATIOS (of fixed CTC)
# ===========================================================================

BASIC_RATIO              = Decimal("0.50")
HRA_RATIO                = Decimal("0.40")
SPECIAL_ALLOWANCE_RATIO  = Decimal("0.10")

# ===========================================================================
# EPF: employee contribution only
# ===========================================================================

EPF_RATE                 = Decimal("0.12")
EPF_WAGE_CEILING         = Decimal("15000")     # Monthly basic above this is ignored
EPF_MAX_MONTHLY          = EPF_RATE * EPF_WAGE_CEILING   # ₹1,800

# ===========================================================================
# ESI: employee contribution only, all-or-nothing eligibility
# ===========================================================================

ESI_RATE                 = Decimal("0.0075")
ESI_GROSS_THRESHOLD      = Decimal("21000")     # Monthly gross; inclusive

# ===========================================================================
# HRA EXEMPTION: two-way minimum (rent-paid leg intentionally absent)
# ===========================================================================

METRO_CITIES: frozenset[str] = frozenset({"Mumbai", "Delhi", "Kolkata", "Chennai"})
HRA_METRO_RATE           = Decimal("0.50")
HRA_NON_METRO_RATE       = Decimal("0.40")

# ===========================================================================
# INCOME TAX
# ===========================================================================

STANDARD_DEDUCTION       = Decimal("50000")

# list[tuple[ceiling, rate]]: upper bound of each bracket is inclusive.
# Cumulative tax at each ceiling: 0 / 20,000 / 50,000 / 80,000 / 1,40,000
INCOME_TAX_SLABS: list[tuple[Decimal, Decimal]] = [
    (Decimal("300000"),    Decimal("0.00")),   # 0–3L: 0%
    (Decimal("700000"),    Decimal("0.05")),   # 3–7L: 5%
    (Decimal("1000000"),   Decimal("0.10")),   # 7–10L: 10%
    (Decimal("1200000"),   Decimal("0.15")),   # 10–12L: 15%
    (Decimal("1500000"),   Decimal("0.20")),   # 12–15L: 20%
    (Decimal("Infinity"),  Decimal("0.30")),   # >15L: 30%
]

_CENT = Decimal("0.01")

# Digits carried past the integer part of the largest amount
_FRACTION_DIGITS = 12


# ===========================================================================
# INTERNAL HELPERS
# ===========================================================================

def _to_decimal(value: Money) -> Decimal:
    """Convert via str() so 0.1 becomes Decimal('0.1'), not its binary expansion."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _round2(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def _money_context(*amounts: Money):
    """
    Decimal context wide enough to carry every amount down to the paisa.

    The default 28-digit context cannot quantize amounts past ~1e25.
    """
    ctx = getcontext().copy()
    widest = max((_to_decimal(a).adjusted() for a in amounts), default=0)
    ctx.prec = max(ctx.prec, widest + 1 + _FRACTION_DIGITS)
    return localcontext(ctx)


# ===========================================================================
# STEP 1: CTC ALLOCATION
# ===========================================================================

@dataclass(frozen=True)
class CtcAllocation:
    """Fixed CTC split into annual components. Monthly figures are derived, unrounded."""
    fixed_ctc: Decimal
    basic_annual: Decimal
    hra_annual: Decimal
    special_allowance_annual: Decimal

    @property
    def basic_monthly(self) -> Decimal:
        return self.basic_annual / MONTHS_PER_YEAR

    @property
    def hra_monthly(self) -> Decimal:
        return self.hra_annual / MONTHS_PER_YEAR

    @property
    def special_allowance_monthly(self) -> Decimal:
        return self.special_allowance_annual / MONTHS_PER_YEAR

    @property
    def gross_monthly(self) -> Decimal:
        return self.basic_monthly + self.hra_monthly + self.special_allowance_monthly


def allocate_ctc(
    ctc: Money,
    variable_pay: Money = ZERO,
    insurance: Money = ZERO,
) -> CtcAllocation:
    """
    fixed_ctc = ctc − variable_pay − insurance, then split 50/40/10.

    Raises:
        InvalidInputError: a component is negative or fixed_ctc < 0.
    """
    ctc = _to_decimal(ctc)
    variable_pay = _to_decimal(variable_pay)
    insurance = _to_decimal(insurance)

    if variable_pay < 0 or insurance < 0:
        raise InvalidInputError("variable_pay and insurance must not be negative")

    fixed_ctc = ctc - variable_pay - insurance
    if fixed_ctc < 0:
        raise InvalidInputError(
            "variable_pay + insurance cannot exceed ctc (fixed CTC would be negative)"
        )

    return CtcAllocation(
        fixed_ctc=fixed_ctc,
        basic_annual=fixed_ctc * BASIC_RATIO,
        hra_annual=fixed_ctc * HRA_RATIO,
        special_allowance_annual=fixed_ctc * SPECIAL_ALLOWANCE_RATIO,
    )


# ===========================================================================
# STEPS 2–3: EPF AND ESI (monthly)
# ===========================================================================

def calculate_epf(basic_monthly: Money) -> Decimal:
    """Employee EPF: 12% of monthly basic, basic capped at ₹15,000 → max ₹1,800."""
    basic = max(ZERO, _to_decimal(basic_monthly))
    return EPF_RATE * min(basic, EPF_WAGE_CEILING)


def calculate_esi(gross_monthly: Money) -> Decimal:
    """
    Employee ESI: 0.75% of monthly gross when gross <= ₹21,000, else 0.

    The cliff at the threshold is the statutory eligibility rule: do NOT smooth it.
    """
    gross = max(ZERO, _to_decimal(gross_monthly))
    if gross <= ESI_GROSS_THRESHOLD:
        return gross * ESI_RATE
    return ZERO


# ===========================================================================
# STEP 5: HRA EXEMPTION (annual)
# ===========================================================================

def is_metro_city(city: str) -> bool:
    """Exact, case-sensitive membership in METRO_CITIES."""
    return city in METRO_CITIES


def hra_exemption_rate(city: str) -> Decimal:
    return HRA_METRO_RATE if is_metro_city(city) else HRA_NON_METRO_RATE


def calculate_hra_exemption(hra_annual: Money, basic_annual: Money, city: str) -> Decimal:
    """
    Simplified Section 10(13A) exemption: min(HRA received, rate × basic).

    Component 1: HRA received
    Component 2: 50% of basic (metro) or 40% (non-metro)
    The "rent paid − 10% of basic" leg is NOT applied: no rent is captured.
    """
    hra = max(ZERO, _to_decimal(hra_annual))
    basic = max(ZERO, _to_decimal(basic_annual))
    return min(hra, basic * hra_exemption_rate(city))


# ===========================================================================
# STEPS 6–7: TAXABLE INCOME AND INCOME TAX (annual)
# ===========================================================================

def calculate_taxable_income(
    allocation: CtcAllocation,
    city: str,
    pf_monthly: Money,
    esi_monthly: Money,
    professional_tax_monthly: Money,
) -> Decimal:
    """
    basic + taxable HRA + special − ₹50,000 − PF − ESI − PT (all annual), never negative.
    """
    hra_exemption = calculate_hra_exemption(
        allocation.hra_annual, allocation.basic_annual, city,
    )
    taxable_hra = allocation.hra_annual - hra_exemption

    gross_taxable = allocation.basic_annual + taxable_hra + allocation.special_allowance_annual
    deductions = (
        STANDARD_DEDUCTION
        + _to_decimal(pf_monthly) * MONTHS_PER_YEAR
        + _to_decimal(esi_monthly) * MONTHS_PER_YEAR
        + _to_decimal(professional_tax_monthly) * MONTHS_PER_YEAR
    )
    return max(ZERO, gross_taxable - deductions)


def calculate_income_tax(taxable_income: Money) -> Decimal:
    """
    Progressive slab tax on annual taxable income.
    Accumulates tax bracket by bracket, stops once income <= previous ceiling.
    """
    income = max(ZERO, _to_decimal(taxable_income))
    tax = ZERO
    prev_ceiling = ZERO
    for ceiling, rate in INCOME_TAX_SLABS:
        if income <= prev_ceiling:
            break
        tax += (min(income, ceiling) - prev_ceiling) * rate
        prev_ceiling = ceiling
    return tax


# ===========================================================================
# STEPS 2–9: BREAKDOWN (sync, pure)
# ===========================================================================

def build_breakdown(
    request: CalculationRequest,
    allocation: CtcAllocation,
    professional_tax: Money,
) -> SalaryBreakdown:
    """
    Everything after the professional-tax lookup. No I/O.

    `professional_tax` is the resolved monthly amount for request.city.
    """
    professional_tax = _to_decimal(professional_tax)

    with _money_context(request.ctc, allocation.fixed_ctc, professional_tax):
        pf = calculate_epf(allocation.basic_monthly)
        gross_monthly = allocation.gross_monthly
        esi = calculate_esi(gross_monthly)

        taxable_income = calculate_taxable_income(
            allocation, request.city, pf, esi, professional_tax,
        )
        income_tax_annual = calculate_income_tax(taxable_income)
        income_tax = income_tax_annual / MONTHS_PER_YEAR

        monthly_deductions = pf + esi + professional_tax + income_tax
        in_hand_salary = gross_monthly - monthly_deductions
        annual_deductions = monthly_deductions * MONTHS_PER_YEAR

        # Step 9: the only rounding in the pipeline
        return SalaryBreakdown(
            ctc=_round2(_to_decimal(request.ctc)),
            fixed_ctc=_round2(allocation.fixed_ctc),
            variable_pay=_round2(_to_decimal(request.variable_pay)),
            insurance=_round2(_to_decimal(request.insurance)),
            basic_salary=_round2(allocation.basic_monthly),
            hra=_round2(allocation.hra_monthly),
            special_allowance=_round2(allocation.special_allowance_monthly),
            pf=_round2(pf),
            esi=_round2(esi),
            professional_tax=_round2(professional_tax),
            income_tax=_round2(income_tax),
            in_hand_salary=_round2(in_hand_salary),
            monthly_deductions=_round2(monthly_deductions),
            annual_deductions=_round2(annual_deductions),
        )


# ===========================================================================
# ORCHESTRATOR: public API
# ===========================================================================

async def calculate_salary(
    request: CalculationRequest,
    resolver: ProfessionalTaxResolver,
) -> SalaryBreakdown:
    """
    Run the full pipeline for one request.

    Validation happens before the lookup so invalid input never touches the
    city-tax store. The resolver is awaited exactly once and never raises for
    lookup failures (it falls back instead).

    Raises:
        InvalidInputError: ctc <= 0, a negative component, or fixed CTC < 0.
    """
    if _to_decimal(request.ctc) <= 0:
        raise InvalidInputError("ctc must be greater than 0")

    with _money_context(request.ctc, request.variable_pay, request.insurance):
        allocation = allocate_ctc(request.ctc, request.variable_pay, request.insurance)
    professional_tax = await resolver.resolve(request.city, allocation.gross_monthly)

    breakdown = build_breakdown(request, allocation, professional_tax)
    logger.debug("Salary breakdown computed city=%s", request.city)
    return breakdown
