"""
Salary engine test suite.

All expected values hand-computed from first principles (see per-case comments).
Monetary assertions use pytest.approx(abs=0.01) on the rounded output fields.

Groups:
  1. Named constant verification: exact equality
  2. Component unit tests (allocation, EPF, ESI, HRA, income tax)
  3. Parametrised end-to-end breakdowns
  4. Invariants across a grid of inputs
  5. Invalid input
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, getcontext

import pytest

from payroll.salary.errors import InvalidInputError
from payroll.salary.salary_engine import (
    BASIC_RATIO, HRA_RATIO, SPECIAL_ALLOWANCE_RATIO,
    EPF_RATE, EPF_WAGE_CEILING, EPF_MAX_MONTHLY,
    ESI_RATE, ESI_GROSS_THRESHOLD,
    METRO_CITIES, HRA_METRO_RATE, HRA_NON_METRO_RATE,
    STANDARD_DEDUCTION, INCOME_TAX_SLABS,
    allocate_ctc, build_breakdown, calculate_epf, calculate_esi,
    calculate_hra_exemption, calculate_income_tax, calculate_salary,
    calculate_taxable_income, hra_exemption_rate, is_metro_city,
)
from payroll.salary.schemas import CalculationRequest


# ===========================================================================
# TEST GROUP 1: Named constants
# ===========================================================================

def test_allocation_ratios_sum_to_one() -> None:
    assert BASIC_RATIO == Decimal("0.50")
    assert HRA_RATIO == Decimal("0.40")
    assert SPECIAL_ALLOWANCE_RATIO == Decimal("0.10")
    assert BASIC_RATIO + HRA_RATIO + SPECIAL_ALLOWANCE_RATIO == 1


def test_statutory_constants() -> None:
    assert EPF_RATE == Decimal("0.12")
    assert EPF_WAGE_CEILING == 15_000
    assert EPF_MAX_MONTHLY == 1_800
    assert ESI_RATE == Decimal("0.0075")
    assert ESI_GROSS_THRESHOLD == 21_000
    assert STANDARD_DEDUCTION == 50_000


def test_metro_set_and_rates() -> None:
    assert METRO_CITIES == {"Mumbai", "Delhi", "Kolkata", "Chennai"}
    assert HRA_METRO_RATE == Decimal("0.50")
    assert HRA_NON_METRO_RATE == Decimal("0.40")


def test_income_tax_slab_ceilings() -> None:
    ceilings = [c for c, _ in INCOME_TAX_SLABS]
    assert ceilings[:-1] == [300_000, 700_000, 1_000_000, 1_200_000, 1_500_000]
    assert ceilings[-1] == Decimal("Infinity")


# ===========================================================================
# TEST GROUP 2: Components
# ===========================================================================

def test_allocate_ctc_splits_fixed_ctc() -> None:
    allocation = allocate_ctc(1_200_000, variable_pay=150_000, insurance=50_000)
    assert allocation.fixed_ctc == 1_000_000
    assert allocation.basic_annual == 500_000
    assert allocation.hra_annual == 400_000
    assert allocation.special_allowance_annual == 100_000


def test_allocate_ctc_monthly_figures_are_unrounded() -> None:
    allocation = allocate_ctc(1_000_000)
    # 500000 / 12 has no finite decimal expansion: must not be pre-rounded
    assert allocation.basic_monthly != Decimal("41666.67")
    assert abs(allocation.basic_monthly * 12 - 500_000) < Decimal("1e-18")
    assert float(allocation.gross_monthly) == pytest.approx(83_333.3333, abs=0.001)


def test_allocate_ctc_accepts_zero_fixed_ctc() -> None:
    allocation = allocate_ctc(100_000, variable_pay=60_000, insurance=40_000)
    assert allocation.fixed_ctc == 0
    assert allocation.gross_monthly == 0


@pytest.mark.parametrize(
    "basic, expected",
    [
        (0, 0),
        (10_000, 1_200),
        (14_999.99, 1_799.9988),
        (15_000, 1_800),      # exactly at the wage ceiling
        (15_000.01, 1_800),   # capped
        (125_000, 1_800),
    ],
)
def test_epf(basic: float, expected: float) -> None:
    assert float(calculate_epf(basic)) == pytest.approx(expected, abs=1e-6)


def test_epf_monotonic_and_capped() -> None:
    previous = Decimal("0")
    for basic in range(0, 40_001, 500):
        pf = calculate_epf(basic)
        assert pf >= previous
        assert pf <= EPF_MAX_MONTHLY
        previous = pf


def test_esi_applies_at_threshold() -> None:
    # gross == 21000 → eligible: 0.75% of 21000 = 157.50
    assert calculate_esi(Decimal("21000")) == Decimal("157.5")


def test_esi_zero_just_above_threshold() -> None:
    # All-or-nothing: one paisa over the threshold removes ESI entirely
    assert calculate_esi(Decimal("21000.01")) == 0


def test_esi_below_threshold() -> None:
    assert calculate_esi(20_000) == Decimal("150")
    assert calculate_esi(0) == 0


@pytest.mark.parametrize("city", ["Mumbai", "Delhi", "Kolkata", "Chennai"])
def test_metro_cities_use_fifty_percent(city: str) -> None:
    assert is_metro_city(city)
    assert hra_exemption_rate(city) == Decimal("0.50")


@pytest.mark.parametrize("city", ["Bangalore", "Pune", "mumbai", "DELHI", "Mumbai "])
def test_metro_match_is_exact_and_case_sensitive(city: str) -> None:
    assert not is_metro_city(city)
    assert hra_exemption_rate(city) == Decimal("0.40")


def test_hra_exemption_metro_caps_at_half_basic() -> None:
    # min(400000, 50% × 500000 = 250000) = 250000
    assert calculate_hra_exemption(400_000, 500_000, "Mumbai") == 250_000


def test_hra_exemption_non_metro_caps_at_forty_percent_basic() -> None:
    # min(400000, 40% × 500000 = 200000) = 200000
    assert calculate_hra_exemption(400_000, 500_000, "Bangalore") == 200_000


def test_hra_exemption_never_exceeds_hra() -> None:
    # HRA smaller than the basic-based cap → fully exempt, taxable HRA = 0
    assert calculate_hra_exemption(100_000, 500_000, "Delhi") == 100_000


@pytest.mark.parametrize(
    "income, expected",
    [
        (0, 0),
        (300_000, 0),
        (300_000.01, 0.0005),
        (500_000, 10_000),
        (700_000, 20_000),
        (700_001, 20_000.10),
        (1_000_000, 50_000),
        (1_200_000, 80_000),
        (1_500_000, 140_000),
        (1_600_000, 170_000),
        (2_326_000, 387_800),
    ],
)
def test_income_tax_brackets(income: float, expected: float) -> None:
    assert float(calculate_income_tax(income)) == pytest.approx(expected, abs=1e-6)


@pytest.mark.parametrize("boundary", [300_000, 700_000, 1_000_000, 1_200_000, 1_500_000])
def test_income_tax_continuous_at_boundaries(boundary: int) -> None:
    at = calculate_income_tax(boundary)
    just_above = calculate_income_tax(Decimal(boundary) + Decimal("0.01"))
    assert Decimal("0") <= just_above - at <= Decimal("0.01")


def test_income_tax_negative_income_is_zero() -> None:
    assert calculate_income_tax(-10_000) == 0


def test_taxable_income_floored_at_zero() -> None:
    allocation = allocate_ctc(60_000)
    pf = calculate_epf(allocation.basic_monthly)
    esi = calculate_esi(allocation.gross_monthly)
    # 30000 + (24000 − 12000) + 6000 = 48000 < 50000 std deduction → 0
    assert calculate_taxable_income(allocation, "Pune", pf, esi, 200) == 0


def test_taxable_income_delhi_ten_lakh() -> None:
    allocation = allocate_ctc(1_000_000)
    # 500000 + (400000 − 250000) + 100000 − 50000 − 21600 − 0 − 0 = 678400
    assert calculate_taxable_income(allocation, "Delhi", 1_800, 0, 0) == 678_400


# ===========================================================================
# TEST GROUP 3: End-to-end breakdowns
# ===========================================================================

@dataclass
class SalaryCase:
    description: str
    request: dict
    professional_tax: float
    expected: dict


SALARY_CASES: list[SalaryCase] = [
    SalaryCase(
        description="delhi_10L_no_professional_tax",
        request=dict(ctc=1_000_000, city="Delhi"),
        professional_tax=0,
        # basic=41666.67 hra=33333.33 special=8333.33, pf capped 1800, esi 0 (gross>21000)
        # taxable = 500000+150000+100000-50000-21600 = 678400 → tax 18920 → 1576.67/mo
        # deductions = 1800+1576.67 = 3376.67, in-hand = 83333.33-3376.67 = 79956.67
        expected=dict(
            ctc=1_000_000, fixed_ctc=1_000_000, variable_pay=0, insurance=0,
            basic_salary=41_666.67, hra=33_333.33, special_allowance=8_333.33,
            pf=1_800, esi=0, professional_tax=0, income_tax=1_576.67,
            monthly_deductions=3_376.67, in_hand_salary=79_956.67, annual_deductions=40_520,
        ),
    ),
    SalaryCase(
        description="mumbai_10L_metro_with_pt",
        request=dict(ctc=1_000_000, city="Mumbai"),
        professional_tax=200,
        # taxable = 750000-50000-21600-2400 = 676000 → tax 18800 → 1566.67/mo
        expected=dict(
            pf=1_800, esi=0, professional_tax=200, income_tax=1_566.67,
            monthly_deductions=3_566.67, in_hand_salary=79_766.67, annual_deductions=42_800,
        ),
    ),
    SalaryCase(
        description="bangalore_10L_non_metro",
        request=dict(ctc=1_000_000, city="Bangalore"),
        professional_tax=200,
        # HRA exemption 40% → 200000, taxable HRA 200000
        # taxable = 800000-50000-21600-2400 = 726000 → 20000+2600 = 22600 → 1883.33/mo
        expected=dict(
            income_tax=1_883.33, monthly_deductions=3_883.33,
            in_hand_salary=79_450, annual_deductions=46_600,
        ),
    ),
    SalaryCase(
        description="pune_2_4L_esi_eligible",
        request=dict(ctc=240_000, city="Pune"),
        professional_tax=200,
        # basic=10000 hra=8000 special=2000, gross=20000 <= 21000 → esi=150
        # pf=1200, taxable = 120000+48000+24000-50000-14400-1800-2400 = 123400 → tax 0
        expected=dict(
            basic_salary=10_000, hra=8_000, special_allowance=2_000,
            pf=1_200, esi=150, professional_tax=200, income_tax=0,
            monthly_deductions=1_550, in_hand_salary=18_450, annual_deductions=18_600,
        ),
    ),
    SalaryCase(
        description="delhi_gross_exactly_at_esi_threshold",
        request=dict(ctc=252_000, city="Delhi"),
        professional_tax=0,
        # basic=10500 hra=8400 special=2100, gross=21000 → esi=157.50, pf=1260
        expected=dict(
            pf=1_260, esi=157.5, income_tax=0,
            monthly_deductions=1_417.5, in_hand_salary=19_582.5, annual_deductions=17_010,
        ),
    ),
    SalaryCase(
        description="kolkata_6L_reduced_pt",
        request=dict(ctc=600_000, city="Kolkata"),
        professional_tax=110,
        # basic=25000 hra=20000 special=5000; metro exemption min(240000,150000)=150000
        # taxable = 300000+90000+60000-50000-21600-1320 = 377080 → tax 3854 → 321.17/mo
        expected=dict(
            pf=1_800, esi=0, professional_tax=110, income_tax=321.17,
            monthly_deductions=2_231.17, in_hand_salary=47_768.83, annual_deductions=26_774,
        ),
    ),
    SalaryCase(
        description="variable_pay_and_insurance_excluded_from_monthly",
        request=dict(ctc=1_200_000, city="Delhi", variable_pay=150_000, insurance=50_000),
        professional_tax=0,
        # fixed CTC = 1000000 → identical monthly figures to delhi_10L
        expected=dict(
            ctc=1_200_000, fixed_ctc=1_000_000, variable_pay=150_000, insurance=50_000,
            basic_salary=41_666.67, income_tax=1_576.67, in_hand_salary=79_956.67,
        ),
    ),
    SalaryCase(
        description="hyderabad_30L_top_bracket",
        request=dict(ctc=3_000_000, city="Hyderabad"),
        professional_tax=200,
        # basic=125000 hra=100000 special=25000; non-metro exemption 600000
        # taxable = 1500000+600000+300000-50000-21600-2400 = 2326000
        # tax = 140000 + 30% × 826000 = 387800 → 32316.67/mo
        expected=dict(
            basic_salary=125_000, hra=100_000, special_allowance=25_000,
            pf=1_800, esi=0, income_tax=32_316.67,
            monthly_deductions=34_316.67, in_hand_salary=215_683.33, annual_deductions=411_800,
        ),
    ),
    SalaryCase(
        description="zero_fixed_ctc_only_pt_deducted",
        request=dict(ctc=100_000, city="Chennai", variable_pay=100_000),
        professional_tax=200,
        # Nothing to pay out, PT still levied; taxable income floored at 0
        expected=dict(
            fixed_ctc=0, basic_salary=0, pf=0, esi=0, income_tax=0,
            monthly_deductions=200, in_hand_salary=-200, annual_deductions=2_400,
        ),
    ),
]


@pytest.mark.parametrize(
    "case",
    [pytest.param(c, id=c.description) for c in SALARY_CASES],
)
def test_build_breakdown(case: SalaryCase) -> None:
    request = CalculationRequest(**case.request)
    allocation = allocate_ctc(request.ctc, request.variable_pay, request.insurance)
    breakdown = build_breakdown(request, allocation, case.professional_tax)

    actual = breakdown.model_dump()
    for field_name, expected in case.expected.items():
        assert actual[field_name] == pytest.approx(expected, abs=0.01), (
            f"{field_name}: expected {expected}, got {actual[field_name]}"
        )


@pytest.mark.asyncio
async def test_calculate_salary_delhi_uses_static_zero(static_resolver) -> None:
    breakdown = await calculate_salary(
        CalculationRequest(ctc=1_000_000, city="Delhi"), static_resolver,
    )
    assert breakdown.professional_tax == 0.0
    assert breakdown.pf == 1_800.0
    assert breakdown.esi == 0.0
    assert breakdown.basic_salary == 41_666.67
    assert breakdown.in_hand_salary == 79_956.67


@pytest.mark.asyncio
async def test_calculate_salary_mumbai(static_resolver) -> None:
    breakdown = await calculate_salary(
        CalculationRequest(ctc=1_000_000, city="Mumbai"), static_resolver,
    )
    assert breakdown.professional_tax == 200.0
    assert breakdown.income_tax == 1_566.67


@pytest.mark.asyncio
async def test_calculate_salary_unknown_city_defaults(static_resolver) -> None:
    # Non-metro rate and ₹200 default → same numbers as Bangalore
    breakdown = await calculate_salary(
        CalculationRequest(ctc=1_000_000, city="Springfield"), static_resolver,
    )
    assert breakdown.professional_tax == 200.0
    assert breakdown.in_hand_salary == 79_450.0


@pytest.mark.asyncio
async def test_calculate_salary_prefers_store_value(store_lookup_factory) -> None:
    from payroll.salary.professional_tax import build_professional_tax_resolver

    lookup = store_lookup_factory({"Delhi": 150})
    resolver = build_professional_tax_resolver(lookup)
    breakdown = await calculate_salary(CalculationRequest(ctc=1_000_000, city="Delhi"), resolver)

    assert breakdown.professional_tax == 150.0
    lookup.assert_awaited_once_with("Delhi")


@pytest.mark.asyncio
async def test_calculate_salary_is_idempotent(static_resolver) -> None:
    request = CalculationRequest(ctc=1_234_567.89, city="Kolkata", variable_pay=12_345, insurance=6_789)
    first = await calculate_salary(request, static_resolver)
    second = await calculate_salary(request, static_resolver)
    assert first.model_dump_json() == second.model_dump_json()


# ===========================================================================
# TEST GROUP 4: Invariants
# ===========================================================================

INVARIANT_INPUTS = [
    (ctc, city)
    for ctc in (150_000, 252_000, 480_000, 999_999.99, 1_750_000, 5_000_000)
    for city in ("Mumbai", "Delhi", "Kolkata", "Bangalore", "Nowhere")
]


@pytest.mark.asyncio
@pytest.mark.parametrize("ctc, city", INVARIANT_INPUTS)
async def test_breakdown_invariants(ctc: float, city: str, static_resolver) -> None:
    b = await calculate_salary(CalculationRequest(ctc=ctc, city=city), static_resolver)
    gross = b.basic_salary + b.hra + b.special_allowance

    # Each rounded field is within 0.005 of its exact value
    assert gross == pytest.approx(b.fixed_ctc / 12, abs=0.02)
    assert b.monthly_deductions == pytest.approx(
        b.pf + b.esi + b.professional_tax + b.income_tax, abs=0.03,
    )
    assert b.in_hand_salary == pytest.approx(gross - b.monthly_deductions, abs=0.03)
    assert b.annual_deductions == pytest.approx(b.monthly_deductions * 12, abs=0.07)
    assert 0 <= b.pf <= 1_800
    assert b.esi == 0 or gross <= 21_000.01


def test_two_decimal_rounding_on_every_field() -> None:
    request = CalculationRequest(ctc=1_234_567.891, city="Chennai", variable_pay=1_000.005)
    allocation = allocate_ctc(request.ctc, request.variable_pay, request.insurance)
    breakdown = build_breakdown(request, allocation, 200)
    for name, value in breakdown.model_dump().items():
        assert round(value, 2) == value, f"{name} not rounded to 2 decimals: {value}"


# ===========================================================================
# TEST GROUP 5: Invalid input
# ===========================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("ctc", [0, -1, -1_000_000])
async def test_non_positive_ctc_rejected(ctc: float, static_resolver) -> None:
    with pytest.raises(InvalidInputError):
        await calculate_salary(CalculationRequest(ctc=ctc, city="Mumbai"), static_resolver)


@pytest.mark.asyncio
async def test_carve_outs_exceeding_ctc_rejected(static_resolver) -> None:
    request = CalculationRequest(ctc=500_000, city="Mumbai", variable_pay=400_000, insurance=100_001)
    with pytest.raises(InvalidInputError):
        await calculate_salary(request, static_resolver)


@pytest.mark.asyncio
async def test_invalid_input_never_reaches_store(empty_store_lookup) -> None:
    from payroll.salary.professional_tax import build_professional_tax_resolver

    resolver = build_professional_tax_resolver(empty_store_lookup)
    with pytest.raises(InvalidInputError):
        await calculate_salary(CalculationRequest(ctc=0, city="Mumbai"), resolver)
    empty_store_lookup.assert_not_awaited()


def test_allocate_ctc_rejects_negative_components() -> None:
    with pytest.raises(InvalidInputError):
        allocate_ctc(1_000_000, variable_pay=-1)
    with pytest.raises(InvalidInputError):
        allocate_ctc(1_000_000, insurance=-1)


def test_invalid_input_error_is_value_error() -> None:
    assert issubclass(InvalidInputError, ValueError)


# ===========================================================================
# TEST GROUP 6: Very large amounts
# ===========================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "ctc",
    [Decimal("1e27"), Decimal("123456789012345678901234567.89"), Decimal("1e40")],
)
async def test_very_large_ctc_completes(ctc: Decimal, static_resolver) -> None:
    b = await calculate_salary(CalculationRequest(ctc=ctc, city="Pune"), static_resolver)

    assert b.ctc == pytest.approx(float(ctc), rel=1e-12)
    assert b.fixed_ctc == pytest.approx(float(ctc), rel=1e-12)
    assert b.pf == 1_800
    assert b.esi == 0
    assert b.professional_tax == 200
    # Non-metro HRA exemption is 20% of fixed CTC; top slab dominates the rest
    assert b.income_tax == pytest.approx(float(ctc) * 0.80 * 0.30 / 12, rel=1e-6)
    assert 0 < b.in_hand_salary < float(ctc) / 12


def test_large_breakdown_does_not_leak_precision() -> None:
    request = CalculationRequest(ctc=Decimal("1e27"), city="Pune")
    allocation = allocate_ctc(request.ctc)
    build_breakdown(request, allocation, 200)
    assert getcontext().prec == 28
