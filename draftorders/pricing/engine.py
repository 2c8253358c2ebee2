"""Grade and cording price model.

The catalog stores every variant at its F-grade price. A unit price is
derived by scaling that down to grade A, applying the grade upcharge, then
the cording surcharge:

    A = F / 2.06
    unit = A * (1 + GRADE_UPCHARGE[grade]) * (1.10 if corded else 1)

Rounding happens once, at the end, to whole cents (half away from zero).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

CENT = Decimal("0.01")

# Catalog (F-grade) price / A-grade price
F_TO_A_DIVISOR = Decimal("2.06")

DEFAULT_GRADE = "A"

GRADE_UPCHARGE: dict[str, Decimal] = {
    "A": Decimal("0"),
    "B": Decimal("0"),
    "C": Decimal("0.08"),
    "D": Decimal("0.32"),
    "E": Decimal("0.63"),
    "F": Decimal("1.06"),
}

CORDING_SURCHARGE = Decimal("1.10")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a price to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_cents(value: Decimal) -> Decimal:
    """Round to 2 decimal places, halves away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_grade(grade: Optional[str]) -> str:
    """Uppercase a grade letter; empty or missing means grade A."""
    return (grade or DEFAULT_GRADE).strip().upper() or DEFAULT_GRADE


def grade_upcharge(grade: Optional[str]) -> Decimal:
    """Fractional upcharge for a grade. Unknown grades carry no upcharge."""
    return GRADE_UPCHARGE.get(normalize_grade(grade), Decimal("0"))


def unit_price(base_price: Number, grade: Optional[str] = DEFAULT_GRADE, corded: bool = False) -> Decimal:
    """Compute the customer-facing unit price from a catalog (F-grade) price.

    Args:
        base_price: Catalog price in currency units
        grade: Grade letter A-F (case-insensitive)
        corded: Whether the cording surcharge applies

    Returns:
        Unit price rounded to cents
    """
    a_price = to_decimal(base_price) / F_TO_A_DIVISOR
    unit = a_price * (1 + grade_upcharge(grade))
    if corded:
        unit *= CORDING_SURCHARGE
    return round_cents(unit)
