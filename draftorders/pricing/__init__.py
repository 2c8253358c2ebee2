# Pricing module
from draftorders.pricing.engine import GRADE_UPCHARGE, unit_price
from draftorders.pricing.resolver import PriceResolver

__all__ = ["GRADE_UPCHARGE", "PriceResolver", "unit_price"]
