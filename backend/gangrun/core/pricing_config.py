"""
GangRun Pricing Configuration

Pricing constants and money helpers shared by the catalog resolver,
the configuration validator and the price calculator.

All configuration values are loaded from Settings (environment variables).
See backend/gangrun/core/settings.py for configuration options.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from gangrun.core.settings import settings


# ============================================================================
# ROUNDING - Loaded from Settings
# ============================================================================

CURRENCY_PLACES: int = settings.CURRENCY_DECIMAL_PLACES
UNIT_PRICE_PLACES: int = settings.UNIT_PRICE_DECIMAL_PLACES


# ============================================================================
# CUSTOM VALUE RULES - Loaded from Settings
# ============================================================================

CUSTOM_QUANTITY_INCREMENT_THRESHOLD: int = settings.CUSTOM_QUANTITY_INCREMENT_THRESHOLD
CUSTOM_QUANTITY_INCREMENT: int = settings.CUSTOM_QUANTITY_INCREMENT
CUSTOM_SIZE_INCREMENT: Decimal = settings.custom_size_increment


# ============================================================================
# PAPER & BROKER RULES - Loaded from Settings
# ============================================================================

EXCEPTION_PAPER_DOUBLE_SIDED_MULTIPLIER: Decimal = settings.exception_paper_multiplier
BROKER_DEFAULT_DISCOUNT_KEY: str = settings.BROKER_DEFAULT_DISCOUNT_KEY

NO_COATING_NAME = "No Coating"

# Listed quantities at or above this always print-price at their displayed value
EXACT_QUANTITY_THRESHOLD = 5000

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Convert DB numerics, floats and strings to Decimal without float noise"""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def round_currency(amount: Decimal, places: Optional[int] = None) -> Decimal:
    """Round half-up to currency precision. Only ever applied to final figures."""
    return amount.quantize(_quantum(CURRENCY_PLACES if places is None else places), rounding=ROUND_HALF_UP)


def round_unit_price(amount: Decimal) -> Decimal:
    return amount.quantize(_quantum(UNIT_PRICE_PLACES), rounding=ROUND_HALF_UP)


def is_on_increment(value: Decimal, increment: Decimal) -> bool:
    """True when value is a whole multiple of increment (0.25" grid, 5000-piece steps)"""
    if increment <= 0:
        return True
    return value % increment == 0


def custom_quantity_follows_increment(quantity: int) -> bool:
    """
    Custom quantities above the threshold must land on the increment
    (55000 and 60000 are fine, 52500 is not).
    """
    if quantity <= CUSTOM_QUANTITY_INCREMENT_THRESHOLD:
        return True
    return quantity % CUSTOM_QUANTITY_INCREMENT == 0


def percent_to_rate(percent: Any) -> Decimal:
    """12.5 -> 0.125"""
    return to_decimal(percent) / HUNDRED
