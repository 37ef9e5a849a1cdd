"""
Module: billing_kernel.db.types
Responsibility: Annotated type aliases and the rounding helpers for monetary
    values.  Centralizes precision and rounding so that every model, engine
    and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and the engines.  MUST NOT import from any of those.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for values
      exposed on a statement (2 places, ROUND_HALF_UP).
    - No floats for money.  All monetary amounts use Decimal.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any

from sqlalchemy import Numeric


# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Tax and hourly rates: 38 digits total, 18 decimal places
Rate = Annotated[Decimal, Numeric(38, 18)]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    This is the ONLY sanctioned rounding function for statement figures.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "0"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """
    Coerce a loosely-typed stored value into a Decimal.

    None, empty strings, and non-numeric or non-finite values resolve to
    ``default``.  Floats go through ``str()`` so their shortest repr is
    used rather than their binary expansion.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    return result if result.is_finite() else default
