"""
Module: bullion_kernel.db.types
Responsibility: Decimal coercion and the sanctioned rounding helpers
    for metal weights, cash amounts and conversion rates.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the ledger.  Every amount is a Decimal.
    - round_weight() / round_cash() / round_rate() are the ONLY rounding
      functions used for ledger values.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

WEIGHT_DECIMAL_PLACES = 3
CASH_DECIMAL_PLACES = 2
RATE_DECIMAL_PLACES = 4
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: object, field: str = "value") -> Decimal:
    """
    Coerce an int, str or Decimal into a Decimal.

    Floats are rejected: a float has already lost the precision a weight or
    amount needs.

    Raises:
        TypeError: If value is a float or an unsupported type.
        ValueError: If value is not a finite number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"{field} must be Decimal, int or str, not {type(value).__name__}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"{field} is not a number: {value!r}") from e
    else:
        raise TypeError(f"{field} must be Decimal, int or str, not {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"{field} must be finite: {value!r}")
    return result


def _quantize(value: Decimal, places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=DEFAULT_ROUNDING)


def round_weight(value: Decimal, places: int = WEIGHT_DECIMAL_PLACES) -> Decimal:
    return _quantize(value, places)


def round_cash(value: Decimal, places: int = CASH_DECIMAL_PLACES) -> Decimal:
    return _quantize(value, places)


def round_rate(value: Decimal, places: int = RATE_DECIMAL_PLACES) -> Decimal:
    return _quantize(value, places)
