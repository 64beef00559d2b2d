"""FLYING HORSE — Cent quantisation for money outputs."""
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

CENT = Decimal("0.01")


def _dec(value: float) -> Decimal:
    # str() gives the shortest repr, so 0.6 * 1.5 is treated as 0.90 not 0.8999...
    return Decimal(str(value))


def to_cents(value: float) -> float:
    """Round half-up to 2 decimals."""
    return float(_dec(value).quantize(CENT, rounding=ROUND_HALF_UP))


def floor_cents(amount: float, multiplier: float) -> float:
    """Floor ``amount × multiplier`` to the cent."""
    product = _dec(amount) * _dec(multiplier)
    return float(product.quantize(CENT, rounding=ROUND_DOWN))
