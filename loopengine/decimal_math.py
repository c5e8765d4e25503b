"""Exact decimal helpers shared by every engine module; no I/O."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    ROUND_HALF_UP,
    Decimal,
    InvalidOperation,
    localcontext,
)
from typing import Iterator, Union

from .errors import InvalidAmountFormat

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

# 50 significant digits keeps well over 18 fractional digits for any
# realistic on-chain amount (u128 is 39 digits).
PRECISION = 50

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)


@contextmanager
def engine_context() -> Iterator[None]:
    """Run a block under the engine's local decimal context."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        yield


def to_decimal(value: Number | None) -> Decimal:
    """Convert user or wire input to ``Decimal``.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion. ``None`` and blank strings read as zero, the
    way an empty input field does.

    Raises:
        InvalidAmountFormat: the value is not a finite number.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise InvalidAmountFormat(f"Invalid amount format: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace("_", "")
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except InvalidOperation as e:
            raise InvalidAmountFormat(f"Invalid amount format: {value!r}") from e
    else:
        raise InvalidAmountFormat(f"Invalid amount format: {value!r}")

    if not result.is_finite():
        raise InvalidAmountFormat(f"Invalid amount format: {value!r}")
    return result


def shift(value: Number, exponent: int) -> Decimal:
    """Return ``value * 10**exponent`` without rounding."""
    with engine_context():
        return to_decimal(value).scaleb(exponent)


def to_human(base_units: Number, decimals: int) -> Decimal:
    """Smallest-unit amount → human units (``1e6`` with 6 decimals → ``1``)."""
    return shift(base_units, -decimals)


def to_base_units(human: Number, decimals: int) -> Decimal:
    """Human units → smallest-unit amount, not rounded."""
    return shift(human, decimals)


def dmin(a: Decimal, b: Decimal) -> Decimal:
    return a if a <= b else b


def dmax(a: Decimal, b: Decimal) -> Decimal:
    return a if a >= b else b


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return dmax(low, dmin(value, high))


def safe_div(numerator: Decimal, denominator: Decimal, fallback: Decimal = ZERO) -> Decimal:
    """Divide, returning ``fallback`` when the denominator is zero."""
    if denominator == 0:
        logger.debug("Guarded division by zero (numerator=%s)", numerator)
        return fallback
    with engine_context():
        return numerator / denominator


def floor_units(value: Decimal) -> Decimal:
    """Round down to a whole number of base units."""
    return value.to_integral_value(rounding=ROUND_FLOOR)


def ceil_units(value: Decimal) -> Decimal:
    """Round up to a whole number of base units."""
    return value.to_integral_value(rounding=ROUND_CEILING)


def round_places(value: Decimal, places: int, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Final display rounding to ``places`` fractional digits."""
    with engine_context():
        return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)
