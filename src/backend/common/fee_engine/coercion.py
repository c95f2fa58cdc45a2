from __future__ import annotations

import logging
import math
from decimal import MAX_EMAX, MAX_PREC, MIN_EMIN, Context, Decimal, InvalidOperation
from typing import Any, Union

logger = logging.getLogger(__name__)

# Values a rule variable may hold. Anything else still evaluates, but only these coerce to a non-zero amount.
Scalar = Union[Decimal, int, float, str, bool, None]

ZERO = Decimal("0")

# Addition, subtraction, multiplication and negation never round under this context.
EXACT_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)


def to_decimal(value: Scalar) -> Decimal:
    """Coerce a scalar into the canonical Decimal used for every amount.

    Integers and decimal strings are exact. Floats go through their shortest
    round-trip repr, so `0.1` becomes `Decimal("0.1")` and not the binary
    expansion. Unsupported kinds, unparsable strings and non-finite values
    coerce to zero.
    """
    if isinstance(value, Decimal):
        if value.is_finite():
            return value
        return _fallback(value)
    # bool is an int subclass; treat it as unsupported rather than 0/1.
    if isinstance(value, bool):
        return _fallback(value)
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return _fallback(value)
        return Decimal(repr(value))
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return _fallback(value)
        if not parsed.is_finite():
            return _fallback(value)
        return parsed
    return _fallback(value)


def _fallback(value: Any) -> Decimal:
    logger.debug("coercing %r (%s) to zero", value, type(value).__name__)
    return ZERO
