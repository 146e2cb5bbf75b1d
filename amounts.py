# amounts.py
# How much of something a trade should move. The ledger resolves each
# variant explicitly instead of guessing what a bare number means.
import math
from dataclasses import dataclass

from exceptions import InvalidAmount


@dataclass(frozen=True)
class Dollars:
    amount: float


@dataclass(frozen=True)
class Fraction:
    fraction: float   # share of cash (buy/short) or of the position (sell/cover)


@dataclass(frozen=True)
class Units:
    units: float


def validate(spec):
    """Reject zero, negative, non-finite and out-of-range amounts."""
    if isinstance(spec, Dollars):
        value = spec.amount
    elif isinstance(spec, Fraction):
        value = spec.fraction
    elif isinstance(spec, Units):
        value = spec.units
    else:
        raise InvalidAmount(f"Unsupported amount: {spec!r}")

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAmount(f"Amount must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise InvalidAmount(f"Amount must be positive, got {value!r}")
    if isinstance(spec, Fraction) and value > 1.0:
        raise InvalidAmount(f"Fraction cannot exceed 1.0, got {value!r}")
    return spec
