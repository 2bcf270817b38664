"""Fixed-point helpers for token amounts."""

from __future__ import annotations

PRECISION_SCALER = 1_000_000_000
U64_MAX = 2**64 - 1

_PRECISE_ONE = 10**12
_ROUNDING_CORRECTION = _PRECISE_ONE // 2


def _require_u64(**values: int) -> None:
    for name, value in values.items():
        if not 0 <= value <= U64_MAX:
            raise ValueError(f"{name} must be an unsigned 64-bit integer, got {value}")


def abs_diff(a: int, b: int) -> int:
    """Absolute difference of two amounts."""
    _require_u64(a=a, b=b)
    return abs(a - b)


def percent_ratio(amount: int, total: int, collateral_amount: int) -> int:
    """Share of ``collateral_amount`` proportional to ``amount / total``, rounded."""
    _require_u64(amount=amount, total=total, collateral_amount=collateral_amount)
    if total == 0:
        return 0
    precise_amount = amount * _PRECISE_ONE
    precise_total = total * _PRECISE_ONE
    percentage = (precise_amount * _PRECISE_ONE + _ROUNDING_CORRECTION) // precise_total
    precise_collateral = collateral_amount * _PRECISE_ONE
    product = (precise_collateral * percentage + _ROUNDING_CORRECTION) // _PRECISE_ONE
    result = (product + _ROUNDING_CORRECTION) // _PRECISE_ONE
    return result & U64_MAX


def share_floor(amount: int, percent: int) -> int:
    """``amount * percent / PRECISION_SCALER`` rounded down."""
    _require_u64(amount=amount, percent=percent)
    return (percent * amount // PRECISION_SCALER) & U64_MAX