"""Integer-safe amount helpers."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[int, float, str, Decimal]

BPS_DENOMINATOR = 10_000


def slippage_to_bps(slippage_percent: Number) -> int:
    """Convert a percentage (``5``, ``0.5``) to basis points, rounding half up."""
    try:
        percent = Decimal(str(slippage_percent))
    except InvalidOperation as exc:
        raise ValueError(f"invalid slippage: {slippage_percent!r}") from exc
    if not percent.is_finite():
        raise ValueError(f"invalid slippage: {slippage_percent!r}")
    if percent < 0:
        raise ValueError("slippage must be non-negative")
    return int((percent * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_max_amount(amount: int, slippage_percent: Number) -> int:
    """Upper bound for a quoted amount after adding the slippage buffer.

    ``floor(amount * (10000 + bps) / 10000)`` in integer arithmetic, so the
    result is never below ``amount`` and equals it for zero slippage.
    """
    if amount < 0:
        raise ValueError("amount must be non-negative")
    bps = slippage_to_bps(slippage_percent)
    return amount * (BPS_DENOMINATOR + bps) // BPS_DENOMINATOR


def apply_bps(amount: int, bps: int) -> int:
    if amount < 0 or bps < 0:
        raise ValueError("amount and bps must be non-negative")
    return amount * (BPS_DENOMINATOR + bps) // BPS_DENOMINATOR


def format_units(value: int, decimals: int) -> str:
    """Render base units as a decimal string without trailing zeros."""
    negative = value < 0
    digits = str(abs(value))
    if decimals > 0:
        digits = digits.rjust(decimals + 1, "0")
        integer, fraction = digits[:-decimals], digits[-decimals:].rstrip("0")
    else:
        integer, fraction = digits, ""
    text = f"{integer}.{fraction}" if fraction else integer
    return f"-{text}" if negative else text


def parse_units(value: Number, decimals: int) -> int:
    """Scale a decimal amount (``"12.28"``) to integer base units."""
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value!r} has more than {decimals} decimal places")
    return int(scaled)


def validate_guarantee_hours(hours: int, minimum: int = 0, maximum: int = 24) -> int:
    if isinstance(hours, bool) or not isinstance(hours, int):
        raise ValueError(f"guarantee hours must be an integer, got {hours!r}")
    if hours < minimum or hours > maximum:
        raise ValueError(f"guarantee hours must be between {minimum} and {maximum}")
    return hours
