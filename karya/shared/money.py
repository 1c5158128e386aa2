"""Exact conversions between major and minor currency units."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import ValidationError

MINOR_UNITS_PER_MAJOR = 100
_CENT = Decimal("0.01")


def parse_amount(value) -> Decimal:
    """Parse a positive major-unit amount with at most two decimal places.

    Floats are converted through ``str`` so ``12.3`` becomes ``Decimal("12.3")``
    instead of its binary expansion.

    Raises:
        ValidationError: If the value is missing, not numeric, not positive,
            or has sub-cent precision
    """
    if value is None or isinstance(value, bool) or value == "":
        raise ValidationError("Amount is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}") from None
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    if amount != amount.quantize(_CENT):
        raise ValidationError("Amount cannot have more than two decimal places")
    return amount.quantize(_CENT)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (e.g. NPR) to integer minor units (paisa)."""
    minor = Decimal(amount) * MINOR_UNITS_PER_MAJOR
    if minor != minor.to_integral_value():
        raise ValidationError(f"Amount {amount} is not representable in minor units")
    return int(minor)


def from_minor_units(minor: int) -> Decimal:
    """Convert integer minor units back to a two-decimal major-unit amount."""
    if isinstance(minor, bool) or int(minor) != minor:
        raise ValidationError(f"Minor-unit amount must be an integer: {minor!r}")
    return (Decimal(int(minor)) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)
