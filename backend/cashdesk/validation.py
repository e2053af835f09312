from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidQuantity


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

TWOPLACES = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


def coerce_int(value: Any, field: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> int:
    """
    Strict unit quantity. Floats, decimal strings and booleans are rejected
    rather than rounded.
    """
    try:
        qty = coerce_int(value, field)
    except ValidationError as e:
        raise InvalidQuantity(str(e), details={"field": field, "value": repr(value)})
    if qty < 0 or (qty == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise InvalidQuantity(f"{field} must be {bound}", details={"field": field, "value": qty})
    return qty


def parse_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    """Integer cents field (e.g. amount_tendered_cents)."""
    if value is None:
        raise ValidationError(f"{field} required")
    cents = coerce_int(value, field)
    if cents < 0 or (cents == 0 and not allow_zero):
        raise ValidationError(f"{field} must be positive")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum of {MAX_PRICE_CENTS}")
    return cents


def money_to_cents(value: Any, field: str = "amount") -> int:
    """
    Convert a decimal amount ("150.00", 150, Decimal("150")) to integer cents,
    rounding half-up to the cent.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return int((amount.quantize(TWOPLACES, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def cents_to_money(cents: int) -> str:
    """Render cents as a fixed two-decimal string (no currency symbol)."""
    return str((Decimal(cents) / 100).quantize(TWOPLACES))


def require_text(value: Any, field: str, max_length: int = 255) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} required")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def optional_text(value: Any, field: str, max_length: int = 255) -> str:
    """Free text that may be blank; overlong input is rejected, never truncated."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text
