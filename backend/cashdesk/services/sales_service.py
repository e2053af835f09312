"""
Sale finalization - turns a validated cart into a persisted sale.

WHY: This is the only place stock goes down. The stock check, the
decrement and the sale record are one database transaction: either every
line's units leave inventory and the sale exists, or nothing changed.

FINALIZE STEPS:
1. Drop zero-quantity lines; reject an empty cart.
2. Recompute the total from the cart lines (never from a caller total).
3. Reject tender below total (never clamped).
4. Per product, fresh stock read then conditional decrement.
5. Persist Sale + SaleLines with change_due = tendered - total.
6. Any failure rolls the whole transaction back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable

from ..errors import (
    ConcurrentStockConflict,
    EmptyCart,
    InsufficientPayment,
    InsufficientStock,
    InvalidDiscount,
    InvalidPaymentMethod,
    ProductNotFound,
    SaleNotFound,
)
from ..extensions import db
from ..models import Product, Sale, SaleLine, PAYMENT_METHODS, SALE_NOTE_MAX_LENGTH, discounted_total
from ..validation import ValidationError, optional_text, parse_quantity, require_text
from cashdesk.time_utils import normalize_datetime, utcnow
from .cart_service import Cart, CartLine
from .concurrency import decrement_stock_if_available, run_with_retry


@dataclass(frozen=True)
class ServiceItem:
    """Non-inventory line (membership, session, class) sold at `unit_price_cents`."""

    name: str
    unit_price_cents: int
    quantity: int = 1


def _validate_payment_method(method: str) -> str:
    m = (method or "").strip().lower()
    if m not in PAYMENT_METHODS:
        raise InvalidPaymentMethod(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": method},
        )
    return m


def _validate_tender(amount_tendered_cents, total_cents: int) -> int:
    if isinstance(amount_tendered_cents, bool) or not isinstance(amount_tendered_cents, int):
        raise ValidationError("amount_tendered_cents must be an integer")
    if amount_tendered_cents < total_cents:
        raise InsufficientPayment(
            "Insufficient payment",
            details={
                "total_cents": total_cents,
                "amount_tendered_cents": amount_tendered_cents,
                "short_cents": total_cents - amount_tendered_cents,
            },
        )
    return amount_tendered_cents


def _billable_lines(lines: Iterable) -> list:
    billable = []
    for line in lines:
        qty = parse_quantity(line.quantity, allow_zero=True)
        if qty == 0:
            continue
        if isinstance(line.unit_price_cents, bool) or not isinstance(line.unit_price_cents, int) \
                or line.unit_price_cents < 0:
            raise ValidationError("unit_price_cents must be a non-negative integer")
        billable.append(line)
    return billable


def _reserve_stock(product_totals: dict[int, int]) -> None:
    """
    Check-and-decrement for every product. Ids are processed in ascending
    order so concurrent finalizers take row locks in the same order.
    """
    for product_id in sorted(product_totals):
        qty = product_totals[product_id]
        stock = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
        if stock is None:
            raise ProductNotFound("Product not found", details={"product_id": product_id})
        if qty > stock:
            raise InsufficientStock(
                "Insufficient stock to finalize sale",
                details={"product_id": product_id, "requested_quantity": qty, "stock": stock},
            )
        if not decrement_stock_if_available(product_id, qty):
            raise ConcurrentStockConflict(
                "Stock changed while finalizing; retry the sale",
                details={"product_id": product_id, "requested_quantity": qty},
            )


def _persist_sale(
    lines: list,
    *,
    payment_method: str,
    total_cents: int,
    amount_tendered_cents: int,
    note: str,
    discount_bps: int,
    created_at: datetime,
) -> Sale:
    sale = Sale(
        created_at=created_at,
        payment_method=payment_method,
        total_cents=total_cents,
        amount_tendered_cents=amount_tendered_cents,
        change_due_cents=amount_tendered_cents - total_cents,
        discount_bps=discount_bps,
        note=note or "",
    )
    for position, line in enumerate(lines):
        sale.lines.append(SaleLine(
            position=position,
            product_id=getattr(line, "product_id", None),
            name=line.name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            subtotal_cents=line.unit_price_cents * line.quantity,
        ))
    db.session.add(sale)
    db.session.flush()
    return sale


def finalize_sale(
    cart: Cart,
    payment_method: str,
    amount_tendered_cents: int,
    note: str = "",
    *,
    now: datetime | None = None,
) -> Sale:
    """
    Finalize an inventory sale.

    Raises EmptyCart, InvalidQuantity, InsufficientPayment, InsufficientStock,
    ProductNotFound or ConcurrentStockConflict without changing any state.
    """
    payment_method = _validate_payment_method(payment_method)
    note = optional_text(note, "note", max_length=SALE_NOTE_MAX_LENGTH)
    lines: list[CartLine] = _billable_lines(cart.lines)
    if not lines:
        raise EmptyCart("Cart is empty")

    total_cents = sum(line.unit_price_cents * line.quantity for line in lines)
    amount_tendered_cents = _validate_tender(amount_tendered_cents, total_cents)

    product_totals: dict[int, int] = {}
    for line in lines:
        if line.product_id is None:
            continue
        product_totals[line.product_id] = product_totals.get(line.product_id, 0) + line.quantity

    created_at = normalize_datetime(now) if now else utcnow()

    def _op():
        _reserve_stock(product_totals)
        sale = _persist_sale(
            lines,
            payment_method=payment_method,
            total_cents=total_cents,
            amount_tendered_cents=amount_tendered_cents,
            note=note,
            discount_bps=0,
            created_at=created_at,
        )
        db.session.commit()
        return sale

    return run_with_retry(_op)


def _discount_bps(discount_pct) -> int:
    if isinstance(discount_pct, bool):
        raise InvalidDiscount("discount_pct must be a number", details={"discount_pct": discount_pct})
    try:
        pct = Decimal(str(discount_pct if discount_pct not in (None, "") else 0))
    except InvalidOperation:
        raise InvalidDiscount("discount_pct must be a number", details={"discount_pct": discount_pct})
    if not pct.is_finite() or pct < 0 or pct > 100:
        raise InvalidDiscount("discount_pct must be between 0 and 100", details={"discount_pct": str(discount_pct)})
    bps = pct * 100
    if bps != bps.to_integral_value():
        raise InvalidDiscount("discount_pct allows at most two decimals", details={"discount_pct": str(discount_pct)})
    return int(bps)


def _format_pct(discount_bps: int) -> str:
    return format((Decimal(discount_bps) / 100).normalize(), "f")


def register_service_sale(
    items: Iterable,
    discount_pct,
    payment_method: str,
    amount_tendered_cents: int,
    discount_reason: str = "",
    *,
    now: datetime | None = None,
) -> Sale:
    """
    Record a sale of non-inventory services (no stock involved).

    A percentage discount applies to the gross before the tender check; when
    it is above zero the reason is kept in the sale note.
    """
    payment_method = _validate_payment_method(payment_method)
    lines = _billable_lines(items)
    if not lines:
        raise EmptyCart("No service items selected")
    names = [require_text(line.name, "service item name") for line in lines]

    discount_bps = _discount_bps(discount_pct)
    gross_cents = sum(line.unit_price_cents * line.quantity for line in lines)
    total_cents = discounted_total(gross_cents, discount_bps)
    amount_tendered_cents = _validate_tender(amount_tendered_cents, total_cents)

    note = ""
    if discount_bps > 0:
        prefix = f"Discount {_format_pct(discount_bps)}%: "
        # The reason shares the note column with the prefix
        reason = optional_text(discount_reason, "discount_reason", max_length=SALE_NOTE_MAX_LENGTH - len(prefix))
        note = prefix + reason

    service_lines = [
        ServiceItem(name=name, unit_price_cents=line.unit_price_cents, quantity=line.quantity)
        for name, line in zip(names, lines)
    ]
    created_at = normalize_datetime(now) if now else utcnow()

    def _op():
        sale = _persist_sale(
            service_lines,
            payment_method=payment_method,
            total_cents=total_cents,
            amount_tendered_cents=amount_tendered_cents,
            note=note,
            discount_bps=discount_bps,
            created_at=created_at,
        )
        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(start: datetime | None = None, end: datetime | None = None) -> list[Sale]:
    """Sales in [start, end), newest first."""
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
