# Overview: In-memory cart assembly from manual selections and scan events.

"""
Cart building.

The cart lives in an explicit CartSession owned by one terminal/operator;
there is no module-level cart. Nothing here writes to the database: stock is
read to validate additions, and only the sale finalizer decrements it.

RULES:
- add_manual / add_from_scan reject non-integer or non-positive quantities
  and any addition that would put more units of a product in the cart than
  it has in stock (units already in the cart count).
- A rejected addition leaves the cart untouched.
- Identical raw scan payloads inside the debounce window are dropped
  silently (a camera reports the same code many times per second).
- Line removal and quantity edits are local; a typed quantity may exceed
  stock until finalize rejects it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable

from ..errors import InsufficientStock
from ..validation import parse_quantity
from .qr_service import decode_scan

DEFAULT_SCAN_DEBOUNCE_SECONDS = 0.7


@dataclass
class CartLine:
    product_id: int | None
    name: str
    unit_price_cents: int
    quantity: int

    @property
    def subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass
class Cart:
    lines: list[CartLine] = field(default_factory=list)

    def find(self, product_id: int | None) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    @property
    def total_cents(self) -> int:
        return sum(line.subtotal_cents for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict:
        return {
            "lines": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "unit_price_cents": line.unit_price_cents,
                    "quantity": line.quantity,
                    "subtotal_cents": line.subtotal_cents,
                }
                for line in self.lines
            ],
            "total_cents": self.total_cents,
        }


@dataclass
class CartSession:
    """One operator's pending sale plus its scanner debounce memory."""

    cart: Cart = field(default_factory=Cart)
    debounce_seconds: float = DEFAULT_SCAN_DEBOUNCE_SECONDS
    clock: Callable[[], float] = time.monotonic
    _last_scan_at: dict[str, float] = field(default_factory=dict, repr=False)

    def add_manual(self, product, quantity=1) -> Cart:
        """
        Add `quantity` units of `product` (any object with id, name,
        price_cents and stock), merging into an existing line.
        """
        quantity = parse_quantity(quantity)
        existing = self.cart.find(product.id)
        in_cart = existing.quantity if existing else 0

        if in_cart + quantity > product.stock:
            raise InsufficientStock(
                "Insufficient stock",
                details={
                    "product_id": product.id,
                    "requested_quantity": in_cart + quantity,
                    "in_cart": in_cart,
                    "stock": product.stock,
                },
            )

        if existing:
            existing.quantity = min(existing.quantity + quantity, product.stock)
        else:
            self.cart.lines.append(CartLine(
                product_id=product.id,
                name=product.name,
                unit_price_cents=product.price_cents,
                quantity=quantity,
            ))
        return self.cart

    def add_from_scan(self, payload: str, quantity=1) -> Cart:
        """
        Add the product referenced by a decoded QR text. Duplicate payloads
        inside the debounce window return the cart unchanged.
        """
        now = self.clock()
        last = self._last_scan_at.get(payload)
        if last is not None and now - last < self.debounce_seconds:
            return self.cart
        # Only payloads still inside their window matter
        self._last_scan_at = {
            p: t for p, t in self._last_scan_at.items() if now - t < self.debounce_seconds
        }
        self._last_scan_at[payload] = now

        product = decode_scan(payload)
        return self.add_manual(product, quantity)

    def set_quantity(self, product_id: int | None, quantity) -> Cart:
        """Local edit, no stock check. Zero keeps the line until finalize drops it."""
        quantity = parse_quantity(quantity, allow_zero=True)
        line = self.cart.find(product_id)
        if line is not None:
            line.quantity = quantity
        return self.cart

    def remove_line(self, product_id: int | None) -> Cart:
        self.cart.lines = [line for line in self.cart.lines if line.product_id != product_id]
        return self.cart

    def clear(self) -> Cart:
        self.cart = Cart()
        return self.cart


@dataclass(frozen=True)
class ManualAdd:
    product: object
    quantity: int = 1


@dataclass(frozen=True)
class ScanEvent:
    payload: str
    quantity: int = 1


def build_cart(events: Iterable, *, session: CartSession | None = None) -> Cart:
    """
    Replay selection events onto a session (a fresh one by default) and
    return its cart. The first rejection propagates.
    """
    session = session or CartSession()
    for event in events:
        if isinstance(event, ManualAdd):
            session.add_manual(event.product, event.quantity)
        elif isinstance(event, ScanEvent):
            session.add_from_scan(event.payload, event.quantity)
        else:
            raise TypeError(f"Unsupported cart event {type(event).__name__}")
    return session.cart
