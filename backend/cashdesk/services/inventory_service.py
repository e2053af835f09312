# Overview: Service-layer operations for the product catalog and stock replenishment.

# backend/cashdesk/services/inventory_service.py
"""
Cashdesk Inventory Invariants (authoritative)

- Product.stock is never negative (DB CHECK + conditional decrement).
- Sales only decrement through concurrency.decrement_stock_if_available.
- Replenishment increments atomically (stock = stock + q), never by writing
  a value computed from a possibly stale read.
- A replenishment with a cost records a "purchase" cash movement in the same
  transaction, so the drawer reflects the cash paid out.
- Deleting a product leaves historical sale lines untouched.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import ProductNotFound
from ..extensions import db
from ..models import Product, CashMovement, MOVEMENT_PURCHASE
from ..validation import ValidationError, MAX_PRICE_CENTS, parse_quantity, require_text
from cashdesk.time_utils import utcnow
from .concurrency import increment_stock, run_with_retry

PURCHASE_CONCEPT = "Inventory purchase"

DEMO_INVENTORY = [
    ("Water 600 ml", 1200, 30),
    ("Milk 1 L", 3200, 18),
    ("Chips 45 g", 1700, 25),
    ("Eggs dozen", 4800, 10),
]


def _validate_price(price_cents) -> int:
    if isinstance(price_cents, bool) or not isinstance(price_cents, int):
        raise ValidationError("price_cents must be an integer")
    if price_cents < 0:
        raise ValidationError("price_cents cannot be negative")
    if price_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"price_cents exceeds maximum of {MAX_PRICE_CENTS}")
    return price_cents


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound("Product not found", details={"product_id": product_id})
    return product


def list_products(search: str | None = None) -> list[Product]:
    """Catalog ordered by name; `search` is a case-insensitive substring filter."""
    query = db.session.query(Product)
    if search:
        query = query.filter(func.lower(Product.name).contains(search.strip().lower()))
    return query.order_by(Product.name).all()


def find_by_name(name: str) -> Product | None:
    """Case-insensitive exact name match."""
    return db.session.query(Product).filter(
        func.lower(Product.name) == name.strip().lower()
    ).order_by(Product.id).first()


def create_product(name: str, price_cents: int, stock: int = 0) -> Product:
    name = require_text(name, "name")
    price_cents = _validate_price(price_cents)
    stock = parse_quantity(stock, "stock", allow_zero=True)

    product = Product(name=name, price_cents=price_cents, stock=stock)
    db.session.add(product)
    db.session.commit()
    return product


def update_price(product_id: int, price_cents: int) -> Product:
    """
    Change the list price. Existing sales keep the price they were sold at.
    """
    price_cents = _validate_price(price_cents)

    def _op():
        product = get_product(product_id)
        product.price_cents = price_cents
        db.session.commit()
        return product

    return run_with_retry(_op)


def replenish(product_id: int, quantity, cost_cents: int = 0, *, now=None) -> Product:
    """
    Add units to stock. When `cost_cents` > 0 the purchase is paid from the
    drawer and a "purchase" movement is written in the same transaction.
    """
    quantity = parse_quantity(quantity, "quantity")
    if isinstance(cost_cents, bool) or not isinstance(cost_cents, int) or cost_cents < 0:
        raise ValidationError("cost_cents must be a non-negative integer")

    def _op():
        if not increment_stock(product_id, quantity):
            raise ProductNotFound("Product not found", details={"product_id": product_id})
        if cost_cents > 0:
            db.session.add(CashMovement(
                kind=MOVEMENT_PURCHASE,
                concept=PURCHASE_CONCEPT,
                amount_cents=cost_cents,
                created_at=now or utcnow(),
            ))
        db.session.commit()
        return get_product(product_id)

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    def _op():
        product = get_product(product_id)
        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)


def seed_demo_inventory() -> list[Product]:
    """Insert the demo catalog when the catalog is empty (idempotent)."""
    if db.session.query(Product).count():
        return []
    products = [Product(name=n, price_cents=p, stock=s) for n, p, s in DEMO_INVENTORY]
    db.session.add_all(products)
    db.session.commit()
    return products
