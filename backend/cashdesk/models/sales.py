from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from cashdesk.time_utils import to_utc_z

PAYMENT_DRAWER = "drawer"
PAYMENT_TRANSFER = "transfer"
PAYMENT_METHODS = (PAYMENT_DRAWER, PAYMENT_TRANSFER)
SALE_NOTE_MAX_LENGTH = 255


def discounted_total(gross_cents: int, discount_bps: int) -> int:
    """Gross less a percentage discount given in basis points, rounded half-up to the cent."""
    if not discount_bps:
        return gross_cents
    discount = (Decimal(gross_cents) * discount_bps / 10000).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return gross_cents - int(discount)


class Sale(db.Model):
    """
    Finalized sale.

    Immutable once written except through admin reversal, which may shrink
    or drop lines (recomputing total and change due) or delete the sale.

    INVARIANTS:
    - total_cents = sum(line.subtotal_cents) less discount_bps (service sales)
    - change_due_cents = amount_tendered_cents - total_cents >= 0 at creation
    - Drawer cash is derived from total_cents + payment_method; a sale never
      writes a cash movement.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_method_created", "payment_method", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Business time of the sale (UTC-naive)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    payment_method = db.Column(db.String(16), nullable=False, default=PAYMENT_DRAWER)

    # All amounts in cents
    total_cents = db.Column(db.Integer, nullable=False)
    amount_tendered_cents = db.Column(db.Integer, nullable=False)
    change_due_cents = db.Column(db.Integer, nullable=False, default=0)
    # Service-sale discount, 1000 = 10.00%
    discount_bps = db.Column(db.Integer, nullable=False, default=0)

    note = db.Column(db.String(SALE_NOTE_MAX_LENGTH), nullable=False, default="")
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def recompute_totals(self) -> None:
        gross = sum(line.subtotal_cents for line in self.lines)
        self.total_cents = discounted_total(gross, self.discount_bps or 0)
        self.change_due_cents = self.amount_tendered_cents - self.total_cents

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "payment_method": self.payment_method,
            "total_cents": self.total_cents,
            "amount_tendered_cents": self.amount_tendered_cents,
            "change_due_cents": self.change_due_cents,
            "discount_bps": self.discount_bps,
            "note": self.note,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data

class SaleLine(db.Model):
    """
    Line item on a sale. Name and unit price are copied at sale time so later
    catalog edits never change historical totals.

    product_id is null for service (non-inventory) lines.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # No FK: deleting a product must leave history intact
    product_id = db.Column(db.Integer, nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "position": self.position,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }
