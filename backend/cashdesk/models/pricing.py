from __future__ import annotations

from ..extensions import db
from cashdesk.time_utils import to_utc_z

class MembershipPrice(db.Model):
    """
    Price of one membership/service tier (e.g. category "playroom", tier "v12").

    Read by the service-sale screen; the price is copied into the sale line
    at sale time, so edits here never alter historical sales.
    """
    __tablename__ = "membership_prices"
    __table_args__ = (
        db.UniqueConstraint("service_category", "tier_key", name="uq_membership_prices_category_tier"),
        db.CheckConstraint("price_cents >= 0", name="ck_membership_prices_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    service_category = db.Column(db.String(64), nullable=False)
    tier_key = db.Column(db.String(64), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    updated_by = db.Column(db.String(128), nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "service_category": self.service_category,
            "tier_key": self.tier_key,
            "price_cents": self.price_cents,
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
