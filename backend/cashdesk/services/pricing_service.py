# Overview: Service-layer operations for the membership/service price table.

from __future__ import annotations

from ..extensions import db
from ..models import MembershipPrice
from ..validation import ValidationError, MAX_PRICE_CENTS, require_text
from .concurrency import run_with_retry

# Prices in cents, seeded by `flask system init`
DEFAULT_MEMBERSHIP_PRICES: dict[str, dict[str, int]] = {
    "playroom": {"v12": 8000, "v36": 13000, "p1": 45000, "p2": 75000},
    "tutoring": {"visit": 9900, "m12": 89900, "m15": 105000, "m20": 129900},
    "therapy": {"individual": 40000, "pack8": 280000},
}


def get_price_table() -> dict[str, dict[str, int]]:
    """Nested {category: {tier: price_cents}} view of the table."""
    table: dict[str, dict[str, int]] = {}
    rows = db.session.query(MembershipPrice).order_by(
        MembershipPrice.service_category, MembershipPrice.tier_key
    ).all()
    for row in rows:
        table.setdefault(row.service_category, {})[row.tier_key] = row.price_cents
    return table


def get_price(service_category: str, tier_key: str) -> int | None:
    row = db.session.query(MembershipPrice).filter_by(
        service_category=service_category, tier_key=tier_key
    ).first()
    return row.price_cents if row else None


def set_price(service_category: str, tier_key: str, price_cents: int, updated_by: str | None = None) -> MembershipPrice:
    """
    Upsert one tier price. Sales already recorded keep the price they copied.
    """
    service_category = require_text(service_category, "service_category", 64).lower()
    tier_key = require_text(tier_key, "tier_key", 64)
    if isinstance(price_cents, bool) or not isinstance(price_cents, int):
        raise ValidationError("price_cents must be an integer")
    if price_cents < 0 or price_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"price_cents must be between 0 and {MAX_PRICE_CENTS}")

    def _op():
        row = db.session.query(MembershipPrice).filter_by(
            service_category=service_category, tier_key=tier_key
        ).first()
        if row is None:
            row = MembershipPrice(service_category=service_category, tier_key=tier_key)
            db.session.add(row)
        row.price_cents = price_cents
        row.updated_by = updated_by
        db.session.commit()
        return row

    return run_with_retry(_op)


def seed_default_prices() -> int:
    """Insert missing default tiers; existing prices are left alone. Returns rows added."""
    added = 0
    for category, tiers in DEFAULT_MEMBERSHIP_PRICES.items():
        for tier, price in tiers.items():
            exists = db.session.query(MembershipPrice).filter_by(
                service_category=category, tier_key=tier
            ).first()
            if exists:
                continue
            db.session.add(MembershipPrice(service_category=category, tier_key=tier, price_cents=price))
            added += 1
    db.session.commit()
    return added
