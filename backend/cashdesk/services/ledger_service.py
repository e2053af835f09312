# Overview: Cash ledger; derives the drawer position from sales and manual movements.

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Iterable

from ..extensions import db
from ..models import (
    Sale,
    CashMovement,
    PAYMENT_TRANSFER,
    MOVEMENT_INFLOW,
    MOVEMENT_OUTFLOW,
    MOVEMENT_PURCHASE,
)
from cashdesk.time_utils import utcnow, normalize_datetime
from .register_service import get_register_state
"""
Cashdesk Cash Ledger Invariants (authoritative)

- compute_drawer_totals is the ONLY computation of the drawer balance.
  Nothing caches it; every caller re-derives it from history.
- drawer_balance = opening + drawer sales + manual inflows
                   - (manual outflows + purchases)
- Transfer sales are reported but never touch the physical drawer.
- Purchases always count against the drawer, whatever paid for them.
- Reversals and deletions of sales need no compensating entry: the adjusted
  Sale rows are the history, so the next evaluation reflects them.
- The live window is [RegisterState.opened_at, now).
"""


@dataclass(frozen=True)
class DrawerTotals:
    opening_balance_cents: int
    sales_total_cents: int
    drawer_sales_total_cents: int
    transfer_sales_total_cents: int
    manual_inflows_cents: int
    manual_outflows_cents: int
    drawer_balance_cents: int
    sale_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProductSummaryRow:
    product_id: int | None
    name: str
    units: int
    revenue_cents: int

    def to_dict(self) -> dict:
        return asdict(self)


def compute_drawer_totals(
    sales: Iterable,
    movements: Iterable,
    opening_balance_cents: int,
) -> DrawerTotals:
    """
    Pure aggregation over sales (payment_method, total_cents) and cash
    movements (kind, amount_cents). Deterministic; no database access.
    """
    drawer_sales = 0
    transfer_sales = 0
    sale_count = 0
    for sale in sales:
        sale_count += 1
        if sale.payment_method == PAYMENT_TRANSFER:
            transfer_sales += sale.total_cents
        else:
            drawer_sales += sale.total_cents

    inflows = 0
    outflows = 0
    for movement in movements:
        if movement.kind == MOVEMENT_INFLOW:
            inflows += movement.amount_cents
        elif movement.kind in (MOVEMENT_OUTFLOW, MOVEMENT_PURCHASE):
            outflows += movement.amount_cents

    return DrawerTotals(
        opening_balance_cents=opening_balance_cents,
        sales_total_cents=drawer_sales + transfer_sales,
        drawer_sales_total_cents=drawer_sales,
        transfer_sales_total_cents=transfer_sales,
        manual_inflows_cents=inflows,
        manual_outflows_cents=outflows,
        drawer_balance_cents=opening_balance_cents + drawer_sales + inflows - outflows,
        sale_count=sale_count,
    )


def load_window(start: datetime, end: datetime) -> tuple[list[Sale], list[CashMovement]]:
    """Sales and movements with start <= created_at < end."""
    sales = db.session.query(Sale).filter(
        Sale.created_at >= start,
        Sale.created_at < end,
    ).all()
    movements = db.session.query(CashMovement).filter(
        CashMovement.created_at >= start,
        CashMovement.created_at < end,
    ).all()
    return sales, movements


def current_drawer_totals(now: datetime | None = None) -> DrawerTotals:
    """Drawer position since the last day close, re-derived from history."""
    now = normalize_datetime(now) if now else utcnow()
    state = get_register_state()
    sales, movements = load_window(state.opened_at, now)
    return compute_drawer_totals(sales, movements, state.opening_balance_cents)


def product_summary(sales: Iterable) -> list[ProductSummaryRow]:
    """Units and revenue per product (service lines grouped by name), best sellers first."""
    rows: dict[tuple, list] = {}
    for sale in sales:
        for line in sale.lines:
            key = (line.product_id, line.name) if line.product_id is None else (line.product_id, None)
            entry = rows.setdefault(key, [line.product_id, line.name, 0, 0])
            entry[2] += line.quantity
            entry[3] += line.subtotal_cents
    summary = [ProductSummaryRow(*entry) for entry in rows.values()]
    summary.sort(key=lambda r: (-r.revenue_cents, r.name))
    return summary
