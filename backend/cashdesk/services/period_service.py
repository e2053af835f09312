# Overview: Day close and month consolidation of sales and cash movements.

"""
Period consolidation.

DAY CLOSE
- Totals over [opened_at, now) come from the cash ledger (never recomputed
  here); the drawer balance becomes the next opening balance.
- Sales and movements in [old opened_at, now) are purged in the same
  transaction. Rows stamped at or after `now` belong to the new day and
  survive, so a sale racing the close is never lost.
- The caller must have obtained the operator's confirmation.

MONTH CONSOLIDATION
- Summary over [month_start, cutoff), where cutoff is the next month start
  or now, whichever comes first.
- The caller's exporter runs first; if it raises, nothing is deleted.
- The purge deletes exactly the sales and movements the exported summary
  was built from; rows recorded while the export runs survive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Callable, Sequence

from sqlalchemy import select

from ..errors import ExportFailed, PosError
from ..extensions import db
from ..models import Sale, SaleLine, CashMovement, RegisterState
from ..validation import cents_to_money
from cashdesk.time_utils import utcnow, normalize_datetime, month_bounds, to_utc_z
from .concurrency import run_with_retry
from .ledger_service import (
    DrawerTotals,
    ProductSummaryRow,
    compute_drawer_totals,
    load_window,
    product_summary,
)
from .register_service import get_register_state

logger = logging.getLogger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit
PURGE_BATCH_SIZE = 500


@dataclass(frozen=True)
class DayCloseReport:
    opened_at: datetime
    closed_at: datetime
    totals: DrawerTotals
    products: list[ProductSummaryRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "totals": self.totals.to_dict(),
            "products": [row.to_dict() for row in self.products],
        }

    def to_rows(self) -> list[list[str]]:
        """Tabular form for CSV export."""
        t = self.totals
        rows = [["Product", "Units sold", "Revenue"]]
        rows += [[r.name, str(r.units), cents_to_money(r.revenue_cents)] for r in self.products]
        rows += [
            [],
            ["Totals", "", ""],
            ["Sales", "", cents_to_money(t.sales_total_cents)],
            ["Drawer sales", "", cents_to_money(t.drawer_sales_total_cents)],
            ["Transfer sales", "", cents_to_money(t.transfer_sales_total_cents)],
            ["Manual inflows", "", cents_to_money(t.manual_inflows_cents)],
            ["Outflows", "", cents_to_money(t.manual_outflows_cents)],
            ["Opening balance", "", cents_to_money(t.opening_balance_cents)],
            ["Closing balance", "", cents_to_money(t.drawer_balance_cents)],
        ]
        return rows


@dataclass(frozen=True)
class MonthSummary:
    month: str
    start: datetime
    end: datetime
    cutoff: datetime
    drawer_sales_cents: int
    transfer_sales_cents: int
    manual_inflows_cents: int
    manual_outflows_cents: int
    cash_in_cents: int
    cash_out_cents: int
    net_cash_balance_cents: int
    sale_count: int
    movement_count: int
    # Rows the figures were built from; consolidation purges exactly these
    sale_ids: tuple[int, ...] = field(default=(), repr=False)
    movement_ids: tuple[int, ...] = field(default=(), repr=False)

    def to_dict(self) -> dict:
        data = asdict(self)
        del data["sale_ids"], data["movement_ids"]
        data["start"] = to_utc_z(self.start)
        data["end"] = to_utc_z(self.end)
        data["cutoff"] = to_utc_z(self.cutoff)
        return data

    def to_rows(self) -> list[list[str]]:
        """Tabular form for CSV export."""
        return [
            ["Monthly summary", self.month],
            [],
            ["Drawer sales", cents_to_money(self.drawer_sales_cents)],
            ["Transfer sales", cents_to_money(self.transfer_sales_cents)],
            ["Manual inflows", cents_to_money(self.manual_inflows_cents)],
            ["Outflows/purchases", cents_to_money(self.manual_outflows_cents)],
            [],
            ["Total drawer cash in", cents_to_money(self.cash_in_cents)],
            ["Total drawer cash out", cents_to_money(self.cash_out_cents)],
            ["Drawer balance (in - out)", cents_to_money(self.net_cash_balance_cents)],
        ]


@dataclass(frozen=True)
class MonthConsolidation:
    summary: MonthSummary
    sales_purged: int
    movements_purged: int


def _purge_window(start: datetime, end: datetime) -> tuple[int, int]:
    """Delete sales (with their lines) and movements with start <= created_at < end."""
    sale_ids = select(Sale.id).where(
        Sale.created_at >= start,
        Sale.created_at < end,
    )
    db.session.query(SaleLine).filter(SaleLine.sale_id.in_(sale_ids)).delete(
        synchronize_session=False
    )
    sales_deleted = db.session.query(Sale).filter(
        Sale.created_at >= start,
        Sale.created_at < end,
    ).delete(synchronize_session=False)
    movements_deleted = db.session.query(CashMovement).filter(
        CashMovement.created_at >= start,
        CashMovement.created_at < end,
    ).delete(synchronize_session=False)
    return sales_deleted, movements_deleted


def _purge_ids(sale_ids: Sequence[int], movement_ids: Sequence[int]) -> tuple[int, int]:
    """Delete the given sales (with their lines) and movements."""
    sales_deleted = 0
    movements_deleted = 0
    for i in range(0, len(sale_ids), PURGE_BATCH_SIZE):
        batch = list(sale_ids[i:i + PURGE_BATCH_SIZE])
        db.session.query(SaleLine).filter(SaleLine.sale_id.in_(batch)).delete(
            synchronize_session=False
        )
        sales_deleted += db.session.query(Sale).filter(Sale.id.in_(batch)).delete(
            synchronize_session=False
        )
    for i in range(0, len(movement_ids), PURGE_BATCH_SIZE):
        batch = list(movement_ids[i:i + PURGE_BATCH_SIZE])
        movements_deleted += db.session.query(CashMovement).filter(
            CashMovement.id.in_(batch)
        ).delete(synchronize_session=False)
    return sales_deleted, movements_deleted


# =============================================================================
# DAY CLOSE
# =============================================================================

def day_close_report(now: datetime | None = None) -> DayCloseReport:
    """What close_day(now) would roll forward, for export before closing."""
    now = normalize_datetime(now) if now else utcnow()
    state = get_register_state()
    sales, movements = load_window(state.opened_at, now)
    return DayCloseReport(
        opened_at=state.opened_at,
        closed_at=now,
        totals=compute_drawer_totals(sales, movements, state.opening_balance_cents),
        products=product_summary(sales),
    )


def close_day(now: datetime | None = None) -> RegisterState:
    """
    Roll the drawer balance forward and purge the day's activity.

    Destructive: the caller is responsible for confirmation.
    """
    now = normalize_datetime(now) if now else utcnow()
    get_register_state()

    def _op():
        state = get_register_state(lock=True)
        old_opened_at = state.opened_at
        sales, movements = load_window(old_opened_at, now)
        totals = compute_drawer_totals(sales, movements, state.opening_balance_cents)

        state.opening_balance_cents = totals.drawer_balance_cents
        state.opened_at = now
        sales_deleted, movements_deleted = _purge_window(old_opened_at, now)
        db.session.commit()

        logger.info(
            "Day closed: balance %s carried forward, %d sales and %d movements purged",
            cents_to_money(totals.drawer_balance_cents), sales_deleted, movements_deleted,
        )
        return state

    return run_with_retry(_op)


# =============================================================================
# MONTH CONSOLIDATION
# =============================================================================

def month_summary(month_start: datetime, now: datetime | None = None) -> MonthSummary:
    """Figures for the month up to now (the whole month once it is over)."""
    now = normalize_datetime(now) if now else utcnow()
    start, end = month_bounds(month_start)
    cutoff = max(start, min(end, now))
    sales, movements = load_window(start, cutoff)
    # Month figures exclude the opening balance: they describe the month's flow
    totals = compute_drawer_totals(sales, movements, 0)
    cash_in = totals.drawer_sales_total_cents + totals.manual_inflows_cents
    cash_out = totals.manual_outflows_cents
    return MonthSummary(
        month=start.strftime("%Y-%m"),
        start=start,
        end=end,
        cutoff=cutoff,
        drawer_sales_cents=totals.drawer_sales_total_cents,
        transfer_sales_cents=totals.transfer_sales_total_cents,
        manual_inflows_cents=totals.manual_inflows_cents,
        manual_outflows_cents=totals.manual_outflows_cents,
        cash_in_cents=cash_in,
        cash_out_cents=cash_out,
        net_cash_balance_cents=cash_in - cash_out,
        sale_count=totals.sale_count,
        movement_count=len(movements),
        sale_ids=tuple(sale.id for sale in sales),
        movement_ids=tuple(movement.id for movement in movements),
    )


def consolidate_month(
    month_start: datetime,
    export: Callable[[MonthSummary], None],
    *,
    now: datetime | None = None,
) -> MonthConsolidation:
    """
    Export the month's summary, then purge the sales and movements it covers.

    Raises:
        ExportFailed: export raised; nothing was deleted
    """
    summary = month_summary(month_start, now)
    try:
        export(summary)
    except PosError:
        raise
    except Exception as exc:
        db.session.rollback()
        logger.exception("Month %s export failed; purge skipped", summary.month)
        raise ExportFailed(
            "Export failed; month was not purged",
            details={"month": summary.month},
        ) from exc

    def _op():
        sales_deleted, movements_deleted = _purge_ids(summary.sale_ids, summary.movement_ids)
        db.session.commit()
        logger.info(
            "Month %s consolidated: %d sales and %d movements purged",
            summary.month, sales_deleted, movements_deleted,
        )
        return MonthConsolidation(summary, sales_deleted, movements_deleted)

    return run_with_retry(_op)
