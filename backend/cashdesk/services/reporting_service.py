# Overview: Service-layer operations for reporting; sales log over day/week/month.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..models import Sale, PAYMENT_TRANSFER
from cashdesk.time_utils import normalize_datetime, period_start, to_utc_z, utcnow
from .register_service import list_cash_movements
from .sales_service import list_sales


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


@dataclass(frozen=True)
class SalesLog:
    period: str
    start: datetime
    end: datetime
    ticket_count: int
    sales_total_cents: int
    drawer_total_cents: int
    transfer_total_cents: int
    sales: list[Sale] = field(default_factory=list)
    movement_count: int = 0

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "start": to_utc_z(self.start),
            "end": to_utc_z(self.end),
            "ticket_count": self.ticket_count,
            "sales_total_cents": self.sales_total_cents,
            "drawer_total_cents": self.drawer_total_cents,
            "transfer_total_cents": self.transfer_total_cents,
            "movement_count": self.movement_count,
            "sales": [sale.to_dict() for sale in self.sales],
        }


def sales_log(period: str = "day", now: datetime | None = None) -> SalesLog:
    """
    Sales since the start of the current day, week (Monday) or month.

    Per-method subtotals here are informational; the drawer position comes
    only from the cash ledger.
    """
    now = normalize_datetime(now) if now else utcnow()
    try:
        start = period_start(period, now)
    except ValueError as e:
        raise ReportError(str(e))

    sales = list_sales(start=start)
    drawer = sum(s.total_cents for s in sales if s.payment_method != PAYMENT_TRANSFER)
    transfer = sum(s.total_cents for s in sales if s.payment_method == PAYMENT_TRANSFER)
    return SalesLog(
        period=period,
        start=start,
        end=now,
        ticket_count=len(sales),
        sales_total_cents=drawer + transfer,
        drawer_total_cents=drawer,
        transfer_total_cents=transfer,
        sales=sales,
        movement_count=len(list_cash_movements(start=start)),
    )
