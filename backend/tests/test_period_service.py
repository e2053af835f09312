"""
Day close and month consolidation tests.

Verifies:
- Day close carries the drawer balance forward and purges the closed window
- Activity stamped at or after the close survives
- Month consolidation purges only after a successful export
"""

from datetime import datetime, timedelta

import pytest

from cashdesk.errors import ExportFailed
from cashdesk.extensions import db
from cashdesk.models import CashMovement, Product, RegisterState, Sale, SaleLine, REGISTER_STATE_ID
from cashdesk.services import period_service, register_service
from cashdesk.services.cart_service import CartSession
from cashdesk.services.ledger_service import current_drawer_totals
from cashdesk.services.sales_service import ServiceItem, finalize_sale, register_service_sale
from cashdesk.time_utils import parse_month

OPENED = datetime(2026, 9, 1, 8, 0)
CLOSE = datetime(2026, 9, 1, 20, 0)
# Well after September, so its summaries cover the whole month
OCTOBER = datetime(2026, 10, 19, 12, 0)


@pytest.fixture
def open_register(db_session):
    state = RegisterState(id=REGISTER_STATE_ID, opening_balance_cents=50000, opened_at=OPENED)
    db_session.add(state)
    db_session.commit()
    return state


def _sell(product, qty, method="drawer", now=None):
    session = CartSession()
    session.add_manual(product, qty)
    return finalize_sale(session.cart, method, product.price_cents * qty, now=now)


# =============================================================================
# DAY CLOSE
# =============================================================================


class TestCloseDay:

    def test_report_matches_ledger(self, open_register, water):
        _sell(water, 2, now=OPENED + timedelta(hours=1))
        register_service.record_cash_movement("outflow", "Bread", 1000, now=OPENED + timedelta(hours=2))

        report = period_service.day_close_report(CLOSE)

        assert report.totals == current_drawer_totals(now=CLOSE)
        assert report.totals.drawer_balance_cents == 50000 + 2400 - 1000
        assert [(r.name, r.units) for r in report.products] == [("Water 600 ml", 2)]

    def test_rolls_balance_forward_and_purges(self, open_register, water):
        _sell(water, 2, now=OPENED + timedelta(hours=1))
        _sell(water, 1, method="transfer", now=OPENED + timedelta(hours=2))
        register_service.record_cash_movement("inflow", "Fund", 5000, now=OPENED + timedelta(hours=3))

        state = period_service.close_day(CLOSE)

        assert state.opening_balance_cents == 50000 + 2400 + 5000
        assert state.opened_at == CLOSE
        assert db.session.query(Sale).count() == 0
        assert db.session.query(SaleLine).count() == 0
        assert db.session.query(CashMovement).count() == 0
        # Stock is not part of the close
        assert db.session.get(Product, water.id).stock == 27

        totals = current_drawer_totals(now=CLOSE + timedelta(minutes=1))
        assert totals.drawer_balance_cents == 57400
        assert totals.sale_count == 0

    def test_activity_after_close_survives(self, open_register, water):
        _sell(water, 1, now=OPENED + timedelta(hours=1))
        late = _sell(water, 1, now=CLOSE)

        period_service.close_day(CLOSE)

        remaining = db.session.query(Sale).all()
        assert [s.id for s in remaining] == [late.id]
        totals = current_drawer_totals(now=CLOSE + timedelta(hours=1))
        assert totals.opening_balance_cents == 50000 + 1200
        assert totals.drawer_balance_cents == 50000 + 2400

    def test_csv_rows(self, open_register, water):
        _sell(water, 1, now=OPENED + timedelta(hours=1))
        rows = period_service.day_close_report(CLOSE).to_rows()
        assert rows[0] == ["Product", "Units sold", "Revenue"]
        assert rows[1] == ["Water 600 ml", "1", "12.00"]
        assert rows[-1] == ["Closing balance", "", "512.00"]


# =============================================================================
# MONTH CONSOLIDATION
# =============================================================================


class TestConsolidateMonth:

    @pytest.fixture
    def september(self, register, water):
        _sell(water, 2, now=datetime(2026, 9, 3, 10))
        register_service_sale([ServiceItem("Therapy", 40000)], 0, "transfer", 40000, now=datetime(2026, 9, 10, 11))
        register_service.record_cash_movement("inflow", "Fund", 10000, now=datetime(2026, 9, 1, 0, 0))
        register_service.record_cash_movement("purchase", "Stock", 3000, now=datetime(2026, 9, 20, 9))
        # Outside the month on both sides
        _sell(water, 1, now=datetime(2026, 8, 31, 23, 59))
        _sell(water, 1, now=datetime(2026, 10, 1, 0, 0))

    def test_summary(self, september):
        summary = period_service.month_summary(parse_month("2026-09"), now=OCTOBER)

        assert summary.month == "2026-09"
        assert summary.drawer_sales_cents == 2400
        assert summary.transfer_sales_cents == 40000
        assert summary.cash_in_cents == 2400 + 10000
        assert summary.cash_out_cents == 3000
        assert summary.net_cash_balance_cents == 2400 + 10000 - 3000
        assert summary.sale_count == 2
        assert summary.movement_count == 2

    def test_exports_then_purges_month_only(self, september):
        exported = []

        result = period_service.consolidate_month(parse_month("2026-09"), exported.append, now=OCTOBER)

        assert exported == [result.summary]
        assert result.sales_purged == 2
        assert result.movements_purged == 2
        created = sorted(s.created_at for s in db.session.query(Sale).all())
        assert created == [datetime(2026, 8, 31, 23, 59), datetime(2026, 10, 1, 0, 0)]
        assert db.session.query(CashMovement).count() == 0

    def test_sale_recorded_during_export_survives(self, register, water):
        _sell(water, 1, now=datetime(2026, 10, 2, 9))
        register_service.record_cash_movement("outflow", "Bread", 500, now=datetime(2026, 10, 5, 9))
        recorded_during_export = []

        def _export(summary):
            # Back-dated into the exported window while the file is written
            recorded_during_export.append(_sell(water, 1, now=datetime(2026, 10, 10, 12)))

        result = period_service.consolidate_month(
            parse_month("2026-10"), _export, now=datetime(2026, 10, 19, 11),
        )

        assert result.summary.cutoff == datetime(2026, 10, 19, 11)
        assert result.summary.sale_count == 1
        assert result.sales_purged == result.summary.sale_count
        assert result.movements_purged == result.summary.movement_count == 1
        remaining = db.session.query(Sale).all()
        assert [s.id for s in remaining] == [recorded_during_export[0].id]
        assert db.session.query(SaleLine).filter_by(sale_id=remaining[0].id).count() == 1

    def test_current_month_summary_stops_at_now(self, register, water):
        _sell(water, 1, now=datetime(2026, 10, 19, 11))
        _sell(water, 2, now=datetime(2026, 10, 19, 13))

        summary = period_service.month_summary(parse_month("2026-10"), now=datetime(2026, 10, 19, 12))

        assert summary.end == datetime(2026, 11, 1)
        assert summary.cutoff == datetime(2026, 10, 19, 12)
        assert summary.drawer_sales_cents == 1200
        assert summary.sale_count == 1

    def test_future_month_is_empty(self, register, water):
        _sell(water, 1, now=datetime(2026, 10, 19, 11))

        summary = period_service.month_summary(parse_month("2026-11"), now=datetime(2026, 10, 19, 12))

        assert summary.cutoff == summary.start
        assert summary.sale_count == 0

    def test_failed_export_deletes_nothing(self, september):
        def _broken_export(summary):
            raise OSError("disk full")

        with pytest.raises(ExportFailed) as exc:
            period_service.consolidate_month(parse_month("2026-09"), _broken_export, now=OCTOBER)

        assert exc.value.details == {"month": "2026-09"}
        assert db.session.query(Sale).count() == 4
        assert db.session.query(CashMovement).count() == 2

    def test_summary_rows(self, september):
        rows = period_service.month_summary(parse_month("2026-09"), now=OCTOBER).to_rows()
        assert rows[0] == ["Monthly summary", "2026-09"]
        assert rows[-1] == ["Drawer balance (in - out)", "94.00"]
