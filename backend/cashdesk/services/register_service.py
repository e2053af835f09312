"""
Register state and manual cash movements.

WHY: The drawer needs a reset point (opening balance + opened_at) and a
record of every cash movement that is not a sale: change-fund deposits,
expenses, inventory purchases.

DESIGN PRINCIPLES:
- One register state row (id=1), created lazily with a zero balance
- Only day close moves the reset point (see period_service)
- Cash movements are append-only; period purges are the only deletes
- Sales never create movements; the cash ledger derives drawer sales
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import RegisterState, CashMovement, Sale, REGISTER_STATE_ID, MOVEMENT_KINDS
from ..validation import ValidationError, MAX_PRICE_CENTS, require_text
from cashdesk.time_utils import utcnow, normalize_datetime
from .concurrency import lock_for_update, run_with_retry


# =============================================================================
# REGISTER STATE
# =============================================================================

def _earliest_activity() -> datetime | None:
    # History recorded before the row existed must stay inside the live window
    first_sale = db.session.query(func.min(Sale.created_at)).scalar()
    first_movement = db.session.query(func.min(CashMovement.created_at)).scalar()
    candidates = [normalize_datetime(dt) for dt in (first_sale, first_movement) if dt is not None]
    return min(candidates) if candidates else None


def get_register_state(*, lock: bool = False) -> RegisterState:
    """
    Return the register state row, creating and committing it on first use
    (opening balance 0, opened at the earliest recorded sale or movement, or
    now). Call before any other write in a transaction.
    """
    query = db.session.query(RegisterState).filter_by(id=REGISTER_STATE_ID)
    if lock:
        query = lock_for_update(query)
    state = query.first()
    if state:
        return state

    state = RegisterState(
        id=REGISTER_STATE_ID,
        opening_balance_cents=0,
        opened_at=_earliest_activity() or utcnow(),
    )
    db.session.add(state)
    try:
        db.session.commit()
    except IntegrityError:
        # Another client created it first
        db.session.rollback()
    return query.one()


def ensure_register_state(opening_balance_cents: int = 0) -> RegisterState:
    """Bootstrap helper: create the register row if missing and commit."""
    state = db.session.query(RegisterState).filter_by(id=REGISTER_STATE_ID).first()
    if state is None:
        state = RegisterState(
            id=REGISTER_STATE_ID,
            opening_balance_cents=opening_balance_cents,
            opened_at=_earliest_activity() or utcnow(),
        )
        db.session.add(state)
        db.session.commit()
    return state


# =============================================================================
# CASH MOVEMENTS
# =============================================================================

def record_cash_movement(
    kind: str,
    concept: str,
    amount_cents: int,
    *,
    now: datetime | None = None,
) -> CashMovement:
    """
    Record a manual inflow, outflow or purchase.

    Raises:
        ValidationError: unknown kind, empty concept, non-positive amount
    """
    kind = (kind or "").strip().lower()
    if kind not in MOVEMENT_KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(MOVEMENT_KINDS)}")
    concept = require_text(concept, "concept")
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount_cents must be an integer")
    if amount_cents <= 0:
        raise ValidationError("amount_cents must be positive")
    if amount_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"amount_cents exceeds maximum of {MAX_PRICE_CENTS}")

    def _op():
        movement = CashMovement(
            kind=kind,
            concept=concept,
            amount_cents=amount_cents,
            created_at=normalize_datetime(now) if now else utcnow(),
        )
        db.session.add(movement)
        db.session.commit()
        return movement

    return run_with_retry(_op)


def list_cash_movements(start: datetime | None = None, end: datetime | None = None) -> list[CashMovement]:
    """Movements in [start, end), newest first."""
    query = db.session.query(CashMovement)
    if start is not None:
        query = query.filter(CashMovement.created_at >= start)
    if end is not None:
        query = query.filter(CashMovement.created_at < end)
    return query.order_by(CashMovement.created_at.desc(), CashMovement.id.desc()).all()
