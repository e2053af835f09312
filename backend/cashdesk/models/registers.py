from __future__ import annotations

from ..extensions import db
from cashdesk.time_utils import to_utc_z

MOVEMENT_INFLOW = "inflow"
MOVEMENT_OUTFLOW = "outflow"
MOVEMENT_PURCHASE = "purchase"
MOVEMENT_KINDS = (MOVEMENT_INFLOW, MOVEMENT_OUTFLOW, MOVEMENT_PURCHASE)

REGISTER_STATE_ID = 1


class RegisterState(db.Model):
    """
    The drawer's last reset point (singleton row, id=1).

    Only day close mutates it: the drawer balance computed over
    [opened_at, now) becomes the new opening balance and opened_at moves
    to now.
    """
    __tablename__ = "register_state"

    id = db.Column(db.Integer, primary_key=True)
    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "opening_balance_cents": self.opening_balance_cents,
            "opened_at": to_utc_z(self.opened_at),
            "version_id": self.version_id,
        }

class CashMovement(db.Model):
    """
    Manual cash movement in or out of the drawer.

    KINDS:
    - inflow: cash added (change fund, deposit)
    - outflow: cash removed (expense, withdrawal)
    - purchase: inventory purchase paid from the drawer

    Append-only; rows are only deleted by day close and month consolidation.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_cash_movements_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False, index=True)
    concept = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "concept": self.concept,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }
