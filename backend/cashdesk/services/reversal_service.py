"""
Admin reversal of finalized sales.

WHY: Mistakes at the counter are corrected after the fact by an admin:
a line is reduced (units come back to the shelf) or the whole sale is
deleted. Drawer figures need no compensating entry because the cash ledger
re-derives them from the adjusted sale rows.

DESIGN PRINCIPLES:
- A line can only shrink: new quantity is clamped to [0, original]
- Restored units = original - new; at 0 the line is removed
- Stock restore and sale rewrite commit in ONE transaction, so no reader
  ever sees restored stock without the adjusted sale (or the reverse)
- A product deleted since the sale gets nothing restored; the sale is
  still adjusted
- Sale and SaleLine carry version_id, so two admins editing the same sale
  cannot both apply stale edits (StaleDataError -> retry on fresh rows)
"""

from __future__ import annotations

from ..errors import InvalidQuantity, SaleLineNotFound, SaleNotFound
from ..extensions import db
from ..models import Sale, SaleLine
from ..validation import ValidationError, coerce_int
from .concurrency import increment_stock, lock_for_update, run_with_retry


def _load_sale_locked(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise SaleNotFound("Sale not found", details={"sale_id": sale_id})
    return sale


def _restore(line: SaleLine, units: int) -> int:
    """Give `units` of the line's product back to stock; returns units restored."""
    if units <= 0 or line.product_id is None:
        return 0
    if not increment_stock(line.product_id, units):
        return 0
    return units


def adjust_line_quantity(sale_id: int, line_id: int, new_quantity) -> tuple[Sale, int]:
    """
    Reduce a sale line to `new_quantity` (clamped to [0, original]).

    Returns:
        (adjusted sale, units restored to stock)

    Raises:
        SaleNotFound, SaleLineNotFound, InvalidQuantity
    """
    try:
        requested = coerce_int(new_quantity, "quantity")
    except ValidationError as e:
        raise InvalidQuantity(str(e), details={"value": repr(new_quantity)})

    def _op():
        sale = _load_sale_locked(sale_id)
        line = next((l for l in sale.lines if l.id == line_id), None)
        if line is None:
            raise SaleLineNotFound(
                "Sale line not found",
                details={"sale_id": sale_id, "line_id": line_id},
            )

        original = line.quantity
        kept = max(0, min(original, requested))
        restored = _restore(line, original - kept)

        if kept == 0:
            sale.lines.remove(line)
        else:
            line.quantity = kept
            line.subtotal_cents = kept * line.unit_price_cents

        sale.recompute_totals()
        db.session.commit()
        return sale, restored

    return run_with_retry(_op)


def delete_sale(sale_id: int) -> int:
    """
    Delete a sale, returning every inventory line's units to stock.

    Returns:
        total units restored
    """
    def _op():
        sale = _load_sale_locked(sale_id)
        restored = 0
        for line in sale.lines:
            restored += _restore(line, line.quantity)
        db.session.delete(sale)
        db.session.commit()
        return restored

    return run_with_retry(_op)
