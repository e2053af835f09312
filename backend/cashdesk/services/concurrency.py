# Overview: Atomic storage primitives and retry handling shared by the write services.

from __future__ import annotations

import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PosError, StorageFailure
from ..extensions import db
from ..models import Product


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def decrement_stock_if_available(product_id: int, quantity: int) -> bool:
    """
    Conditional decrement: UPDATE products SET stock = stock - q
    WHERE id = ? AND stock >= q.

    The check and the write are one statement, so two terminals selling the
    last units cannot both succeed. Returns False when no row matched (stock
    ran short or the product is gone). Runs inside the caller's transaction.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_stock(product_id: int, quantity: int) -> bool:
    """
    UPDATE products SET stock = stock + q WHERE id = ?.

    Returns False when the product no longer exists. Runs inside the
    caller's transaction.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain rejections (PosError) roll back
    and propagate untouched; any other database error rolls back and is
    surfaced as StorageFailure.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except PosError:
            db.session.rollback()
            raise
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise StorageFailure(
                    "Storage is busy; operation was not applied",
                    details={"attempts": attempts},
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageFailure("Storage error; operation was not applied") from exc
    if last_exc:
        raise last_exc

