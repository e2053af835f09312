# Overview: Typed error kinds raised by the sale, cart, reversal and period services.

"""
Cashdesk error kinds.

Every service raises one of these before touching state, so a rejected
operation leaves the cart, the stock and the drawer exactly as they were.
Routes turn them into JSON bodies of the form
{"error": message, "code": code, "details": {...}}.

Only ConcurrentStockConflict is safe to retry verbatim; every other kind
needs new input from the operator.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for every rejection the engine reports."""

    code = "POS_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "code": self.code,
            "details": self.details,
            "retryable": self.retryable,
        }


class ProductNotFound(PosError):
    code = "PRODUCT_NOT_FOUND"
    http_status = 404


class InsufficientStock(PosError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409


class InsufficientPayment(PosError):
    code = "INSUFFICIENT_PAYMENT"


class InvalidQuantity(PosError):
    code = "INVALID_QUANTITY"


class InvalidDiscount(PosError):
    code = "INVALID_DISCOUNT"


class InvalidPaymentMethod(PosError):
    code = "INVALID_PAYMENT_METHOD"


class EmptyCart(PosError):
    code = "EMPTY_CART"


class SaleNotFound(PosError):
    code = "SALE_NOT_FOUND"
    http_status = 404


class SaleLineNotFound(PosError):
    code = "SALE_LINE_NOT_FOUND"
    http_status = 404


class ConcurrentStockConflict(PosError):
    """Lost a stock race; the whole finalize may be resubmitted unchanged."""

    code = "CONCURRENT_STOCK_CONFLICT"
    http_status = 409
    retryable = True


class StorageFailure(PosError):
    code = "STORAGE_FAILURE"
    http_status = 503


class ExportFailed(PosError):
    code = "EXPORT_FAILED"
    http_status = 502
