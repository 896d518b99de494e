"""
Domain errors for catalog, cart and checkout.

Each error carries a short, non-technical message suitable for showing to a
cashier; anything more detailed belongs in the log.
"""
from __future__ import annotations


class PosError(Exception):
    """Base class for point-of-sale business errors."""

    message = "Operation failed"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.message
        super().__init__(self.message)
        self.details = details or {}


class NotFoundError(PosError):
    message = "Product not found"


class DuplicateBarcodeError(PosError):
    message = "Product with this barcode already exists"


class OutOfStockError(PosError):
    message = "Product out of stock"


class StockExceededError(PosError):
    message = "Cannot exceed available stock"


class EmptyCartError(PosError):
    message = "Cart is empty"


class InsufficientPaymentError(PosError):
    message = "Insufficient payment amount"


class SaleFailedError(PosError):
    """Storage or transaction fault while committing a sale; nothing was written."""

    message = "Failed to process sale"
