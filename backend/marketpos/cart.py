# backend/marketpos/cart.py
"""
Till-side state: the cart being scanned, the session that owns it, and the
receiving-form barcode lookup.

Nothing here is persisted. The cart snapshots price and cost when an item
is scanned; checkout sends those snapshots as-is, so a price edit made while
a customer is at the till does not change what they are charged.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Iterable, Optional

from .errors import NotFoundError, OutOfStockError, StockExceededError
from .money import compute_tax, round_currency, to_decimal


@dataclass
class CartLine:
    product_id: int
    barcode: str
    product_name: str
    unit_price: Decimal
    unit_cost: Decimal
    quantity: int = 1
    # stock ceiling observed when the line was last scanned
    max_quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return round_currency(self.unit_price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "barcode": self.barcode,
            "product_name": self.product_name,
            "unit_price": self.unit_price,
            "unit_cost": self.unit_cost,
            "quantity": self.quantity,
            "line_total": self.line_total,
        }


@dataclass(frozen=True)
class CartSummary:
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def change_for(self, payment_amount) -> Decimal:
        return round_currency(to_decimal(payment_amount) - self.total)

    def to_dict(self) -> dict:
        return {"subtotal": self.subtotal, "tax": self.tax, "total": self.total}


def compute_summary(lines: Iterable[CartLine], tax_percent) -> CartSummary:
    subtotal = round_currency(sum((line.line_total for line in lines), Decimal("0")))
    tax = compute_tax(subtotal, tax_percent)
    return CartSummary(subtotal=subtotal, tax=tax, total=round_currency(subtotal + tax))


def _default_lookup(barcode: str):
    from .services.catalog_service import get_by_barcode
    return get_by_barcode(barcode)


class Cart:
    """
    Line items being assembled before a sale.

    lookup(barcode) must return an object with id, barcode, name, quantity,
    selling_price and cost_price, or raise NotFoundError.
    """

    def __init__(self, lookup: Callable | None = None):
        self._lookup = lookup or _default_lookup
        self._lines: list[CartLine] = []

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def _find(self, barcode: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.barcode == barcode:
                return line
        return None

    def add_by_barcode(self, barcode: str) -> CartLine:
        barcode = (barcode or "").strip()
        if not barcode:
            raise NotFoundError("Please enter a barcode")

        product = self._lookup(barcode)
        if product.quantity <= 0:
            raise OutOfStockError()

        line = self._find(barcode)
        if line is not None:
            if line.quantity + 1 > product.quantity:
                raise StockExceededError(
                    "Cannot add more than available stock",
                    details={"barcode": barcode, "available": product.quantity},
                )
            line.quantity += 1
            line.max_quantity = product.quantity
            return line

        line = CartLine(
            product_id=product.id,
            barcode=product.barcode,
            product_name=product.name,
            unit_price=to_decimal(product.selling_price),
            unit_cost=to_decimal(product.cost_price),
            quantity=1,
            max_quantity=product.quantity,
        )
        self._lines.append(line)
        return line

    def change_quantity(self, index: int, delta: int) -> Optional[CartLine]:
        """Returns the updated line, or None when it dropped to zero and was removed."""
        line = self._lines[index]
        new_quantity = line.quantity + delta

        if new_quantity <= 0:
            self.remove(index)
            return None

        if new_quantity > line.max_quantity:
            raise StockExceededError(
                details={"barcode": line.barcode, "available": line.max_quantity},
            )

        line.quantity = new_quantity
        return line

    def remove(self, index: int) -> CartLine:
        return self._lines.pop(index)

    def clear(self) -> None:
        self._lines.clear()

    def compute_summary(self, tax_percent) -> CartSummary:
        return compute_summary(self._lines, tax_percent)


class TillSession:
    """
    One till: the cart, the store's tax rate and the last completed sale.

    Owning these explicitly lets several tills (or tests) run side by side.
    """

    def __init__(self, tax_percent, lookup: Callable | None = None):
        self.tax_percent = to_decimal(tax_percent)
        self.cart = Cart(lookup)
        # receipt cache for printing / reprinting the last bill
        self.last_sale: Optional[dict] = None

    def summary(self) -> CartSummary:
        return self.cart.compute_summary(self.tax_percent)

    def to_dict(self, payment_amount=None) -> dict:
        """Till display state: the lines, the running totals and, once tendered, the change."""
        data = {
            "items": [line.to_dict() for line in self.cart.lines],
            "tax_percent": self.tax_percent,
            **self.summary().to_dict(),
        }
        if payment_amount is not None:
            data["payment_amount"] = round_currency(payment_amount)
            data["change_amount"] = self.summary().change_for(payment_amount)
        return data

    def checkout(self, payment_amount):
        """
        Complete the sale for the current cart.

        On success the sale is cached for the receipt and the cart is
        cleared. On any error the cart is left as it was, so the cashier
        can fix the problem and retry.
        """
        from .services.sale_service import complete_sale

        sale = complete_sale(self.cart.lines, payment_amount, tax_percent=self.tax_percent)
        self.last_sale = sale.to_dict(include_lines=True)
        self.cart.clear()
        return sale


@dataclass
class LookupResult:
    barcode: str
    product: object = None

    @property
    def exists(self) -> bool:
        return self.product is not None


@dataclass
class LatestLookup:
    """
    Barcode lookup for the receiving form where the latest request wins.

    Each keystroke-driven request takes a ticket; a result is only handed
    back if no newer request (or cancel) happened while it was in flight.
    """
    lookup: Callable = field(default=_default_lookup)
    _generation: int = field(default=0, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def cancel(self) -> None:
        self.begin()

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._generation

    def fetch(self, barcode: str) -> Optional[LookupResult]:
        """Returns None when superseded; a result with product=None for an unknown barcode."""
        ticket = self.begin()
        barcode = (barcode or "").strip()
        try:
            product = self.lookup(barcode) if barcode else None
        except NotFoundError:
            product = None

        if not self.is_current(ticket):
            return None
        return LookupResult(barcode=barcode, product=product)
