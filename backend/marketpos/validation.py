from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable

from .money import rate_to_units, round_currency, to_decimal
from .time_utils import parse_iso_date


# Maximum price: $9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = Decimal("9999999.99")
MAX_QUANTITY = 1_000_000


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class Field:
    kind: str
    nullable: bool = False
    max_length: int | None = None


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - fields: what clients are allowed to set (security boundary) and how to coerce them
    - required_on_create: fields required for POST
    """
    fields: dict[str, Field]
    required_on_create: frozenset[str] = frozenset()


PRODUCT_POLICY = ModelValidationPolicy(
    fields={
        "barcode": Field("string", max_length=64),
        "name": Field("string", max_length=255),
        "category": Field("string", nullable=True, max_length=100),
        "quantity": Field("quantity"),
        "cost_price": Field("money"),
        "selling_price": Field("money"),
        "expiry_date": Field("date", nullable=True),
    },
    required_on_create=frozenset({"barcode", "name"}),
)

# barcode is the product identity; PUT addresses it through the URL
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    fields={k: v for k, v in PRODUCT_POLICY.fields.items() if k != "barcode"},
)


def coerce_int(key: str, value: Any) -> int:
    # Integers - strict validation to reject floats and scientific notation
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_money(key: str, value: Any) -> Decimal:
    try:
        amount = round_currency(value)
    except ValueError:
        raise ValidationError(f"{key} must be a decimal amount")
    if amount.is_signed():
        raise ValidationError(f"{key} must be >= 0")
    if amount > MAX_PRICE:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE}")
    return amount


def coerce_rate(key: str, value: Any) -> Decimal:
    """Percentage rate in [0, 100], kept exactly as sent (up to 4 decimal places)."""
    try:
        rate = to_decimal(value)
        rate_to_units(rate)
    except ValueError:
        raise ValidationError(f"{key} must be a percentage with at most 4 decimal places")
    if rate < 0:
        raise ValidationError(f"{key} must be >= 0")
    if rate > 100:
        raise ValidationError(f"{key} cannot exceed 100")
    return rate


def _coerce_quantity(key: str, value: Any) -> int:
    qty = coerce_int(key, value)
    if qty < 0:
        raise ValidationError(f"{key} must be >= 0")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{key} cannot exceed {MAX_QUANTITY}")
    return qty


def _coerce_date(key: str, value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date")
    raise ValidationError(f"{key} must be an ISO-8601 date")


def _coerce_string(key: str, value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a string")
    return str(value).strip()


_COERCERS: dict[str, Callable[[str, Any], Any]] = {
    "string": _coerce_string,
    "quantity": _coerce_quantity,
    "money": coerce_money,
    "date": _coerce_date,
}


def validate_payload(
    *,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against a policy.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        spec = policy.fields[k]

        # NULL handling ("" clears an optional date from an HTML form)
        if raw is None or (spec.kind == "date" and raw == ""):
            if not spec.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _COERCERS[spec.kind](k, raw)

        if spec.kind == "string":
            if val == "" and not spec.nullable:
                raise ValidationError(f"{k} cannot be blank")
            if spec.max_length and len(val) > spec.max_length:
                raise ValidationError(f"{k} exceeds max length {spec.max_length}")
            if val == "":
                val = None

        patch[k] = val

    return patch


def validate_receive(payload: dict) -> dict:
    """Receiving top-up: quantity > 0, optional new prices and note."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if "quantity" not in payload:
        raise ValidationError("Missing required fields: quantity")

    for k in payload.keys():
        if k not in {"quantity", "cost_price", "selling_price", "notes"}:
            raise ValidationError(f"Field not allowed: {k}")

    quantity = _coerce_quantity("quantity", payload["quantity"])
    if quantity <= 0:
        raise ValidationError("quantity must be > 0 for RECEIVE")

    result = {"quantity": quantity}
    for k in ("cost_price", "selling_price"):
        if payload.get(k) is not None:
            result[k] = coerce_money(k, payload[k])
    notes = payload.get("notes")
    if notes is not None:
        notes = _coerce_string("notes", notes)
        if len(notes) > 255:
            raise ValidationError("notes exceeds max length 255")
        result["notes"] = notes or None
    return result


SALE_ITEM_FIELDS = {"product_id", "barcode", "product_name", "unit_price", "unit_cost", "quantity", "line_total"}
SALE_TOTAL_FIELDS = ("subtotal", "tax", "total", "change_amount")


@dataclass(frozen=True)
class SaleRequest:
    lines: list
    payment_amount: Decimal
    tax_percent: Decimal
    # Totals as the client displayed them; checked against the server's figures
    declared: dict


def parse_sale_payload(payload: dict, *, default_tax_percent) -> SaleRequest:
    """
    Parse POST /api/sales into cart lines.

    Line prices are the client's add-time snapshots and are used as sent.
    """
    from .cart import CartLine

    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    lines = []
    for i, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
        unknown = set(item.keys()) - SALE_ITEM_FIELDS
        if unknown:
            raise ValidationError(f"items[{i}]: field not allowed: {', '.join(sorted(unknown))}")
        missing = sorted(
            f for f in ("product_id", "barcode", "product_name", "unit_price", "unit_cost", "quantity")
            if item.get(f) is None
        )
        if missing:
            raise ValidationError(f"items[{i}]: missing required fields: {', '.join(missing)}")

        quantity = _coerce_quantity("quantity", item["quantity"])
        if quantity < 1:
            raise ValidationError(f"items[{i}]: quantity must be >= 1")

        line = CartLine(
            product_id=coerce_int("product_id", item["product_id"]),
            barcode=_coerce_string("barcode", item["barcode"]),
            product_name=_coerce_string("product_name", item["product_name"]),
            unit_price=coerce_money("unit_price", item["unit_price"]),
            unit_cost=coerce_money("unit_cost", item["unit_cost"]),
            quantity=quantity,
            max_quantity=quantity,
        )
        if item.get("line_total") is not None:
            if coerce_money("line_total", item["line_total"]) != line.line_total:
                raise ValidationError(f"items[{i}]: line_total does not match unit_price x quantity")
        lines.append(line)

    if payload.get("payment_amount") is None:
        raise ValidationError("Missing required fields: payment_amount")
    payment_amount = coerce_money("payment_amount", payload["payment_amount"])

    raw_rate = payload.get("tax_percent")
    tax_percent = coerce_rate("tax_percent", raw_rate if raw_rate is not None else default_tax_percent)

    declared = {}
    for k in SALE_TOTAL_FIELDS:
        if payload.get(k) is not None:
            try:
                declared[k] = round_currency(payload[k])
            except ValueError:
                raise ValidationError(f"{k} must be a decimal amount")

    return SaleRequest(
        lines=lines,
        payment_amount=payment_amount,
        tax_percent=tax_percent,
        declared=declared,
    )


def check_declared_totals(sale_request: SaleRequest) -> None:
    """Reject a bill whose client-side totals disagree with the server's arithmetic."""
    from .cart import compute_summary

    if not sale_request.lines or not sale_request.declared:
        return

    summary = compute_summary(sale_request.lines, sale_request.tax_percent)
    expected = {
        "subtotal": summary.subtotal,
        "tax": summary.tax,
        "total": summary.total,
        "change_amount": summary.change_for(sale_request.payment_amount),
    }
    mismatched = sorted(
        k for k, v in sale_request.declared.items()
        if v != expected[k] and not (k == "change_amount" and expected[k] < 0)
    )
    if mismatched:
        raise ValidationError(f"Sale totals do not match cart: {', '.join(mismatched)}")
