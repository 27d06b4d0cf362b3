# Overview: Service-layer operations for order lines and totals; encapsulates business logic and database work.

"""
Cart Ledger

WHY: One place owns the line items of an order and the derived totals.
recompute_totals() is the single source of truth for subtotal/tax/total;
nothing else computes an order total.

FROZEN PRICES: a line's unit price is resolved once, when the line is
created. Quantity edits never re-resolve it; they only recompute
line_total = quantity * unit_price.

Functions operate on an order loaded by the caller inside its transaction.
"""

from __future__ import annotations

from ..errors import InvalidQuantity, InvalidShippingCost, NoSuchTier, OrderNotFound, ValidationError
from ..models import Order, OrderLine, Product
from ..models.inventory import PRICING_FLAT
from ..time_utils import utcnow
from .lifecycle_service import ensure_not_locked
from .pricing_service import (
    line_unit_label,
    normalize_breakpoint,
    pricing_definition_for,
    resolve_unit_price,
)


# Maximum money value: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


def validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity("Quantity must be a whole number", details={"quantity": quantity})
    if quantity <= 0:
        raise InvalidQuantity("Quantity must be greater than 0", details={"quantity": quantity})
    return quantity


def compute_tax_cents(order: Order, subtotal_cents: int) -> int:
    """
    Tax for an order.

    tax_rate_bps is recorded on the order but not applied: tax is always 0.
    """
    return 0


def recompute_totals(order: Order) -> Order:
    """Recompute subtotal, tax and total from lines, shipping and commission."""
    subtotal = 0
    for line in order.lines:
        line.line_total_cents = line.quantity * line.unit_price_cents
        subtotal += line.line_total_cents

    order.subtotal_cents = subtotal
    order.tax_cents = compute_tax_cents(order, subtotal)
    order.total_cents = (
        subtotal
        + (order.shipping_cost_cents or 0)
        + (order.total_commission_cents or 0)
        + order.tax_cents
    )
    return order


def _matching_lines(order: Order, product: Product, requested_unit) -> list[OrderLine]:
    candidates = [line for line in order.lines if line.product_id == product.id]
    if product.pricing_kind == PRICING_FLAT or requested_unit is None:
        return candidates
    label = normalize_breakpoint(requested_unit) or str(requested_unit).strip()
    return [line for line in candidates if line.unit == label]


def add_or_update_line(order: Order, product: Product, quantity, requested_unit=None) -> OrderLine:
    """
    Add a line for product/unit, or set the quantity of the existing one.

    Price is resolved only for a new line. An existing line keeps its
    frozen unit price.

    Raises:
        OrderLocked, InvalidQuantity, NoSuchTier
    """
    ensure_not_locked(order, "edit line items")
    quantity = validate_quantity(quantity)

    matches = _matching_lines(order, product, requested_unit)
    if len(matches) > 1:
        raise NoSuchTier(
            f"Product {product.id} has several lines on this order; specify the unit",
            details={"product_id": product.id, "units": [line.unit for line in matches]},
        )

    if matches:
        line = matches[0]
        line.quantity = quantity
    else:
        definition = pricing_definition_for(product)
        unit_price = resolve_unit_price(definition, requested_unit)
        line = OrderLine(
            product_id=product.id,
            product_name=product.name,
            unit=line_unit_label(definition, requested_unit),
            quantity=quantity,
            unit_price_cents=unit_price,
            line_total_cents=quantity * unit_price,
        )
        order.lines.append(line)

    recompute_totals(order)
    return line


def _find_line(order: Order, line_id: int) -> OrderLine:
    for line in order.lines:
        if line.id == line_id:
            return line
    raise OrderNotFound(
        f"Line {line_id} not found on order {order.order_number}",
        details={"order_id": order.id, "line_id": line_id},
    )


def set_line_quantity(order: Order, line_id: int, quantity) -> OrderLine:
    ensure_not_locked(order, "edit line items")
    quantity = validate_quantity(quantity)
    line = _find_line(order, line_id)
    line.quantity = quantity
    recompute_totals(order)
    return line


def remove_line(order: Order, line_id: int) -> OrderLine:
    ensure_not_locked(order, "remove line items")
    line = _find_line(order, line_id)
    order.lines.remove(line)
    recompute_totals(order)
    return line


def set_shipping_cost(order: Order, shipping_cost_cents) -> Order:
    ensure_not_locked(order, "change shipping cost")
    if isinstance(shipping_cost_cents, bool) or not isinstance(shipping_cost_cents, int):
        raise InvalidShippingCost("Shipping cost must be an integer number of cents")
    if shipping_cost_cents < 0:
        raise InvalidShippingCost("Shipping cost must be >= 0", details={"shipping_cost_cents": shipping_cost_cents})
    if shipping_cost_cents > MAX_AMOUNT_CENTS:
        raise InvalidShippingCost(f"Shipping cost cannot exceed {MAX_AMOUNT_CENTS} cents")
    order.shipping_cost_cents = shipping_cost_cents
    recompute_totals(order)
    return order


def set_line_packed(order: Order, line_id: int, packed) -> OrderLine:
    """
    Tick a line as packed (or un-tick it) during fulfilment.

    Packing does not touch prices or totals. Returns the line; packed_at is
    set when the flag goes on and cleared when it goes off.
    """
    ensure_not_locked(order, "pack line items")
    if not isinstance(packed, bool):
        raise ValidationError("packed must be true or false", details={"packed": packed})
    line = _find_line(order, line_id)
    if line.is_packed != packed:
        line.is_packed = packed
        line.packed_at = utcnow() if packed else None
    return line
