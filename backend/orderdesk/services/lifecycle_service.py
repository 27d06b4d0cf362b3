# Overview: Service-layer operations for order status and lock; encapsulates business logic and database work.

"""
Order Lifecycle Service

================================================================================
PURPOSE: Validate and apply order status transitions and the lock flag
================================================================================

STATUSES (fixed codes and display labels):
    1 New Order, 2 Opened, 3 Order Approved, 4 Pending, 5 Processing,
    6 Shipped, 7 Canceled, 8 Completed, 9 POD (proof of delivery)

RULES:
1. New orders start at New Order (1).
2. Any status may move to any other status. There is no adjacency graph;
   Completed, POD and Canceled are end states by convention only.
3. A locked order accepts no transition and no line/shipping edits.
4. Locking is one-way. There is no unlock.
5. Lock does not block payments or reads.

Functions here operate on an order the caller already loaded (and locked)
inside its own transaction. They flush nothing and commit nothing.
================================================================================
"""

from __future__ import annotations

from ..errors import InvalidStatus, OrderLocked
from ..models import Order, OrderLine
from ..time_utils import utcnow


STATUS_NEW_ORDER = 1
STATUS_OPENED = 2
STATUS_ORDER_APPROVED = 3
STATUS_PENDING = 4
STATUS_PROCESSING = 5
STATUS_SHIPPED = 6
STATUS_CANCELED = 7
STATUS_COMPLETED = 8
STATUS_POD = 9

ORDER_STATUS_LABELS = {
    STATUS_NEW_ORDER: "New Order",
    STATUS_OPENED: "Opened",
    STATUS_ORDER_APPROVED: "Order Approved",
    STATUS_PENDING: "Pending",
    STATUS_PROCESSING: "Processing",
    STATUS_SHIPPED: "Shipped",
    STATUS_CANCELED: "Canceled",
    STATUS_COMPLETED: "Completed",
    STATUS_POD: "POD",
}

INITIAL_STATUS = STATUS_NEW_ORDER


def validate_status(status) -> int:
    """
    Normalize a status code (int or numeric string) and check it is known.

    Raises:
        InvalidStatus: If status is not one of the nine codes
    """
    if isinstance(status, bool):
        raise InvalidStatus(f"Invalid status '{status}'")
    try:
        code = int(status)
    except (TypeError, ValueError):
        raise InvalidStatus(
            f"Invalid status '{status}'. Must be one of: {', '.join(str(c) for c in ORDER_STATUS_LABELS)}"
        )
    if code not in ORDER_STATUS_LABELS:
        raise InvalidStatus(
            f"Invalid status '{status}'. Must be one of: {', '.join(str(c) for c in ORDER_STATUS_LABELS)}",
            details={"status": status},
        )
    return code


def status_label(status: int) -> str:
    return ORDER_STATUS_LABELS[validate_status(status)]


def ensure_not_locked(order: Order, action: str) -> None:
    if order.is_locked:
        raise OrderLocked(
            f"Order {order.order_number} is locked; cannot {action}",
            details={"order_id": order.id, "action": action},
        )


def can_transition(order: Order, to_status) -> bool:
    """True when the order accepts a move to to_status."""
    validate_status(to_status)
    return not order.is_locked


def transition(order: Order, to_status) -> int:
    """
    Move the order to to_status.

    Returns:
        The previous status code

    Raises:
        InvalidStatus: unknown status code
        OrderLocked: order is locked
    """
    code = validate_status(to_status)
    ensure_not_locked(order, "change status")

    previous = order.status
    order.status = code
    return previous


def lock(order: Order) -> bool:
    """
    Lock the order. Locking an already locked order is a no-op.

    Returns:
        True if the order became locked by this call
    """
    if order.is_locked:
        return False
    order.is_locked = True
    order.locked_at = utcnow()
    return True


def clone(order: Order, *, order_number: str) -> Order:
    """
    Build an unsaved copy of an order.

    The copy starts at New Order, unlocked, with no payments and no sales
    person. Buyer snapshot, shipping cost, tax rate and line items are
    copied; line unit prices keep their frozen values.
    """
    copy = Order(
        seller_id=order.seller_id,
        order_number=order_number,
        buyer_id=order.buyer_id,
        buyer_name=order.buyer_name,
        buyer_email=order.buyer_email,
        buyer_phone=order.buyer_phone,
        shipping_address=order.shipping_address,
        status=INITIAL_STATUS,
        is_locked=False,
        shipping_cost_cents=order.shipping_cost_cents,
        tax_rate_bps=order.tax_rate_bps,
        total_commission_cents=0,
        total_paid_cents=0,
        cloned_from_order_id=order.id,
    )
    for line in order.lines:
        copy.lines.append(OrderLine(
            product_id=line.product_id,
            product_name=line.product_name,
            unit=line.unit,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.quantity * line.unit_price_cents,
        ))
    return copy
