# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Ledger

WHY: Record payments that were approved outside this system and derive
paid/owed figures for an order.

DESIGN PRINCIPLES:
- Append-only: payments are never edited, voided or deleted here
- Partial payments: an order can accumulate many payments
- No overpayment: a payment may never exceed the balance due at the
  instant it is recorded (recompute-then-check under the order lock)
- Lock independent: locked orders still accept payments
- Payments never change order.total_cents
"""

from __future__ import annotations

import re
import uuid

from sqlalchemy import func

from ..errors import InvalidAmount, InvalidMethod, OverpaymentRejected, ValidationError
from ..extensions import db
from ..models import Order, Payment
from ..time_utils import coerce_datetime, utcnow


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "CASH"
METHOD_CHECK = "CHECK"
METHOD_CREDIT_CARD = "CREDIT_CARD"
METHOD_BANK_TRANSFER = "BANK_TRANSFER"
METHOD_OTHER = "OTHER"

VALID_PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_CHECK,
    METHOD_CREDIT_CARD,
    METHOD_BANK_TRANSFER,
    METHOD_OTHER,
]

# Numeric codes used by the order screens
LEGACY_METHOD_CODES = {
    "1": METHOD_CASH,
    "2": METHOD_CHECK,
    "3": METHOD_CREDIT_CARD,
    "4": METHOD_BANK_TRANSFER,
    "5": METHOD_OTHER,
}


# =============================================================================
# PAYMENT TYPES / STATUS (CONSTANTS)
# =============================================================================

PAYMENT_TYPE_PARTIAL = "PARTIAL"
PAYMENT_TYPE_FULL = "FULL"
VALID_PAYMENT_TYPES = [PAYMENT_TYPE_PARTIAL, PAYMENT_TYPE_FULL]

PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"


def normalize_method(method) -> str:
    """
    Normalize a payment method to its canonical name.

    Accepts canonical names in any case ("credit_card", "Credit Card"),
    camelCase names ("creditCard", "bankTransfer") and the numeric codes 1..5.
    """
    if method is None or isinstance(method, bool):
        raise InvalidMethod(f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}")
    key = str(method).strip()
    if key in LEGACY_METHOD_CODES:
        return LEGACY_METHOD_CODES[key]
    key = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", key)
    key = key.upper().replace(" ", "_").replace("-", "_")
    if key not in VALID_PAYMENT_METHODS:
        raise InvalidMethod(
            f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}",
            details={"method": method},
        )
    return key


def _normalize_payment_type(payment_type) -> str:
    if payment_type is None:
        return PAYMENT_TYPE_PARTIAL
    key = str(payment_type).strip().upper()
    if key not in VALID_PAYMENT_TYPES:
        raise ValidationError(f"Invalid payment type: {payment_type}. Must be one of {VALID_PAYMENT_TYPES}")
    return key


# =============================================================================
# DERIVED FIGURES
# =============================================================================

def total_paid(order_id: int) -> int:
    """Sum of all recorded payments for an order (cents)."""
    paid = (
        db.session.query(func.coalesce(func.sum(Payment.amount_cents), 0))
        .filter(Payment.order_id == order_id)
        .scalar()
    )
    return int(paid or 0)


def balance_due(order: Order) -> int:
    """
    order.total - total paid (cents).

    Not clamped: a value <= 0 means fully paid, and interpreting the sign
    is left to the display layer.
    """
    return order.total_cents - total_paid(order.id)


def payment_status(total_cents: int, paid_cents: int) -> str:
    """
    UNPAID:  nothing paid yet
    PARTIAL: 0 < paid < total
    PAID:    paid >= total
    """
    if paid_cents >= total_cents:
        return PAYMENT_STATUS_PAID
    if paid_cents == 0:
        return PAYMENT_STATUS_UNPAID
    return PAYMENT_STATUS_PARTIAL


def get_order_payments(order_id: int) -> list[Payment]:
    """Payments for an order, in the order they were accepted."""
    return (
        db.session.query(Payment)
        .filter_by(order_id=order_id)
        .order_by(Payment.id.asc())
        .all()
    )


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def apply_payment(
    order: Order,
    amount_cents,
    method,
    payment_date=None,
    *,
    payment_type: str | None = None,
    reference_number: str | None = None,
    actor_id: int | None = None,
) -> Payment:
    """
    Record a payment against an order.

    The caller must hold the order lock. The balance is recomputed from the
    stored payments inside that lock, then checked. On success the payment
    is appended and order.total_paid_cents is refreshed, which bumps the
    order version so a concurrent payment on a stale snapshot fails.

    Raises:
        InvalidMethod: method is not one of the five recognized values
        InvalidAmount: amount <= 0 or not an integer number of cents
        OverpaymentRejected: amount exceeds the balance due
        ValidationError: FULL payment that does not settle the balance
    """
    method = normalize_method(method)

    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidAmount("Payment amount must be an integer number of cents", details={"amount_cents": amount_cents})
    if amount_cents <= 0:
        raise InvalidAmount("Payment amount must be positive", details={"amount_cents": amount_cents})

    kind = _normalize_payment_type(payment_type)

    paid = total_paid(order.id)
    remaining = order.total_cents - paid

    if amount_cents > remaining:
        raise OverpaymentRejected(
            f"Payment of {amount_cents} exceeds balance due of {max(remaining, 0)}",
            details={
                "amount_cents": amount_cents,
                "balance_due_cents": remaining,
                "total_paid_cents": paid,
                "total_cents": order.total_cents,
            },
        )

    if kind == PAYMENT_TYPE_FULL and amount_cents != remaining:
        raise ValidationError(
            "Full payment must equal the balance due",
            details={"amount_cents": amount_cents, "balance_due_cents": remaining},
        )

    try:
        occurred = coerce_datetime(payment_date) or utcnow()
    except ValueError:
        raise ValidationError("payment_date must be an ISO-8601 date or datetime", details={"payment_date": payment_date})

    payment = Payment(
        order_id=order.id,
        amount_cents=amount_cents,
        method=method,
        payment_type=kind,
        payment_date=occurred,
        transaction_id=uuid.uuid4().hex,
        reference_number=reference_number,
        actor_id=actor_id,
        created_at=utcnow(),
    )
    db.session.add(payment)

    order.total_paid_cents = paid + amount_cents
    db.session.flush()  # Get payment ID
    return payment


# =============================================================================
# REPORTING
# =============================================================================

def get_payment_summary(order: Order) -> dict:
    """
    Payment summary for an order.

    Returns:
        - total_cents: order total
        - total_paid_cents: sum of payments
        - balance_due_cents: total - paid (unclamped)
        - payment_status: UNPAID, PARTIAL, PAID
        - payments: payment records
    """
    payments = get_order_payments(order.id)
    paid = sum(p.amount_cents for p in payments)
    return {
        "order_id": order.id,
        "total_cents": order.total_cents,
        "total_paid_cents": paid,
        "balance_due_cents": order.total_cents - paid,
        "payment_status": payment_status(order.total_cents, paid),
        "payments": [p.to_dict() for p in payments],
    }
