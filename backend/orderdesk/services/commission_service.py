# Overview: Service-layer operations for sales person assignment and commission.

"""
Commission Assignment

Assigning a sales person fetches a fresh commission figure from the
commission rate service, stores it on the order and recomputes totals.
The formula belongs to the rate service, not to this module.

- Reassignment overwrites the previous sales person and commission.
- No commission history is kept.
- If the rate service fails, nothing on the order changes.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from flask import current_app

from ..errors import CommissionServiceError, OrderCoreError
from ..models import Order, SalesPerson
from .cart_service import recompute_totals
from .lifecycle_service import ensure_not_locked


EXTENSION_KEY = "commission_rate_service"


class CommissionRateService:
    """Interface for the external commission rate service."""

    def compute_commission(self, order: Order, sales_person: SalesPerson) -> int:
        """Return the commission owed for this order, in cents."""
        raise NotImplementedError


class RateTableCommissionService(CommissionRateService):
    """
    Default rate service: the sales person's basis-point rate applied to
    the order subtotal, rounded half-up to the cent.
    """

    def compute_commission(self, order: Order, sales_person: SalesPerson) -> int:
        rate_bps = sales_person.commission_rate_bps or 0
        amount = Decimal(order.subtotal_cents) * Decimal(rate_bps) / Decimal(10_000)
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def init_app(app, service: CommissionRateService | None = None) -> None:
    app.extensions[EXTENSION_KEY] = service or RateTableCommissionService()


def set_commission_rate_service(app, service: CommissionRateService) -> None:
    app.extensions[EXTENSION_KEY] = service


def get_commission_rate_service() -> CommissionRateService:
    service = current_app.extensions.get(EXTENSION_KEY)
    if service is None:
        service = RateTableCommissionService()
        current_app.extensions[EXTENSION_KEY] = service
    return service


def fetch_commission(order: Order, sales_person: SalesPerson) -> int:
    """
    Ask the rate service for a commission figure.

    Raises:
        CommissionServiceError: the service failed, timed out or returned
            something that is not a non-negative amount of cents
    """
    service = get_commission_rate_service()
    try:
        amount = service.compute_commission(order, sales_person)
    except OrderCoreError:
        raise
    except Exception as exc:
        current_app.logger.warning(
            "Commission rate service failed for order %s / sales person %s: %s",
            order.id, sales_person.id, exc,
        )
        raise CommissionServiceError(
            "Commission rate service unavailable; assignment not applied",
            details={"order_id": order.id, "sales_person_id": sales_person.id},
        ) from exc

    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise CommissionServiceError(
            "Commission rate service returned an invalid amount",
            details={"order_id": order.id, "sales_person_id": sales_person.id, "amount": repr(amount)},
        )
    return amount


def assign(order: Order, sales_person: SalesPerson) -> Order:
    """
    Bind a sales person to the order and refresh the commission.

    The commission is fetched before anything on the order is touched.

    Raises:
        OrderLocked: the order is locked (commission changes the total)
        CommissionServiceError: rate service failure
    """
    ensure_not_locked(order, "assign a sales person")

    commission = fetch_commission(order, sales_person)

    order.sales_person_id = sales_person.id
    order.total_commission_cents = commission
    recompute_totals(order)
    return order
