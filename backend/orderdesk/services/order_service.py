# Overview: Service-layer operations for orders; composition root for cart, lifecycle, payment and commission.

"""
Order Service

WHY: Single API for everything that changes an order. Every mutation runs
as one unit:

    load order FOR UPDATE -> validate -> mutate -> recompute totals
    -> append order event -> commit

inside run_with_retry. Domain errors roll the whole unit back, so a
rejected operation leaves no trace. Optimistic version checks on the order
row turn concurrent edits into a retry against a fresh snapshot.

Reads (totals, balance, listings) run without locks against the latest
committed state.

MULTI-SELLER: every call names seller_id explicitly. An order, product or
sales person owned by another seller is reported as not found.
"""

from __future__ import annotations

from flask import current_app

from ..errors import (
    InvalidQuantity,
    OrderNotFound,
    ProductNotFound,
    SalesPersonNotFound,
    SellerNotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Order, OrderLine, Payment, Product, SalesPerson, Seller
from ..models.inventory import PRICING_FLAT
from . import cart_service, commission_service, lifecycle_service, payment_service
from .concurrency import lock_for_update, run_with_retry
from .document_service import DOCUMENT_TYPE_ORDER, next_document_number
from .order_event_service import append_order_event
from .pagination import paginate
from .pricing_service import normalize_breakpoint


# =============================================================================
# LOOKUPS
# =============================================================================

def _require_seller(seller_id: int) -> Seller:
    seller = db.session.get(Seller, seller_id) if seller_id else None
    if not seller:
        raise SellerNotFound(f"Seller {seller_id} not found")
    return seller


def _load_order(seller_id: int, order_id: int, *, for_update: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id, seller_id=seller_id)
    if for_update:
        query = lock_for_update(query)
    order = query.first()
    if not order:
        raise OrderNotFound(f"Order {order_id} not found", details={"order_id": order_id})
    return order


def _load_product(seller_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, seller_id=seller_id).first()
    if not product:
        raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def _load_sales_person(seller_id: int, sales_person_id: int) -> SalesPerson:
    person = db.session.query(SalesPerson).filter_by(id=sales_person_id, seller_id=seller_id).first()
    if not person or not person.is_active:
        raise SalesPersonNotFound(
            f"Sales person {sales_person_id} not found",
            details={"sales_person_id": sales_person_id},
        )
    return person


def get_order(seller_id: int, order_id: int) -> Order:
    return _load_order(seller_id, order_id)


# =============================================================================
# CREATE / CLONE
# =============================================================================

def create_order(
    seller_id: int,
    buyer: dict,
    line_requests: list[dict],
    *,
    shipping_cost_cents: int = 0,
    actor_id: int | None = None,
) -> Order:
    """
    Create an order from a checkout.

    Args:
        seller_id: Seller that owns the order
        buyer: Snapshot {"name", "email", "phone", "shipping_address", "id"}
        line_requests: [{"product_id", "quantity", "unit"}]; "unit" is the
            tier breakpoint for tiered products, ignored for flat ones.
            Repeated product/unit requests are merged.
        shipping_cost_cents: Initial shipping cost

    Raises:
        ValidationError, NotFound (product / tier / seller)
    """
    if not isinstance(buyer, dict) or not str(buyer.get("name") or "").strip():
        raise ValidationError("Buyer name is required")
    if not line_requests:
        raise ValidationError("An order needs at least one line")
    for req in line_requests:
        if not isinstance(req, dict) or req.get("product_id") is None:
            raise ValidationError("Each line needs a product_id", details={"line": req})
        cart_service.validate_quantity(req.get("quantity"))

    def _op():
        _require_seller(seller_id)

        # Merge repeats before pricing anything
        merged: dict[tuple, dict] = {}
        for req in line_requests:
            product = _load_product(seller_id, req["product_id"])
            unit = req.get("unit")
            if product.pricing_kind == PRICING_FLAT:
                key = (product.id, None)
            else:
                key = (product.id, normalize_breakpoint(unit) or str(unit))
            if key in merged:
                merged[key]["quantity"] += req["quantity"]
            else:
                merged[key] = {"product": product, "quantity": req["quantity"], "unit": unit}

        order_number = next_document_number(
            seller_id=seller_id, document_type=DOCUMENT_TYPE_ORDER, prefix="O"
        )
        order = Order(
            seller_id=seller_id,
            order_number=order_number,
            buyer_id=buyer.get("id"),
            buyer_name=str(buyer["name"]).strip(),
            buyer_email=buyer.get("email"),
            buyer_phone=buyer.get("phone"),
            shipping_address=buyer.get("shipping_address"),
            status=lifecycle_service.INITIAL_STATUS,
            is_locked=False,
            tax_rate_bps=current_app.config.get("DEFAULT_TAX_RATE_BPS", 0),
            total_commission_cents=0,
            total_paid_cents=0,
        )
        db.session.add(order)

        for entry in merged.values():
            cart_service.add_or_update_line(order, entry["product"], entry["quantity"], entry["unit"])
        cart_service.set_shipping_cost(order, shipping_cost_cents)
        db.session.flush()

        append_order_event(
            order,
            "order.created",
            actor_id=actor_id,
            note=f"Order {order.order_number} created",
            payload={"lines": len(order.lines), "total_cents": order.total_cents},
        )
        db.session.commit()
        current_app.logger.info(
            "Order %s created for seller %s (total_cents=%s)", order.order_number, seller_id, order.total_cents
        )
        return order

    return run_with_retry(_op)


def clone_order(seller_id: int, order_id: int, *, actor_id: int | None = None) -> Order:
    """
    Copy an order into a fresh New Order.

    Works on locked orders too; the source order is not modified.
    """
    def _op():
        source = _load_order(seller_id, order_id)
        order_number = next_document_number(
            seller_id=seller_id, document_type=DOCUMENT_TYPE_ORDER, prefix="O"
        )
        copy = lifecycle_service.clone(source, order_number=order_number)
        db.session.add(copy)
        cart_service.recompute_totals(copy)
        db.session.flush()

        append_order_event(
            copy,
            "order.cloned",
            actor_id=actor_id,
            note=f"Cloned from {source.order_number}",
            payload={"source_order_id": source.id},
        )
        db.session.commit()
        current_app.logger.info("Order %s cloned from %s", copy.order_number, source.order_number)
        return copy

    return run_with_retry(_op)


# =============================================================================
# LINE ITEMS / SHIPPING
# =============================================================================

def add_or_update_line(
    seller_id: int,
    order_id: int,
    product_id: int,
    quantity: int,
    unit=None,
    *,
    actor_id: int | None = None,
) -> OrderLine:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        product = _load_product(seller_id, product_id)
        line = cart_service.add_or_update_line(order, product, quantity, unit)
        db.session.flush()

        append_order_event(
            order,
            "order.line_saved",
            actor_id=actor_id,
            payload={"line_id": line.id, "product_id": product_id, "quantity": line.quantity},
        )
        db.session.commit()
        return line

    return run_with_retry(_op)


def set_line_quantity(
    seller_id: int,
    order_id: int,
    line_id: int,
    quantity: int,
    *,
    actor_id: int | None = None,
) -> OrderLine:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        line = cart_service.set_line_quantity(order, line_id, quantity)

        append_order_event(
            order,
            "order.line_saved",
            actor_id=actor_id,
            payload={"line_id": line.id, "quantity": line.quantity},
        )
        db.session.commit()
        return line

    return run_with_retry(_op)


def remove_line(seller_id: int, order_id: int, line_id: int, *, actor_id: int | None = None) -> Order:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        line = cart_service.remove_line(order, line_id)

        append_order_event(
            order,
            "order.line_removed",
            actor_id=actor_id,
            payload={"line_id": line_id, "product_id": line.product_id},
        )
        db.session.commit()
        return order

    return run_with_retry(_op)


def set_line_packed(
    seller_id: int,
    order_id: int,
    line_id: int,
    packed: bool,
    *,
    actor_id: int | None = None,
) -> OrderLine:
    """Mark a line packed or unpacked on the fulfilment screen."""
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        line = cart_service.set_line_packed(order, line_id, packed)

        append_order_event(
            order,
            "order.line_packed",
            actor_id=actor_id,
            payload={"line_id": line.id, "is_packed": line.is_packed},
        )
        db.session.commit()
        current_app.logger.info(
            "Order %s line %s packed=%s", order.order_number, line.id, line.is_packed
        )
        return line

    return run_with_retry(_op)


def update_order_items(
    seller_id: int,
    order_id: int,
    quantities: dict,
    *,
    shipping_cost_cents: int | None = None,
    actor_id: int | None = None,
) -> Order:
    """
    Save an edit session: several line quantities plus shipping, atomically.

    Args:
        quantities: {line_id: new_quantity}
    """
    if not isinstance(quantities, dict):
        raise InvalidQuantity("quantities must map line ids to quantities")

    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        for line_id, quantity in quantities.items():
            try:
                line_key = int(line_id)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid line id: {line_id}")
            cart_service.set_line_quantity(order, line_key, quantity)
        if shipping_cost_cents is not None:
            cart_service.set_shipping_cost(order, shipping_cost_cents)
        else:
            lifecycle_service.ensure_not_locked(order, "edit line items")

        append_order_event(
            order,
            "order.items_updated",
            actor_id=actor_id,
            payload={
                "quantities": {str(k): v for k, v in quantities.items()},
                "shipping_cost_cents": order.shipping_cost_cents,
                "total_cents": order.total_cents,
            },
        )
        db.session.commit()
        return order

    return run_with_retry(_op)


def set_shipping_cost(
    seller_id: int,
    order_id: int,
    shipping_cost_cents: int,
    *,
    actor_id: int | None = None,
) -> Order:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        cart_service.set_shipping_cost(order, shipping_cost_cents)

        append_order_event(
            order,
            "order.shipping_changed",
            actor_id=actor_id,
            payload={"shipping_cost_cents": shipping_cost_cents},
        )
        db.session.commit()
        return order

    return run_with_retry(_op)


# =============================================================================
# STATUS / LOCK
# =============================================================================

def change_status(seller_id: int, order_id: int, status, *, actor_id: int | None = None) -> Order:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        previous = lifecycle_service.transition(order, status)

        append_order_event(
            order,
            "order.status_changed",
            actor_id=actor_id,
            note=f"{lifecycle_service.status_label(previous)} -> {lifecycle_service.status_label(order.status)}",
            payload={"from": previous, "to": order.status},
        )
        db.session.commit()
        current_app.logger.info(
            "Order %s status %s -> %s", order.order_number, previous, order.status
        )
        return order

    return run_with_retry(_op)


def lock_order(seller_id: int, order_id: int, *, actor_id: int | None = None) -> Order:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        if lifecycle_service.lock(order):
            append_order_event(order, "order.locked", actor_id=actor_id)
            current_app.logger.info("Order %s locked", order.order_number)
        db.session.commit()
        return order

    return run_with_retry(_op)


# =============================================================================
# SALES PERSON / COMMISSION
# =============================================================================

def assign_sales_person(
    seller_id: int,
    order_id: int,
    sales_person_id: int,
    *,
    actor_id: int | None = None,
) -> Order:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        person = _load_sales_person(seller_id, sales_person_id)
        previous = order.sales_person_id
        commission_service.assign(order, person)

        append_order_event(
            order,
            "order.sales_person_assigned",
            actor_id=actor_id,
            payload={
                "previous_sales_person_id": previous,
                "sales_person_id": person.id,
                "total_commission_cents": order.total_commission_cents,
            },
        )
        db.session.commit()
        current_app.logger.info(
            "Order %s assigned to sales person %s (commission_cents=%s)",
            order.order_number, person.id, order.total_commission_cents,
        )
        return order

    return run_with_retry(_op)


# =============================================================================
# PAYMENTS
# =============================================================================

def apply_payment(
    seller_id: int,
    order_id: int,
    amount_cents: int,
    method,
    payment_date=None,
    *,
    payment_type: str | None = None,
    reference_number: str | None = None,
    actor_id: int | None = None,
) -> Payment:
    def _op():
        order = _load_order(seller_id, order_id, for_update=True)
        payment = payment_service.apply_payment(
            order,
            amount_cents,
            method,
            payment_date,
            payment_type=payment_type,
            reference_number=reference_number,
            actor_id=actor_id,
        )

        append_order_event(
            order,
            "payment.applied",
            actor_id=actor_id,
            payment_id=payment.id,
            payload={"amount_cents": payment.amount_cents, "method": payment.method},
        )
        db.session.commit()
        current_app.logger.info(
            "Payment %s of %s applied to order %s", payment.transaction_id, payment.amount_cents, order.order_number
        )
        return payment

    return run_with_retry(_op)


def total_paid(seller_id: int, order_id: int) -> int:
    order = _load_order(seller_id, order_id)
    return payment_service.total_paid(order.id)


def balance_due(seller_id: int, order_id: int) -> int:
    order = _load_order(seller_id, order_id)
    return payment_service.balance_due(order)


def get_totals(seller_id: int, order_id: int) -> dict:
    order = _load_order(seller_id, order_id)
    paid = payment_service.total_paid(order.id)
    return {
        "order_id": order.id,
        "subtotal_cents": order.subtotal_cents,
        "shipping_cost_cents": order.shipping_cost_cents,
        "total_commission_cents": order.total_commission_cents,
        "tax_cents": order.tax_cents,
        "total_cents": order.total_cents,
        "total_paid_cents": paid,
        "balance_due_cents": order.total_cents - paid,
    }


def get_payment_summary(seller_id: int, order_id: int) -> dict:
    order = _load_order(seller_id, order_id)
    return payment_service.get_payment_summary(order)


# =============================================================================
# READ MODELS (reporting)
# =============================================================================

def list_orders(
    seller_id: int,
    *,
    status=None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Order).filter(Order.seller_id == seller_id)
    if status is not None:
        query = query.filter(Order.status == lifecycle_service.validate_status(status))
    return paginate(query.order_by(Order.id.asc()), page, per_page)


def list_order_lines(
    seller_id: int,
    *,
    order_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = (
        db.session.query(OrderLine)
        .join(Order, OrderLine.order_id == Order.id)
        .filter(Order.seller_id == seller_id)
    )
    if order_id is not None:
        query = query.filter(OrderLine.order_id == order_id)
    return paginate(query.order_by(OrderLine.id.asc()), page, per_page)


def list_payments(
    seller_id: int,
    *,
    order_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = (
        db.session.query(Payment)
        .join(Order, Payment.order_id == Order.id)
        .filter(Order.seller_id == seller_id)
    )
    if order_id is not None:
        query = query.filter(Payment.order_id == order_id)
    return paginate(query.order_by(Payment.id.asc()), page, per_page)
