# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/orderdesk/routes/orders.py
"""
Order API Routes

Thin HTTP layer over order_service. Every request names its seller
explicitly: `seller_id` in the JSON body for writes, in the query string
for reads.

ERRORS:
- Domain errors map to their own status (400 / 404 / 409 / 503) with a
  stable machine code in the body
- Anything else is logged and reported as 500
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import OrderCoreError
from ..services import lifecycle_service, order_service
from ..services.order_event_service import list_order_events
from .helpers import request_body, request_seller_id


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_json(order, include_lines: bool = True) -> dict:
    data = order.to_dict(include_lines=include_lines)
    data["status_label"] = lifecycle_service.status_label(order.status)
    return data


# =============================================================================
# CREATE / READ
# =============================================================================

@orders_bp.post("")
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "seller_id": 1,
        "buyer": {"name": "Jane", "email": "...", "phone": "...", "shipping_address": "..."},
        "lines": [{"product_id": 7, "quantity": 2, "unit": "3.5g"}],
        "shipping_cost_cents": 500,
        "actor_id": 3  (optional)
    }

    Returns:
        201: Order created
        400 / 404: Rejected
    """
    try:
        data = request_body()
        order = order_service.create_order(
            request_seller_id(data),
            data.get("buyer"),
            data.get("lines") or [],
            shipping_cost_cents=data.get("shipping_cost_cents", 0),
            actor_id=data.get("actor_id"),
        )
        return jsonify({"order": _order_json(order)}), 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
def list_orders_route():
    """
    List a seller's orders, oldest first.

    Query params:
    - seller_id (required)
    - status: numeric status filter
    - page / per_page: pagination (omit page for everything)
    """
    try:
        result = order_service.list_orders(
            request_seller_id(),
            status=request.args.get("status"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(request_seller_id(), order_id)
        return jsonify({"order": _order_json(order)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/lines")
def list_order_lines_route():
    """Reporting view over order lines; filter with ?order_id=."""
    try:
        result = order_service.list_order_lines(
            request_seller_id(),
            order_id=request.args.get("order_id", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list order lines")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/payments")
def list_payments_route():
    """Reporting view over payments; filter with ?order_id=."""
    try:
        result = order_service.list_payments(
            request_seller_id(),
            order_id=request.args.get("order_id", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LINE ITEMS / SHIPPING
# =============================================================================

@orders_bp.post("/<int:order_id>/lines")
def save_line_route(order_id: int):
    """
    Add a product to the order, or change the quantity of its existing line.

    Request body:
    {"seller_id": 1, "product_id": 7, "quantity": 2, "unit": "3.5g"}
    """
    try:
        data = request_body()
        if data.get("product_id") is None:
            return jsonify({"error": "product_id is required"}), 400

        seller_id = request_seller_id(data)
        line = order_service.add_or_update_line(
            seller_id,
            order_id,
            data["product_id"],
            data.get("quantity"),
            data.get("unit"),
            actor_id=data.get("actor_id"),
        )
        order = order_service.get_order(seller_id, order_id)
        return jsonify({"line": line.to_dict(), "order": _order_json(order, include_lines=False)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to save order line")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/lines/<int:line_id>")
def set_line_quantity_route(order_id: int, line_id: int):
    try:
        data = request_body()
        seller_id = request_seller_id(data)
        line = order_service.set_line_quantity(
            seller_id, order_id, line_id, data.get("quantity"), actor_id=data.get("actor_id")
        )
        order = order_service.get_order(seller_id, order_id)
        return jsonify({"line": line.to_dict(), "order": _order_json(order, include_lines=False)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update line quantity")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>/lines/<int:line_id>")
def remove_line_route(order_id: int, line_id: int):
    try:
        data = request_body()
        order = order_service.remove_line(request_seller_id(data), order_id, line_id, actor_id=data.get("actor_id"))
        return jsonify({"order": _order_json(order)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to remove order line")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/lines/<int:line_id>/packed")
def set_line_packed_route(order_id: int, line_id: int):
    """
    Request body:
    {"seller_id": 1, "packed": true}
    """
    try:
        data = request_body()
        line = order_service.set_line_packed(
            request_seller_id(data), order_id, line_id, data.get("packed"), actor_id=data.get("actor_id")
        )
        return jsonify({"line": line.to_dict()}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update packed flag")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/items")
def update_items_route(order_id: int):
    """
    Save an edit session in one go.

    Request body:
    {"seller_id": 1, "quantities": {"12": 3, "13": 1}, "shipping_cost_cents": 750}
    """
    try:
        data = request_body()
        order = order_service.update_order_items(
            request_seller_id(data),
            order_id,
            data.get("quantities") or {},
            shipping_cost_cents=data.get("shipping_cost_cents"),
            actor_id=data.get("actor_id"),
        )
        return jsonify({"order": _order_json(order)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update order items")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/shipping")
def set_shipping_route(order_id: int):
    try:
        data = request_body()
        order = order_service.set_shipping_cost(
            request_seller_id(data), order_id, data.get("shipping_cost_cents"), actor_id=data.get("actor_id")
        )
        return jsonify({"order": _order_json(order, include_lines=False)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to set shipping cost")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LIFECYCLE
# =============================================================================

@orders_bp.post("/<int:order_id>/status")
def change_status_route(order_id: int):
    """
    Move the order to another status (1-9).

    Request body: {"seller_id": 1, "status": 4}
    """
    try:
        data = request_body()
        order = order_service.change_status(
            request_seller_id(data), order_id, data.get("status"), actor_id=data.get("actor_id")
        )
        return jsonify({"order": _order_json(order, include_lines=False)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to change order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/lock")
def lock_order_route(order_id: int):
    """Lock the order. Locking an already locked order is a no-op."""
    try:
        data = request_body()
        order = order_service.lock_order(request_seller_id(data), order_id, actor_id=data.get("actor_id"))
        return jsonify({"order": _order_json(order, include_lines=False)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to lock order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/clone")
def clone_order_route(order_id: int):
    try:
        data = request_body()
        order = order_service.clone_order(request_seller_id(data), order_id, actor_id=data.get("actor_id"))
        return jsonify({"order": _order_json(order)}), 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to clone order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/sales-person")
def assign_sales_person_route(order_id: int):
    """
    Assign (or reassign) the order's sales person and refresh commission.

    Request body: {"seller_id": 1, "sales_person_id": 4}

    Returns:
        200: Assigned
        503: Commission rate service unavailable (order unchanged, retry)
    """
    try:
        data = request_body()
        if data.get("sales_person_id") is None:
            return jsonify({"error": "sales_person_id is required"}), 400

        order = order_service.assign_sales_person(
            request_seller_id(data), order_id, data["sales_person_id"], actor_id=data.get("actor_id")
        )
        return jsonify({"order": _order_json(order, include_lines=False)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to assign sales person")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@orders_bp.post("/<int:order_id>/payments")
def apply_payment_route(order_id: int):
    """
    Record a payment against the order.

    Request body:
    {
        "seller_id": 1,
        "amount_cents": 2500,
        "method": "CASH",              (or legacy code 1-5)
        "payment_type": "PARTIAL",     (optional; FULL must settle the balance)
        "payment_date": "2024-05-01",  (optional)
        "reference_number": "CHK-1001" (optional)
    }
    """
    try:
        data = request_body()
        seller_id = request_seller_id(data)
        payment = order_service.apply_payment(
            seller_id,
            order_id,
            data.get("amount_cents"),
            data.get("method"),
            data.get("payment_date"),
            payment_type=data.get("payment_type"),
            reference_number=data.get("reference_number"),
            actor_id=data.get("actor_id"),
        )
        summary = order_service.get_payment_summary(seller_id, order_id)
        return jsonify({"payment": payment.to_dict(), "summary": summary}), 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to apply payment")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/payments")
def get_order_payments_route(order_id: int):
    try:
        summary = order_service.get_payment_summary(request_seller_id(), order_id)
        return jsonify(summary), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load order payments")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/totals")
def get_totals_route(order_id: int):
    """Totals, amount paid and balance due (negative balance means credit)."""
    try:
        return jsonify(order_service.get_totals(request_seller_id(), order_id)), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load order totals")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/events")
def get_order_events_route(order_id: int):
    try:
        order = order_service.get_order(request_seller_id(), order_id)
        events = list_order_events(order.id)
        return jsonify({"order_id": order.id, "events": [ev.to_dict() for ev in events]}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load order events")
        return jsonify({"error": "Internal server error"}), 500
