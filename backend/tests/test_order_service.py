"""
Order service tests.

Each mutation runs as one unit: a rejected operation must leave the stored
order exactly as it was.
"""

import json

import pytest

from orderdesk.errors import (
    InvalidQuantity,
    NoSuchTier,
    OrderLocked,
    OrderNotFound,
    OverpaymentRejected,
    ProductNotFound,
    SellerNotFound,
    ValidationError,
)
from orderdesk.models import Order, OrderLine
from orderdesk.services import order_service
from orderdesk.services.order_event_service import list_order_events


BUYER = {
    "name": "Jane Buyer",
    "email": "jane@example.test",
    "phone": "555-0100",
    "shipping_address": "1 Main St",
}


def _flat_order(seller, flat_product, quantity=2, shipping=500):
    return order_service.create_order(
        seller.id,
        BUYER,
        [{"product_id": flat_product.id, "quantity": quantity}],
        shipping_cost_cents=shipping,
    )


# =============================================================================
# CREATE
# =============================================================================

def test_flat_order_totals(seller, flat_product):
    order = _flat_order(seller, flat_product)

    assert order.subtotal_cents == 5000
    assert order.shipping_cost_cents == 500
    assert order.total_cents == 5500
    assert order.tax_cents == 0
    assert order.status == 1
    assert order.order_number == "O-0001"
    assert order.buyer_name == "Jane Buyer"
    assert order.buyer_email == "jane@example.test"


def test_tiered_order_uses_breakpoint_price(seller, tiered_product):
    order = order_service.create_order(
        seller.id, BUYER, [{"product_id": tiered_product.id, "quantity": 2, "unit": "3.5g"}]
    )

    assert len(order.lines) == 1
    assert order.lines[0].unit_price_cents == 2500
    assert order.subtotal_cents == 5000
    assert order.total_cents == 5000


def test_repeated_lines_are_merged(seller, flat_product, tiered_product):
    order = order_service.create_order(
        seller.id,
        BUYER,
        [
            {"product_id": flat_product.id, "quantity": 1},
            {"product_id": tiered_product.id, "quantity": 1, "unit": "7g"},
            {"product_id": flat_product.id, "quantity": 2},
            {"product_id": tiered_product.id, "quantity": 1, "unit": "7"},
        ],
    )

    quantities = sorted((line.unit, line.quantity) for line in order.lines)
    assert quantities == [("1", 3), ("7g", 2)]
    assert order.subtotal_cents == 3 * 2500 + 2 * 4500


def test_order_numbers_are_sequential_per_seller(seller, other_seller, flat_product, db_session):
    first = _flat_order(seller, flat_product)
    second = _flat_order(seller, flat_product)

    assert (first.order_number, second.order_number) == ("O-0001", "O-0002")


def test_create_rejects_unknown_tier_without_side_effects(seller, tiered_product, db_session):
    with pytest.raises(NoSuchTier):
        order_service.create_order(
            seller.id, BUYER, [{"product_id": tiered_product.id, "quantity": 1, "unit": "5g"}]
        )
    assert db_session.query(Order).count() == 0


@pytest.mark.parametrize("buyer, lines, error", [
    ({}, [{"product_id": 1, "quantity": 1}], ValidationError),
    (BUYER, [], ValidationError),
    (BUYER, [{"quantity": 1}], ValidationError),
    (BUYER, [{"product_id": 1, "quantity": 0}], InvalidQuantity),
])
def test_create_validates_input(seller, buyer, lines, error):
    with pytest.raises(error):
        order_service.create_order(seller.id, buyer, lines)


def test_create_rejects_unknown_seller_and_product(seller, flat_product, other_seller):
    with pytest.raises(SellerNotFound):
        order_service.create_order(9999, BUYER, [{"product_id": flat_product.id, "quantity": 1}])
    with pytest.raises(ProductNotFound):
        order_service.create_order(other_seller.id, BUYER, [{"product_id": flat_product.id, "quantity": 1}])


def test_create_writes_audit_event(seller, flat_product):
    order = _flat_order(seller, flat_product)
    events = list_order_events(order.id)

    assert [ev.event_type for ev in events] == ["order.created"]
    assert json.loads(events[0].payload)["total_cents"] == 5500


# =============================================================================
# LINES / SHIPPING
# =============================================================================

def test_add_update_and_remove_lines(seller, flat_product, tiered_product, db_session):
    order = _flat_order(seller, flat_product)

    line = order_service.add_or_update_line(seller.id, order.id, tiered_product.id, 1, "14g")
    assert line.unit_price_cents == 8000
    assert order_service.get_order(seller.id, order.id).total_cents == 5500 + 8000

    order_service.set_line_quantity(seller.id, order.id, line.id, 2)
    assert order_service.get_order(seller.id, order.id).total_cents == 5500 + 16000

    line_id = line.id
    order = order_service.remove_line(seller.id, order.id, line_id)
    assert order.total_cents == 5500
    assert db_session.get(OrderLine, line_id) is None


def test_quantity_edit_keeps_frozen_price(seller, flat_product, db_session):
    order = _flat_order(seller, flat_product)
    line_id = order.lines[0].id

    flat_product.unit_price_cents = 9900
    db_session.commit()

    line = order_service.set_line_quantity(seller.id, order.id, line_id, 4)
    assert line.unit_price_cents == 2500
    assert order_service.get_order(seller.id, order.id).subtotal_cents == 10000


def test_update_order_items_is_atomic(seller, flat_product, tiered_product):
    order = order_service.create_order(
        seller.id,
        BUYER,
        [
            {"product_id": flat_product.id, "quantity": 1},
            {"product_id": tiered_product.id, "quantity": 1, "unit": "1g"},
        ],
    )
    flat_line, tier_line = order.lines[0].id, order.lines[1].id

    with pytest.raises(InvalidQuantity):
        order_service.update_order_items(
            seller.id, order.id, {flat_line: 5, tier_line: -1}, shipping_cost_cents=900
        )

    unchanged = order_service.get_order(seller.id, order.id)
    assert unchanged.subtotal_cents == 2500 + 900
    assert unchanged.shipping_cost_cents == 0

    updated = order_service.update_order_items(
        seller.id, order.id, {str(flat_line): 2, tier_line: 3}, shipping_cost_cents=900
    )
    assert updated.subtotal_cents == 2 * 2500 + 3 * 900
    assert updated.total_cents == updated.subtotal_cents + 900


def test_update_order_items_rejects_bad_line_id(seller, flat_product):
    order = _flat_order(seller, flat_product)
    with pytest.raises(ValidationError):
        order_service.update_order_items(seller.id, order.id, {"abc": 1})


def test_set_shipping_cost(seller, flat_product):
    order = _flat_order(seller, flat_product)
    order = order_service.set_shipping_cost(seller.id, order.id, 0)
    assert order.total_cents == 5000


# =============================================================================
# STATUS / LOCK / CLONE
# =============================================================================

def test_change_status_records_event(seller, flat_product):
    order = _flat_order(seller, flat_product)
    order = order_service.change_status(seller.id, order.id, 8)

    assert order.status == 8
    event = list_order_events(order.id)[-1]
    assert event.event_type == "order.status_changed"
    assert event.note == "New Order -> Completed"


def test_lock_is_idempotent_and_freezes_order(seller, flat_product):
    order = _flat_order(seller, flat_product)
    line_id = order.lines[0].id

    order_service.lock_order(seller.id, order.id)
    order = order_service.lock_order(seller.id, order.id)
    assert order.is_locked is True
    assert [ev.event_type for ev in list_order_events(order.id)].count("order.locked") == 1

    with pytest.raises(OrderLocked):
        order_service.change_status(seller.id, order.id, 5)
    with pytest.raises(OrderLocked):
        order_service.set_line_quantity(seller.id, order.id, line_id, 9)
    with pytest.raises(OrderLocked):
        order_service.set_shipping_cost(seller.id, order.id, 100)
    with pytest.raises(OrderLocked):
        order_service.remove_line(seller.id, order.id, line_id)

    order = order_service.get_order(seller.id, order.id)
    assert order.status == 1
    assert order.total_cents == 5500


def test_line_packing_toggles_and_respects_lock(seller, flat_product):
    order = _flat_order(seller, flat_product)
    line_id = order.lines[0].id

    line = order_service.set_line_packed(seller.id, order.id, line_id, True)
    assert line.is_packed is True
    assert line.packed_at is not None

    event = list_order_events(order.id)[-1]
    assert event.event_type == "order.line_packed"
    assert json.loads(event.payload) == {"line_id": line_id, "is_packed": True}

    line = order_service.set_line_packed(seller.id, order.id, line_id, False)
    assert line.is_packed is False
    assert line.packed_at is None
    assert order_service.get_order(seller.id, order.id).total_cents == 5500

    with pytest.raises(ValidationError):
        order_service.set_line_packed(seller.id, order.id, line_id, "yes")

    order_service.lock_order(seller.id, order.id)
    with pytest.raises(OrderLocked):
        order_service.set_line_packed(seller.id, order.id, line_id, True)


def test_clone_resets_lifecycle_and_commission(seller, flat_product, sales_person):
    source = _flat_order(seller, flat_product)
    order_service.assign_sales_person(seller.id, source.id, sales_person.id)
    order_service.apply_payment(seller.id, source.id, 1000, "CASH")
    order_service.change_status(seller.id, source.id, 6)
    order_service.set_line_packed(seller.id, source.id, source.lines[0].id, True)
    order_service.lock_order(seller.id, source.id)

    copy = order_service.clone_order(seller.id, source.id)

    assert copy.id != source.id
    assert copy.order_number == "O-0002"
    assert copy.status == 1
    assert copy.is_locked is False
    assert copy.sales_person_id is None
    assert copy.total_commission_cents == 0
    assert copy.total_paid_cents == 0
    assert copy.subtotal_cents == 5000
    assert copy.total_cents == 5500
    assert len(copy.lines) == len(source.lines)
    for copied, original in zip(copy.lines, source.lines):
        assert copied.id != original.id
        assert copied.product_id == original.product_id
        assert copied.unit == original.unit
        assert copied.quantity == original.quantity
        assert copied.unit_price_cents == original.unit_price_cents
        assert copied.is_packed is False
    assert copy.cloned_from_order_id == source.id
    assert order_service.total_paid(seller.id, copy.id) == 0

    source = order_service.get_order(seller.id, source.id)
    assert source.is_locked is True
    assert source.total_commission_cents == 250


# =============================================================================
# PAYMENTS / READS
# =============================================================================

def test_overpayment_scenario(seller, flat_product):
    order = _flat_order(seller, flat_product)

    order_service.apply_payment(seller.id, order.id, 5000, "CASH")
    assert order_service.balance_due(seller.id, order.id) == 500

    with pytest.raises(OverpaymentRejected):
        order_service.apply_payment(seller.id, order.id, 4500, "CASH")

    totals = order_service.get_totals(seller.id, order.id)
    assert totals["total_paid_cents"] == 5000
    assert totals["balance_due_cents"] == 500


def test_balance_can_go_negative_after_total_drops(seller, flat_product):
    order = _flat_order(seller, flat_product)
    order_service.apply_payment(seller.id, order.id, 5500, "CASH")
    order_service.set_line_quantity(seller.id, order.id, order.lines[0].id, 1)

    assert order_service.balance_due(seller.id, order.id) == 3000 - 5500


def test_orders_are_isolated_per_seller(seller, other_seller, flat_product):
    order = _flat_order(seller, flat_product)
    with pytest.raises(OrderNotFound):
        order_service.get_order(other_seller.id, order.id)
    with pytest.raises(OrderNotFound):
        order_service.apply_payment(other_seller.id, order.id, 100, "CASH")


def test_listings_paginate_in_id_order(seller, flat_product):
    orders = [_flat_order(seller, flat_product) for _ in range(3)]
    order_service.change_status(seller.id, orders[1].id, 4)
    order_service.apply_payment(seller.id, orders[0].id, 100, "CASH")

    page = order_service.list_orders(seller.id, page=1, per_page=2)
    assert [o["id"] for o in page["items"]] == [orders[0].id, orders[1].id]
    assert page["pagination"]["total"] == 3
    assert page["pagination"]["has_next"] is True

    pending = order_service.list_orders(seller.id, status=4)
    assert [o["id"] for o in pending["items"]] == [orders[1].id]

    lines = order_service.list_order_lines(seller.id, order_id=orders[2].id)
    assert lines["count"] == 1

    payments = order_service.list_payments(seller.id)
    assert [p["amount_cents"] for p in payments["items"]] == [100]
