import pytest

from orderdesk.errors import InvalidQuantity, InvalidShippingCost, NoSuchTier, OrderLocked, OrderNotFound
from orderdesk.models import Order
from orderdesk.services import cart_service


def _draft_order(seller_id: int) -> Order:
    return Order(
        seller_id=seller_id,
        order_number="O-TEST",
        buyer_name="Jane Buyer",
        status=1,
        is_locked=False,
        shipping_cost_cents=0,
        total_commission_cents=0,
        total_paid_cents=0,
    )


def test_flat_line_scales_by_quantity(seller, flat_product):
    order = _draft_order(seller.id)
    line = cart_service.add_or_update_line(order, flat_product, 2)

    assert line.unit_price_cents == 2500
    assert line.line_total_cents == 5000
    assert line.unit == "1"
    assert order.subtotal_cents == 5000
    assert order.total_cents == 5000


def test_tiered_line_uses_exact_breakpoint(seller, tiered_product):
    order = _draft_order(seller.id)
    line = cart_service.add_or_update_line(order, tiered_product, 2, "3.5g")

    assert line.unit == "3.5g"
    assert line.unit_price_cents == 2500
    assert order.subtotal_cents == 5000


def test_same_product_and_unit_updates_existing_line(seller, tiered_product):
    order = _draft_order(seller.id)
    first = cart_service.add_or_update_line(order, tiered_product, 2, "3.5g")
    second = cart_service.add_or_update_line(order, tiered_product, 5, "3.5")

    assert first is second
    assert len(order.lines) == 1
    assert order.subtotal_cents == 5 * 2500


def test_different_breakpoints_are_separate_lines(seller, tiered_product):
    order = _draft_order(seller.id)
    cart_service.add_or_update_line(order, tiered_product, 1, "1g")
    cart_service.add_or_update_line(order, tiered_product, 1, "28g")

    assert len(order.lines) == 2
    assert order.subtotal_cents == 900 + 15000


def test_existing_line_keeps_frozen_price(seller, flat_product):
    order = _draft_order(seller.id)
    line = cart_service.add_or_update_line(order, flat_product, 1)

    flat_product.unit_price_cents = 9999
    cart_service.add_or_update_line(order, flat_product, 3)

    assert line.unit_price_cents == 2500
    assert order.subtotal_cents == 7500


def test_unknown_tier_adds_nothing(seller, tiered_product):
    order = _draft_order(seller.id)
    with pytest.raises(NoSuchTier):
        cart_service.add_or_update_line(order, tiered_product, 1, "5g")
    assert order.lines == []


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None])
def test_rejects_bad_quantity(seller, flat_product, quantity):
    order = _draft_order(seller.id)
    with pytest.raises(InvalidQuantity):
        cart_service.add_or_update_line(order, flat_product, quantity)


def test_shipping_and_commission_feed_the_total(seller, flat_product):
    order = _draft_order(seller.id)
    cart_service.add_or_update_line(order, flat_product, 2)
    cart_service.set_shipping_cost(order, 500)
    order.total_commission_cents = 250
    cart_service.recompute_totals(order)

    assert order.tax_cents == 0
    assert order.total_cents == 5000 + 500 + 250


@pytest.mark.parametrize("cost", [-1, 12.5, "500", None])
def test_rejects_bad_shipping_cost(seller, cost):
    order = _draft_order(seller.id)
    with pytest.raises(InvalidShippingCost):
        cart_service.set_shipping_cost(order, cost)
    assert order.shipping_cost_cents == 0


def test_locked_order_rejects_edits(seller, flat_product):
    order = _draft_order(seller.id)
    cart_service.add_or_update_line(order, flat_product, 1)
    order.is_locked = True

    with pytest.raises(OrderLocked):
        cart_service.add_or_update_line(order, flat_product, 4)
    with pytest.raises(OrderLocked):
        cart_service.set_shipping_cost(order, 100)
    assert order.lines[0].quantity == 1


def test_missing_line_is_not_found(seller):
    order = _draft_order(seller.id)
    with pytest.raises(OrderNotFound):
        cart_service.set_line_quantity(order, 12345, 1)
