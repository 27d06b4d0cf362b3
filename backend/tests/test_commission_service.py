import pytest

from orderdesk.errors import CommissionServiceError, OrderLocked, SalesPersonNotFound
from orderdesk.models import Order, SalesPerson
from orderdesk.services import commission_service, order_service
from orderdesk.services.commission_service import (
    CommissionRateService,
    RateTableCommissionService,
    set_commission_rate_service,
)


class FixedCommission(CommissionRateService):
    def __init__(self, amount):
        self.amount = amount
        self.calls = 0

    def compute_commission(self, order, sales_person):
        self.calls += 1
        return self.amount


class BrokenCommission(CommissionRateService):
    def compute_commission(self, order, sales_person):
        raise TimeoutError("rate service timed out")


@pytest.fixture
def rate_service(app):
    """Restore the default rate service after each test."""
    yield
    set_commission_rate_service(app, RateTableCommissionService())


@pytest.fixture
def order(seller, flat_product):
    # subtotal 5000, shipping 500
    return order_service.create_order(
        seller.id,
        {"name": "Jane Buyer"},
        [{"product_id": flat_product.id, "quantity": 2}],
        shipping_cost_cents=500,
    )


def test_rate_table_rounds_half_up():
    service = RateTableCommissionService()
    order = Order(subtotal_cents=1010)
    person = SalesPerson(commission_rate_bps=250)
    # 1010 * 2.5% = 25.25 -> 25
    assert service.compute_commission(order, person) == 25

    order.subtotal_cents = 1030
    # 1030 * 2.5% = 25.75 -> 26
    assert service.compute_commission(order, person) == 26

    order.subtotal_cents = 1020
    # 1020 * 2.5% = 25.5 -> 26
    assert service.compute_commission(order, person) == 26


def test_assign_stores_commission_and_updates_total(seller, order, sales_person):
    updated = order_service.assign_sales_person(seller.id, order.id, sales_person.id)

    # 5% of 5000
    assert updated.sales_person_id == sales_person.id
    assert updated.total_commission_cents == 250
    assert updated.total_cents == 5000 + 500 + 250


def test_reassign_overwrites_commission(app, rate_service, seller, order, sales_person, db_session):
    order_service.assign_sales_person(seller.id, order.id, sales_person.id)

    other = SalesPerson(seller_id=seller.id, full_name="Alex Kim", commission_rate_bps=0)
    db_session.add(other)
    db_session.commit()

    fixed = FixedCommission(700)
    set_commission_rate_service(app, fixed)
    updated = order_service.assign_sales_person(seller.id, order.id, other.id)

    assert fixed.calls == 1
    assert updated.sales_person_id == other.id
    assert updated.total_commission_cents == 700
    assert updated.total_cents == 5000 + 500 + 700


def test_failing_rate_service_leaves_order_unchanged(app, rate_service, seller, order, sales_person, db_session):
    set_commission_rate_service(app, BrokenCommission())

    with pytest.raises(CommissionServiceError) as exc_info:
        order_service.assign_sales_person(seller.id, order.id, sales_person.id)
    assert exc_info.value.retryable is True

    reloaded = db_session.get(Order, order.id)
    assert reloaded.sales_person_id is None
    assert reloaded.total_commission_cents == 0
    assert reloaded.total_cents == 5500


@pytest.mark.parametrize("bad_amount", [-1, 12.5, None, "250"])
def test_invalid_rate_service_answer_is_a_dependency_error(app, rate_service, seller, order, sales_person, bad_amount):
    set_commission_rate_service(app, FixedCommission(bad_amount))
    with pytest.raises(CommissionServiceError):
        order_service.assign_sales_person(seller.id, order.id, sales_person.id)


def test_locked_order_rejects_assignment(app, rate_service, seller, order, sales_person):
    fixed = FixedCommission(100)
    set_commission_rate_service(app, fixed)
    order_service.lock_order(seller.id, order.id)

    with pytest.raises(OrderLocked):
        order_service.assign_sales_person(seller.id, order.id, sales_person.id)
    assert fixed.calls == 0


def test_inactive_or_foreign_sales_person_is_not_found(seller, other_seller, order, db_session):
    inactive = SalesPerson(seller_id=seller.id, full_name="Gone", commission_rate_bps=100, is_active=False)
    foreign = SalesPerson(seller_id=other_seller.id, full_name="Elsewhere", commission_rate_bps=100)
    db_session.add_all([inactive, foreign])
    db_session.commit()

    for person_id in (inactive.id, foreign.id):
        with pytest.raises(SalesPersonNotFound):
            order_service.assign_sales_person(seller.id, order.id, person_id)


def test_default_service_is_bound_on_app(app):
    with app.app_context():
        assert isinstance(commission_service.get_commission_rate_service(), CommissionRateService)
