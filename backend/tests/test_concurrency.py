import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from orderdesk.errors import ConcurrencyConflict, OverpaymentRejected
from orderdesk.extensions import db
from orderdesk.models import Order, Payment
from orderdesk.services import order_service, payment_service
from orderdesk.services.concurrency import run_with_retry
from orderdesk.time_utils import utcnow


def test_retries_stale_data_then_succeeds(app):
    attempts = []

    def _op():
        attempts.append(1)
        if len(attempts) < 3:
            raise StaleDataError("version mismatch")
        return "done"

    assert run_with_retry(_op, attempts=3, backoff_base=0) == "done"
    assert len(attempts) == 3


def test_exhausted_retries_raise_retryable_conflict(app):
    def _op():
        raise OperationalError("UPDATE orders", {}, Exception("database is locked"))

    with pytest.raises(ConcurrencyConflict) as exc_info:
        run_with_retry(_op, attempts=2, backoff_base=0)

    assert exc_info.value.retryable is True
    assert exc_info.value.http_status == 503


def test_domain_errors_are_not_retried(app):
    attempts = []

    def _op():
        attempts.append(1)
        raise OverpaymentRejected("too much")

    with pytest.raises(OverpaymentRejected):
        run_with_retry(_op, attempts=3, backoff_base=0)
    assert len(attempts) == 1


def test_stale_order_version_is_retried_on_fresh_snapshot(seller, flat_product):
    order = order_service.create_order(
        seller.id, {"name": "Jane Buyer"}, [{"product_id": flat_product.id, "quantity": 1}]
    )
    order_id = order.id
    attempts = []

    def _op():
        attempts.append(1)
        current = db.session.get(Order, order_id)
        current.version_id  # load the snapshot before it goes stale
        if len(attempts) == 1:
            # Another writer commits between our read and our write
            db.session.execute(
                text("UPDATE orders SET version_id = version_id + 1 WHERE id = :id"), {"id": order_id}
            )
        current.shipping_cost_cents = 700
        db.session.commit()
        return current

    result = run_with_retry(_op, attempts=3, backoff_base=0)

    assert len(attempts) == 2
    assert result.shipping_cost_cents == 700


def test_concurrent_payment_cannot_overpay(seller, flat_product, monkeypatch, db_session):
    # 2 x 2500 + 500 shipping = 5500
    order = order_service.create_order(
        seller.id,
        {"name": "Jane Buyer"},
        [{"product_id": flat_product.id, "quantity": 2}],
        shipping_cost_cents=500,
    )
    order_id = order.id
    real_total_paid = payment_service.total_paid
    reads = []

    def racing_total_paid(oid):
        reads.append(oid)
        paid = real_total_paid(oid)
        if len(reads) == 1:
            # Another writer commits a 5000 payment after our snapshot was read
            session = db.session()
            session.expire_on_commit = False
            try:
                session.add(Payment(
                    order_id=oid,
                    amount_cents=5000,
                    method="CASH",
                    payment_type="PARTIAL",
                    payment_date=utcnow(),
                    transaction_id="other-writer",
                ))
                session.execute(
                    text(
                        "UPDATE orders SET total_paid_cents = total_paid_cents + 5000, "
                        "version_id = version_id + 1 WHERE id = :id"
                    ),
                    {"id": oid},
                )
                session.commit()
            finally:
                session.expire_on_commit = True
        return paid

    monkeypatch.setattr(payment_service, "total_paid", racing_total_paid)

    with pytest.raises(OverpaymentRejected) as exc_info:
        order_service.apply_payment(seller.id, order_id, 3000, "CASH")

    # First attempt hit the version check; the retry saw the fresh balance
    assert len(reads) == 2
    assert exc_info.value.details["balance_due_cents"] == 500

    stored = db_session.get(Order, order_id)
    assert real_total_paid(order_id) == 5000
    assert stored.total_paid_cents == 5000
    assert stored.total_paid_cents <= stored.total_cents
    assert db_session.query(Payment).filter_by(order_id=order_id).count() == 1
