from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    Retail order aggregate (unit of contention for all mutations).

    TOTALS (all cents, recomputed by cart_service only):
        total = subtotal + shipping_cost + total_commission + tax

    BUYER: contact fields are a snapshot taken at order time, not a live link.

    LOCK: is_locked is one-way. A locked order rejects line edits and status
    transitions but still accepts payments.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "order_number", name="uq_orders_seller_number"),
        db.Index("ix_orders_seller_status_created", "seller_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)

    # Human-readable order number (e.g., "O-0042")
    order_number = db.Column(db.String(64), nullable=False)

    # Buyer snapshot
    buyer_id = db.Column(db.Integer, nullable=True, index=True)
    buyer_name = db.Column(db.String(255), nullable=False)
    buyer_email = db.Column(db.String(255), nullable=True)
    buyer_phone = db.Column(db.String(64), nullable=True)
    shipping_address = db.Column(db.Text, nullable=True)

    # OrderStatus code (1..9)
    status = db.Column(db.Integer, nullable=False, default=1, index=True)

    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Money (cents)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_commission_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    # Cached sum of payments; written on every payment so concurrent
    # payments conflict on version_id
    total_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    sales_person_id = db.Column(db.Integer, db.ForeignKey("sales_people.id"), nullable=True, index=True)
    cloned_from_order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    seller = db.relationship("Seller", backref=db.backref("orders", lazy=True))
    sales_person = db.relationship("SalesPerson")
    lines = db.relationship(
        "OrderLine", back_populates="order", order_by="OrderLine.id", lazy=True, cascade="all, delete-orphan"
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status} locked={self.is_locked}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "seller_id": self.seller_id,
            "order_number": self.order_number,
            "buyer": {
                "id": self.buyer_id,
                "name": self.buyer_name,
                "email": self.buyer_email,
                "phone": self.buyer_phone,
                "shipping_address": self.shipping_address,
            },
            "status": self.status,
            "is_locked": self.is_locked,
            "locked_at": to_utc_z(self.locked_at) if self.locked_at else None,
            "subtotal_cents": self.subtotal_cents,
            "shipping_cost_cents": self.shipping_cost_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_commission_cents": self.total_commission_cents,
            "total_cents": self.total_cents,
            "total_paid_cents": self.total_paid_cents,
            "sales_person_id": self.sales_person_id,
            "cloned_from_order_id": self.cloned_from_order_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data

class OrderLine(db.Model):
    """
    Line item on an order.

    unit_price_cents is frozen when the line is created and never re-resolved;
    only quantity changes, and line_total_cents follows quantity * unit price.
    """
    __tablename__ = "order_lines"
    __table_args__ = (
        db.UniqueConstraint("order_id", "product_id", "unit", name="uq_order_lines_order_product_unit"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Snapshots
    product_name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(16), nullable=False)  # tier breakpoint or each value

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    # Fulfilment: ticked off line by line before the order ships
    is_packed = db.Column(db.Boolean, nullable=False, default=False)
    packed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="lines")
    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit": self.unit,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "is_packed": self.is_packed,
            "packed_at": to_utc_z(self.packed_at) if self.packed_at else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }

class Payment(db.Model):
    """
    Payment applied against an order.

    IMMUTABLE: payments are never edited or deleted. Approval happened
    externally; this row only records it.

    METHODS: CASH, CHECK, CREDIT_CARD, BANK_TRANSFER, OTHER
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(32), nullable=False, index=True)
    payment_type = db.Column(db.String(16), nullable=False, default="PARTIAL")  # PARTIAL, FULL

    # Business date of the payment; created_at is system time
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)

    transaction_id = db.Column(db.String(64), nullable=False, unique=True)
    reference_number = db.Column(db.String(128), nullable=True)

    actor_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    order = db.relationship("Order", backref=db.backref("payments", lazy=True, order_by="Payment.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "payment_type": self.payment_type,
            "payment_date": to_utc_z(self.payment_date),
            "transaction_id": self.transaction_id,
            "reference_number": self.reference_number,
            "actor_id": self.actor_id,
            "created_at": to_utc_z(self.created_at),
        }

class OrderEvent(db.Model):
    """
    Append-only audit trail of order lifecycle events.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "order_events"
    __table_args__ = (
        db.Index("ix_order_events_order_occurred", "order_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # e.g. order.created, payment.applied
    actor_id = db.Column(db.Integer, nullable=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)

    order = db.relationship("Order", backref=db.backref("events", lazy=True, order_by="OrderEvent.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "order_id": self.order_id,
            "event_type": self.event_type,
            "actor_id": self.actor_id,
            "payment_id": self.payment_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
            "payload": self.payload,
        }
