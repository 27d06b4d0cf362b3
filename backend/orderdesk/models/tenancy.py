from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

class Seller(db.Model):
    """
    Tenant root: a seller page (business) on the marketplace.

    WHY: Every product, order, sales person and tier preset belongs to
    exactly one seller. Services take seller_id explicitly on every call;
    there is no ambient "current business" context.
    """
    __tablename__ = "sellers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)  # Short code / slug

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Seller id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class SalesPerson(db.Model):
    """
    Sales person who can be assigned to orders and earns commission.

    The rate is read by the default commission rate service; other rate
    services may ignore it.
    """
    __tablename__ = "sales_people"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)

    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    # Basis points of the order subtotal (500 = 5.00%)
    commission_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    seller = db.relationship("Seller", backref=db.backref("sales_people", lazy=True))

    def __repr__(self) -> str:
        return f"<SalesPerson id={self.id} full_name={self.full_name!r} seller_id={self.seller_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "full_name": self.full_name,
            "email": self.email,
            "commission_rate_bps": self.commission_rate_bps,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
