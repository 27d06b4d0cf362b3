from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


# Fixed weight breakpoints for tiered pricing, in slot order.
# Order is significant: slot N always prices breakpoint N.
TIER_BREAKPOINTS = ("0.5g", "1g", "2g", "3.5g", "7g", "14g", "28g")

TIER_SLOT_COLUMNS = {
    "0.5g": "tier_point_5_gram_cents",
    "1g": "tier_1_gram_cents",
    "2g": "tier_2_gram_cents",
    "3.5g": "tier_3_point_5_gram_cents",
    "7g": "tier_7_gram_cents",
    "14g": "tier_14_gram_cents",
    "28g": "tier_28_gram_cents",
}

MEASUREMENT_UNITS = (
    "unit",
    "pre-package",
    "pound",
    "ounce",
    "kilogram",
    "milligram",
    "gram",
    "milliliter",
    "liter",
)

EACH_VALUES = ("1/10", "1/8", "1/4", "1/2", "1", "2", "3.5", "7", "14", "28")

PRICING_FLAT = "FLAT"
PRICING_TIERED = "TIERED"
PRICING_KINDS = (PRICING_FLAT, PRICING_TIERED)


class Product(db.Model):
    """
    Sellable product with its pricing definition.

    PRICING: pricing_kind selects the variant.
    - FLAT:   each_value + unit_price_cents
    - TIERED: the seven tier_*_cents columns, one per weight breakpoint

    Catalog metadata (flavors, feelings, strain, images) lives outside this
    core; category ids are opaque references.

    INVARIANT: par_level <= quantity_on_hand on every committed write.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "sku", name="uq_products_seller_sku"),
        db.Index("ix_products_seller_name", "seller_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    tag_number = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)

    # Opaque taxonomy references (owned externally)
    category_id = db.Column(db.Integer, nullable=True)
    subcategory_id = db.Column(db.Integer, nullable=True)

    measurement_unit = db.Column(db.String(32), nullable=False, default="unit")

    pricing_kind = db.Column(db.String(16), nullable=False, default=PRICING_FLAT)
    each_value = db.Column(db.String(16), nullable=True)
    unit_price_cents = db.Column(db.Integer, nullable=True)
    deal_price_cents = db.Column(db.Integer, nullable=True)

    tier_point_5_gram_cents = db.Column(db.Integer, nullable=True)
    tier_1_gram_cents = db.Column(db.Integer, nullable=True)
    tier_2_gram_cents = db.Column(db.Integer, nullable=True)
    tier_3_point_5_gram_cents = db.Column(db.Integer, nullable=True)
    tier_7_gram_cents = db.Column(db.Integer, nullable=True)
    tier_14_gram_cents = db.Column(db.Integer, nullable=True)
    tier_28_gram_cents = db.Column(db.Integer, nullable=True)

    # Preset last applied to the tier slots (informational)
    tier_preset_id = db.Column(db.Integer, db.ForeignKey("price_tier_presets.id"), nullable=True)

    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)
    par_level = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    seller = db.relationship("Seller", backref=db.backref("products", lazy=True))
    tier_preset = db.relationship("PriceTierPreset")
    __mapper_args__ = {"version_id_col": version_id}

    def tier_slots(self) -> list[int | None]:
        return [getattr(self, TIER_SLOT_COLUMNS[label]) for label in TIER_BREAKPOINTS]

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} seller_id={self.seller_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "sku": self.sku,
            "tag_number": self.tag_number,
            "name": self.name,
            "category_id": self.category_id,
            "subcategory_id": self.subcategory_id,
            "measurement_unit": self.measurement_unit,
            "pricing_kind": self.pricing_kind,
            "each_value": self.each_value,
            "unit_price_cents": self.unit_price_cents,
            "deal_price_cents": self.deal_price_cents,
            "tiers": dict(zip(TIER_BREAKPOINTS, self.tier_slots())),
            "tier_preset_id": self.tier_preset_id,
            "quantity_on_hand": self.quantity_on_hand,
            "par_level": self.par_level,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class PriceTierPreset(db.Model):
    """
    Named tier preset (shake sale tier, flower price tier).

    Applying a preset overwrites all seven product tier slots at once.
    """
    __tablename__ = "price_tier_presets"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "name", name="uq_price_tier_presets_seller_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)

    tier_point_5_gram_cents = db.Column(db.Integer, nullable=False)
    tier_1_gram_cents = db.Column(db.Integer, nullable=False)
    tier_2_gram_cents = db.Column(db.Integer, nullable=False)
    tier_3_point_5_gram_cents = db.Column(db.Integer, nullable=False)
    tier_7_gram_cents = db.Column(db.Integer, nullable=False)
    tier_14_gram_cents = db.Column(db.Integer, nullable=False)
    tier_28_gram_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    seller = db.relationship("Seller", backref=db.backref("price_tier_presets", lazy=True))

    def tier_slots(self) -> list[int]:
        return [getattr(self, TIER_SLOT_COLUMNS[label]) for label in TIER_BREAKPOINTS]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "name": self.name,
            "tiers": dict(zip(TIER_BREAKPOINTS, self.tier_slots())),
            "created_at": to_utc_z(self.created_at),
        }
