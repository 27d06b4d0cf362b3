# backend/orderdesk/services/products_service.py
"""
Products Service

The inventory side this core reads prices from. Products are seller-scoped;
every call takes seller_id explicitly.

RULES:
- par_level <= quantity_on_hand on every committed write; a violating write
  is rejected and the stored product stays as it was
- pricing variant must be complete (FLAT: each_value + price, TIERED: all
  seven breakpoint prices)
- SKUs are unique per seller; a missing SKU is allocated from the seller's
  SKU sequence
- clone copies everything except identity, SKU (regenerated) and tag number
  (blank)
- applying a tier preset overwrites all seven slots, never merges
"""
from __future__ import annotations

from flask import current_app

from ..errors import DuplicateSku, PresetNotFound, ProductNotFound, SellerNotFound, ValidationError
from ..extensions import db
from ..models import PriceTierPreset, Product, Seller
from ..models.inventory import PRICING_TIERED, TIER_BREAKPOINTS, TIER_SLOT_COLUMNS
from ..validation import (
    MAX_PRICE_CENTS,
    PRODUCT_POLICY,
    QUICK_EDIT_POLICY,
    enforce_rules_product,
    expand_tiers,
    validate_payload,
)
from .concurrency import lock_for_update, run_with_retry
from .document_service import DOCUMENT_TYPE_SKU, next_document_number
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields

# Copied by clone_product; identity, sku and tag_number are not
CLONE_FIELDS = PRODUCT_MUTABLE_FIELDS - {"sku", "tag_number"} | {"tier_preset_id"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _product_state(p: Product | None, patch: dict) -> dict:
    """Full field state a write would produce."""
    state = {"measurement_unit": "unit", "quantity_on_hand": 0, "par_level": 0}
    if p is not None:
        state.update({k: getattr(p, k) for k in PRODUCT_MUTABLE_FIELDS})
    state.update(patch)
    return state


def _require_seller(seller_id: int) -> Seller:
    seller = db.session.get(Seller, seller_id) if seller_id else None
    if not seller:
        raise SellerNotFound(f"Seller {seller_id} not found")
    return seller


def _ensure_unique_sku(seller_id: int, sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.seller_id == seller_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise DuplicateSku("SKU already exists for this seller.", details={"sku": sku})


def _next_sku(seller_id: int) -> str:
    return next_document_number(seller_id=seller_id, document_type=DOCUMENT_TYPE_SKU, prefix="SKU")


def get_product(seller_id: int, product_id: int, *, for_update: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id, seller_id=seller_id)
    if for_update:
        query = lock_for_update(query)
    p = query.first()
    if not p:
        raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return p


def list_products(
    seller_id: int,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Seller-scoped product listing with optional pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    query = (
        db.session.query(Product)
        .filter(Product.seller_id == seller_id)
        .order_by(Product.name.asc(), Product.id.asc())
    )
    return paginate(query, page, per_page)


def create_product(seller_id: int, payload: dict) -> Product:
    """
    Create a product.

    Raises:
        ValidationError / InvalidPricing / ParLevelExceedsOnHand: bad payload
        DuplicateSku: SKU already used by this seller
    """
    patch = validate_payload(
        model=Product, payload=expand_tiers(payload), policy=PRODUCT_POLICY, partial=False
    )
    patch["pricing_kind"] = str(patch["pricing_kind"]).upper()
    enforce_rules_product(_product_state(None, patch))

    def _op():
        _require_seller(seller_id)
        data = dict(patch)
        if data.get("sku"):
            _ensure_unique_sku(seller_id, data["sku"])
        else:
            data["sku"] = _next_sku(seller_id)

        p = Product(seller_id=seller_id)
        apply_product_patch(p, data)
        db.session.add(p)
        db.session.commit()
        current_app.logger.info("Product %s (%s) created for seller %s", p.id, p.sku, seller_id)
        return p

    return run_with_retry(_op)


def update_product(seller_id: int, product_id: int, payload: dict) -> Product:
    """
    Patch a product. The rules are checked on the resulting state before
    anything is written.
    """
    patch = validate_payload(
        model=Product, payload=expand_tiers(payload), policy=PRODUCT_POLICY, partial=True
    )
    if "pricing_kind" in patch and patch["pricing_kind"] is not None:
        patch["pricing_kind"] = str(patch["pricing_kind"]).upper()

    def _op():
        p = get_product(seller_id, product_id, for_update=True)
        enforce_rules_product(_product_state(p, patch))

        if "sku" in patch and patch["sku"] != p.sku:
            if not patch["sku"]:
                raise ValidationError("sku cannot be blank")
            _ensure_unique_sku(seller_id, patch["sku"], exclude_id=p.id)

        apply_product_patch(p, patch)
        db.session.commit()
        return p

    return run_with_retry(_op)


def quick_edit_weight(seller_id: int, product_id: int, payload: dict) -> Product:
    """Inventory-weight quick edit: price, deal price, par level, on hand."""
    patch = validate_payload(model=Product, payload=payload, policy=QUICK_EDIT_POLICY, partial=True)
    if not patch:
        raise ValidationError("Nothing to update")

    def _op():
        p = get_product(seller_id, product_id, for_update=True)
        enforce_rules_product(_product_state(p, patch))
        apply_product_patch(p, patch)
        db.session.commit()
        return p

    return run_with_retry(_op)


def clone_product(seller_id: int, product_id: int) -> Product:
    """Copy a product under a new SKU with a blank tag number."""
    def _op():
        source = get_product(seller_id, product_id)
        copy = Product(seller_id=seller_id)
        for field in CLONE_FIELDS:
            setattr(copy, field, getattr(source, field))
        copy.sku = _next_sku(seller_id)
        copy.tag_number = None
        db.session.add(copy)
        db.session.commit()
        current_app.logger.info("Product %s cloned to %s (%s)", source.id, copy.id, copy.sku)
        return copy

    return run_with_retry(_op)


# =============================================================================
# TIER PRESETS
# =============================================================================

def create_tier_preset(seller_id: int, name: str, tiers: dict) -> PriceTierPreset:
    """
    Create a named preset. tiers must price all seven breakpoints.
    """
    if not name or not str(name).strip():
        raise ValidationError("Preset name is required")
    if not isinstance(tiers, dict):
        raise ValidationError("tiers must map breakpoints to prices")
    unknown = sorted(set(tiers) - set(TIER_BREAKPOINTS))
    missing = [label for label in TIER_BREAKPOINTS if label not in tiers]
    if unknown or missing:
        raise ValidationError(
            "Preset must price exactly the seven breakpoints",
            details={"missing": missing, "unknown": unknown},
        )
    for label in TIER_BREAKPOINTS:
        price = tiers[label]
        if isinstance(price, bool) or not isinstance(price, int) or price < 0 or price > MAX_PRICE_CENTS:
            raise ValidationError(f"Tier {label} must be an integer between 0 and {MAX_PRICE_CENTS}")

    def _op():
        _require_seller(seller_id)
        preset = PriceTierPreset(seller_id=seller_id, name=str(name).strip())
        for label, column in TIER_SLOT_COLUMNS.items():
            setattr(preset, column, tiers[label])
        db.session.add(preset)
        db.session.commit()
        return preset

    return run_with_retry(_op)


def list_tier_presets(seller_id: int) -> list[PriceTierPreset]:
    return (
        db.session.query(PriceTierPreset)
        .filter_by(seller_id=seller_id)
        .order_by(PriceTierPreset.name.asc(), PriceTierPreset.id.asc())
        .all()
    )


def apply_tier_preset(seller_id: int, product_id: int, preset_id: int) -> Product:
    """Overwrite all seven tier slots from a preset and switch to TIERED."""
    def _op():
        preset = db.session.query(PriceTierPreset).filter_by(id=preset_id, seller_id=seller_id).first()
        if not preset:
            raise PresetNotFound(f"Tier preset {preset_id} not found", details={"preset_id": preset_id})

        p = get_product(seller_id, product_id, for_update=True)
        for column in TIER_SLOT_COLUMNS.values():
            setattr(p, column, getattr(preset, column))
        p.pricing_kind = PRICING_TIERED
        p.tier_preset_id = preset.id
        db.session.commit()
        return p

    return run_with_retry(_op)
