import pytest

from orderdesk.errors import (
    DuplicateSku,
    InvalidPricing,
    ParLevelExceedsOnHand,
    PresetNotFound,
    ProductNotFound,
    ValidationError,
)
from orderdesk.models import Product
from orderdesk.services import products_service


TIER_PRICES = {
    "0.5g": 500,
    "1g": 900,
    "2g": 1600,
    "3.5g": 2500,
    "7g": 4500,
    "14g": 8000,
    "28g": 15000,
}

FLAT_PAYLOAD = {
    "name": "Gummies",
    "pricing_kind": "flat",
    "each_value": "1/2",
    "unit_price_cents": 1200,
    "quantity_on_hand": 40,
    "par_level": 5,
}


def test_create_flat_product_allocates_sku(seller):
    p = products_service.create_product(seller.id, FLAT_PAYLOAD)

    assert p.pricing_kind == "FLAT"
    assert p.sku == "SKU-0001"
    assert p.unit_price_cents == 1200


def test_create_tiered_product_from_tiers_map(seller):
    p = products_service.create_product(seller.id, {
        "name": "Blue Dream",
        "pricing_kind": "TIERED",
        "measurement_unit": "gram",
        "tiers": TIER_PRICES,
    })
    assert p.to_dict()["tiers"] == TIER_PRICES


def test_tiered_product_needs_every_breakpoint(seller):
    tiers = dict(TIER_PRICES)
    del tiers["14g"]
    with pytest.raises(InvalidPricing) as exc_info:
        products_service.create_product(seller.id, {"name": "Partial", "pricing_kind": "TIERED", "tiers": tiers})
    assert exc_info.value.details["missing"] == ["14g"]


@pytest.mark.parametrize("payload", [
    {"name": "X", "pricing_kind": "FLAT", "each_value": "3", "unit_price_cents": 100},
    {"name": "X", "pricing_kind": "FLAT", "each_value": "1"},
    {"name": "X", "pricing_kind": "BULK"},
    {"name": "X", "pricing_kind": "TIERED", "tiers": {"5g": 100}},
])
def test_invalid_pricing_is_rejected(seller, payload):
    with pytest.raises(InvalidPricing):
        products_service.create_product(seller.id, payload)


@pytest.mark.parametrize("payload", [
    {"name": "X", "pricing_kind": "FLAT", "each_value": "1", "unit_price_cents": 12.5},
    {"name": "X", "pricing_kind": "FLAT", "each_value": "1", "unit_price_cents": -1},
    {"name": "X", "pricing_kind": "FLAT", "each_value": "1", "unit_price_cents": 1, "measurement_unit": "bushel"},
    {"name": "X", "pricing_kind": "FLAT", "each_value": "1", "unit_price_cents": 1, "color": "green"},
    {"pricing_kind": "FLAT", "each_value": "1", "unit_price_cents": 1},
])
def test_invalid_fields_are_rejected(seller, payload):
    with pytest.raises(ValidationError):
        products_service.create_product(seller.id, payload)


def test_duplicate_sku_is_rejected(seller):
    products_service.create_product(seller.id, dict(FLAT_PAYLOAD, sku="GUM-1"))
    with pytest.raises(DuplicateSku):
        products_service.create_product(seller.id, dict(FLAT_PAYLOAD, sku="GUM-1"))


def test_same_sku_is_allowed_for_another_seller(seller, other_seller):
    products_service.create_product(seller.id, dict(FLAT_PAYLOAD, sku="GUM-1"))
    p = products_service.create_product(other_seller.id, dict(FLAT_PAYLOAD, sku="GUM-1"))
    assert p.seller_id == other_seller.id


def test_par_level_above_on_hand_is_rejected_on_create(seller, db_session):
    with pytest.raises(ParLevelExceedsOnHand):
        products_service.create_product(seller.id, dict(FLAT_PAYLOAD, quantity_on_hand=3, par_level=4))
    assert db_session.query(Product).count() == 0


def test_par_level_violation_leaves_product_unchanged(seller, flat_product, db_session):
    with pytest.raises(ParLevelExceedsOnHand):
        products_service.quick_edit_weight(seller.id, flat_product.id, {"quantity_on_hand": 5})

    stored = db_session.get(Product, flat_product.id)
    assert stored.quantity_on_hand == 100
    assert stored.par_level == 10


def test_quick_edit_weight(seller, flat_product):
    p = products_service.quick_edit_weight(
        seller.id, flat_product.id, {"unit_price_cents": 2200, "deal_price_cents": 2000, "par_level": 20}
    )
    assert (p.unit_price_cents, p.deal_price_cents, p.par_level) == (2200, 2000, 20)


def test_quick_edit_rejects_other_fields(seller, flat_product):
    with pytest.raises(ValidationError):
        products_service.quick_edit_weight(seller.id, flat_product.id, {"name": "Renamed"})
    with pytest.raises(ValidationError):
        products_service.quick_edit_weight(seller.id, flat_product.id, {})


def test_update_product_can_switch_to_tiered(seller, flat_product):
    p = products_service.update_product(seller.id, flat_product.id, {"pricing_kind": "TIERED", "tiers": TIER_PRICES})
    assert p.pricing_kind == "TIERED"
    assert p.tier_3_point_5_gram_cents == 2500


def test_update_rejects_foreign_product(other_seller, flat_product):
    with pytest.raises(ProductNotFound):
        products_service.update_product(other_seller.id, flat_product.id, {"name": "Mine now"})


def test_clone_product_regenerates_sku_and_clears_tag(seller, tiered_product, db_session):
    tiered_product.tag_number = "TAG-42"
    db_session.commit()

    copy = products_service.clone_product(seller.id, tiered_product.id)

    assert copy.id != tiered_product.id
    assert copy.sku == "SKU-0001"
    assert copy.tag_number is None
    assert copy.name == "House Flower"
    assert copy.tier_slots() == tiered_product.tier_slots()
    assert copy.par_level == tiered_product.par_level


def test_apply_preset_overwrites_all_slots(seller, flat_product):
    shake = {"0.5g": 100, "1g": 200, "2g": 300, "3.5g": 400, "7g": 500, "14g": 600, "28g": 700}
    preset = products_service.create_tier_preset(seller.id, "Shake A", shake)

    p = products_service.apply_tier_preset(seller.id, flat_product.id, preset.id)

    assert p.pricing_kind == "TIERED"
    assert p.tier_preset_id == preset.id
    assert p.to_dict()["tiers"] == shake

    # Editing the preset later does not touch the product
    preset.tier_28_gram_cents = 9999
    assert p.tier_28_gram_cents == 700


def test_preset_must_price_seven_breakpoints(seller):
    with pytest.raises(ValidationError):
        products_service.create_tier_preset(seller.id, "Short", {"1g": 100})
    with pytest.raises(ValidationError):
        products_service.create_tier_preset(seller.id, "Negative", dict(TIER_PRICES, **{"1g": -1}))


def test_apply_unknown_preset(seller, flat_product, other_seller):
    preset = products_service.create_tier_preset(other_seller.id, "Elsewhere", TIER_PRICES)
    with pytest.raises(PresetNotFound):
        products_service.apply_tier_preset(seller.id, flat_product.id, preset.id)


def test_list_products_and_presets(seller, flat_product, tiered_product):
    products_service.create_tier_preset(seller.id, "Flower B", TIER_PRICES)
    products_service.create_tier_preset(seller.id, "Flower A", TIER_PRICES)

    listing = products_service.list_products(seller.id, page=1, per_page=1)
    assert listing["items"][0]["name"] == "House Flower"
    assert listing["pagination"]["total"] == 2

    assert [p.name for p in products_service.list_tier_presets(seller.id)] == ["Flower A", "Flower B"]


def test_list_products_uses_configured_page_limits(app, monkeypatch, seller, flat_product, tiered_product):
    monkeypatch.setitem(app.config, "MAX_PAGE_SIZE", 1)
    monkeypatch.setitem(app.config, "DEFAULT_PAGE_SIZE", 1)

    listing = products_service.list_products(seller.id, page=2, per_page=50)
    assert listing["pagination"]["per_page"] == 1
    assert listing["pagination"]["total_pages"] == 2
    assert [p["name"] for p in listing["items"]] == ["Pre-roll"]
