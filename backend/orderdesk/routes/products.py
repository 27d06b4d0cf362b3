# Overview: Flask API routes for products and tier presets; parses input and returns JSON responses.

# backend/orderdesk/routes/products.py
from flask import Blueprint, request, jsonify, current_app

from ..errors import OrderCoreError
from ..services import products_service
from .helpers import request_body, request_seller_id


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_fields(data: dict) -> dict:
    return {k: v for k, v in data.items() if k not in ("seller_id", "actor_id")}


@products_bp.get("")
def list_products_route():
    """
    List a seller's products by name.

    Query params: seller_id (required), page, per_page
    """
    try:
        result = products_service.list_products(
            request_seller_id(),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
def create_product_route():
    """
    Create a product.

    FLAT:   {"seller_id": 1, "name": "Pre-roll", "pricing_kind": "FLAT",
             "each_value": "1", "unit_price_cents": 2500}
    TIERED: {"seller_id": 1, "name": "House Flower", "pricing_kind": "TIERED",
             "tiers": {"0.5g": 500, "1g": 900, ..., "28g": 15000}}
    """
    try:
        data = request_body()
        product = products_service.create_product(request_seller_id(data), _product_fields(data))
        return jsonify({"product": product.to_dict()}), 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(request_seller_id(), product_id)
        return jsonify({"product": product.to_dict()}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    try:
        data = request_body()
        product = products_service.update_product(request_seller_id(data), product_id, _product_fields(data))
        return jsonify({"product": product.to_dict()}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>/weight")
def quick_edit_weight_route(product_id: int):
    """Quick edit: unit_price_cents, deal_price_cents, par_level, quantity_on_hand."""
    try:
        data = request_body()
        product = products_service.quick_edit_weight(request_seller_id(data), product_id, _product_fields(data))
        return jsonify({"product": product.to_dict()}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to quick edit product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/clone")
def clone_product_route(product_id: int):
    try:
        data = request_body()
        product = products_service.clone_product(request_seller_id(data), product_id)
        return jsonify({"product": product.to_dict()}), 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to clone product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/apply-preset")
def apply_preset_route(product_id: int):
    """Overwrite all seven tier prices from a preset: {"seller_id": 1, "preset_id": 2}"""
    try:
        data = request_body()
        if data.get("preset_id") is None:
            return jsonify({"error": "preset_id is required"}), 400
        product = products_service.apply_tier_preset(request_seller_id(data), product_id, data["preset_id"])
        return jsonify({"product": product.to_dict()}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to apply tier preset")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# TIER PRESETS
# =============================================================================

@products_bp.get("/presets")
def list_presets_route():
    try:
        presets = products_service.list_tier_presets(request_seller_id())
        return jsonify({"items": [p.to_dict() for p in presets], "count": len(presets)}), 200

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list tier presets")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/presets")
def create_preset_route():
    try:
        data = request_body()
        preset = products_service.create_tier_preset(request_seller_id(data), data.get("name"), data.get("tiers"))
        return jsonify({"preset": preset.to_dict()}), 201

    except OrderCoreError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create tier preset")
        return jsonify({"error": "Internal server error"}), 500
