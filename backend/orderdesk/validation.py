from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidPricing, ParLevelExceedsOnHand, ValidationError
from .models.inventory import (
    EACH_VALUES,
    MEASUREMENT_UNITS,
    PRICING_FLAT,
    PRICING_KINDS,
    PRICING_TIERED,
    TIER_BREAKPOINTS,
    TIER_SLOT_COLUMNS,
)


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

PRICE_FIELDS = ("unit_price_cents", "deal_price_cents") + tuple(TIER_SLOT_COLUMNS.values())


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for create
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "tag_number",
        "name",
        "category_id",
        "subcategory_id",
        "measurement_unit",
        "pricing_kind",
        "each_value",
        "unit_price_cents",
        "deal_price_cents",
        "quantity_on_hand",
        "par_level",
        *TIER_SLOT_COLUMNS.values(),
    },
    required_on_create={"name", "pricing_kind"},
)

# Inventory-weight quick edit: price, deal price, par, on hand
QUICK_EDIT_POLICY = ModelValidationPolicy(
    writable_fields={"unit_price_cents", "deal_price_cents", "par_level", "quantity_on_hand"},
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{col.key} must be an integer")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def expand_tiers(payload: dict) -> dict:
    """
    Accept {"tiers": {"0.5g": 500, ...}} as shorthand for the seven
    tier_*_cents columns. Unknown breakpoints are rejected.
    """
    if not isinstance(payload, dict) or "tiers" not in payload:
        return payload
    data = dict(payload)
    tiers = data.pop("tiers")
    if not isinstance(tiers, dict):
        raise InvalidPricing("tiers must map breakpoints to prices")
    for label, price in tiers.items():
        if label not in TIER_SLOT_COLUMNS:
            raise InvalidPricing(
                f"Unknown tier '{label}'. Must be one of: {', '.join(TIER_BREAKPOINTS)}"
            )
        data[TIER_SLOT_COLUMNS[label]] = price
    return data


def enforce_rules_product(state: dict) -> None:
    """
    Business rules checked against the full product state a write would
    produce (current values overlaid with the patch).
    """
    for field in PRICE_FIELDS:
        price = state.get(field)
        if price is None:
            continue
        if price < 0:
            raise ValidationError(f"{field} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    unit = state.get("measurement_unit")
    if unit not in MEASUREMENT_UNITS:
        raise ValidationError(
            f"Invalid measurement unit '{unit}'. Must be one of: {', '.join(MEASUREMENT_UNITS)}"
        )

    kind = state.get("pricing_kind")
    if kind not in PRICING_KINDS:
        raise InvalidPricing(f"Invalid pricing kind '{kind}'. Must be one of: {', '.join(PRICING_KINDS)}")

    if kind == PRICING_FLAT:
        if state.get("each_value") not in EACH_VALUES:
            raise InvalidPricing(
                f"Flat pricing needs each_value in: {', '.join(EACH_VALUES)}"
            )
        if state.get("unit_price_cents") is None:
            raise InvalidPricing("Flat pricing needs unit_price_cents")

    if kind == PRICING_TIERED:
        missing = [label for label, col in TIER_SLOT_COLUMNS.items() if state.get(col) is None]
        if missing:
            raise InvalidPricing(
                f"Tiered pricing needs a price for every breakpoint; missing: {', '.join(missing)}",
                details={"missing": missing},
            )

    on_hand = state.get("quantity_on_hand") or 0
    par = state.get("par_level") or 0
    if on_hand < 0:
        raise ValidationError("quantity_on_hand must be >= 0")
    if par < 0:
        raise ValidationError("par_level must be >= 0")
    if par > on_hand:
        raise ParLevelExceedsOnHand(
            f"par_level ({par}) cannot exceed quantity_on_hand ({on_hand})",
            details={"par_level": par, "quantity_on_hand": on_hand},
        )
