# Overview: Service-layer operations for price resolution; pure functions, no database writes.

"""
Price Tier Resolution

WHY: The unit price of an order line is frozen at the moment the line is
created. This module decides that price from a product's pricing definition
and the requested unit.

VARIANTS:
- FlatPrice:   one price for a defined "each" quantity. The requested unit is
               ignored; quantity scaling happens on the line (qty * price).
- TieredPrice: seven prices, one per fixed weight breakpoint
               (0.5g, 1g, 2g, 3.5g, 7g, 14g, 28g). The requested unit must
               match a breakpoint exactly. No interpolation.

Presets only populate a TieredPrice; resolution does not know about them.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from ..errors import InvalidPricing, NoSuchTier
from ..models.inventory import (
    EACH_VALUES,
    PRICING_FLAT,
    PRICING_TIERED,
    TIER_BREAKPOINTS,
)


@dataclass(frozen=True)
class FlatPrice:
    each_value: str
    unit_price_cents: int

    def __post_init__(self):
        if self.each_value not in EACH_VALUES:
            raise InvalidPricing(
                f"Invalid each value '{self.each_value}'. Must be one of: {', '.join(EACH_VALUES)}"
            )
        if self.unit_price_cents is None or self.unit_price_cents < 0:
            raise InvalidPricing("Flat price requires unit_price_cents >= 0")


@dataclass(frozen=True)
class TieredPrice:
    slots: tuple[int, ...]

    def __post_init__(self):
        if len(self.slots) != len(TIER_BREAKPOINTS):
            raise InvalidPricing(
                f"Tiered price requires exactly {len(TIER_BREAKPOINTS)} slots, got {len(self.slots)}"
            )
        for label, price in zip(TIER_BREAKPOINTS, self.slots):
            if price is None or price < 0:
                raise InvalidPricing(f"Tier {label} requires a price >= 0")

    def as_dict(self) -> dict[str, int]:
        return dict(zip(TIER_BREAKPOINTS, self.slots))


PricingDefinition = Union[FlatPrice, TieredPrice]

# Breakpoint weights in grams, keyed by label
_BREAKPOINT_GRAMS = {label: Decimal(label[:-1]) for label in TIER_BREAKPOINTS}


def pricing_definition_for(product) -> PricingDefinition:
    """Build the pricing variant stored on a product row."""
    if product.pricing_kind == PRICING_FLAT:
        return FlatPrice(each_value=product.each_value, unit_price_cents=product.unit_price_cents)
    if product.pricing_kind == PRICING_TIERED:
        return TieredPrice(slots=tuple(product.tier_slots()))
    raise InvalidPricing(f"Unknown pricing kind '{product.pricing_kind}'")


def normalize_breakpoint(requested_unit) -> str | None:
    """
    Map a requested unit onto a breakpoint label.

    Accepts the label itself ("3.5g", "3.5 G") or the gram weight as a
    number or numeric string (3.5, "3.5"). Returns None when the request
    does not denote one of the seven breakpoints.
    """
    if requested_unit is None or isinstance(requested_unit, bool):
        return None

    if isinstance(requested_unit, str):
        text = requested_unit.strip().lower().replace(" ", "")
        if text in _BREAKPOINT_GRAMS:
            return text
        if text.endswith("g"):
            text = text[:-1]
        raw = text
    else:
        raw = str(requested_unit)

    try:
        grams = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not grams.is_finite():
        return None

    for label, weight in _BREAKPOINT_GRAMS.items():
        if grams == weight:
            return label
    return None


def resolve_unit_price(definition: PricingDefinition, requested_unit=None) -> int:
    """
    Resolve the unit price (cents) to freeze onto a new order line.

    Raises:
        NoSuchTier: requested unit is not one of the seven breakpoints
    """
    if isinstance(definition, FlatPrice):
        return definition.unit_price_cents

    if isinstance(definition, TieredPrice):
        label = normalize_breakpoint(requested_unit)
        if label is None:
            raise NoSuchTier(
                f"No price tier for '{requested_unit}'. Must be one of: {', '.join(TIER_BREAKPOINTS)}",
                details={"requested_unit": str(requested_unit), "breakpoints": list(TIER_BREAKPOINTS)},
            )
        return definition.slots[TIER_BREAKPOINTS.index(label)]

    raise InvalidPricing(f"Unsupported pricing definition: {type(definition).__name__}")


def line_unit_label(definition: PricingDefinition, requested_unit=None) -> str:
    """Unit snapshot stored on the order line (breakpoint or each value)."""
    if isinstance(definition, FlatPrice):
        return definition.each_value
    label = normalize_breakpoint(requested_unit)
    if label is None:
        raise NoSuchTier(f"No price tier for '{requested_unit}'")
    return label
