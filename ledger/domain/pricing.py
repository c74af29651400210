"""
Pricing resolver: the unit price charged for a cart line.

Standard lines are charged the catalog price. Made-to-order lines are priced
from buyer dimensions and material choices:

    base_cost = material_cost + labor_days * labor_cost_per_day + overhead_cost
    price     = base_cost * (1 + profit_margin)

Material cost comes from plank counts against 3x3x10 (legs and frame) and
2x12x10 (tabletop) planks. The plank geometry lives behind a calculator
callable ``(dimensions, labor_days, costs) -> PriceQuote`` so a shop can plug
in its own cut list via the ``LEDGER_PRICE_CALCULATOR`` setting.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable

from ledger.domain.catalog import CatalogItem
from ledger.domain.errors import InvalidCustomization, ValidationError
from ledger.domain.money import to_money

PLANK_LENGTH = Decimal("10")
TABLETOP_BOARD_WIDTH = Decimal("1")


@dataclass(frozen=True)
class CustomizationInput:
    """Buyer-supplied dimensions and materials."""
    length: Decimal
    width: Decimal
    height: Decimal
    labor_days: Decimal
    material_name_3x3: str
    material_name_2x12: str

    def __post_init__(self):
        for name in ("length", "width", "height", "labor_days"):
            raw = getattr(self, name)
            try:
                value = Decimal(str(raw))
            except (InvalidOperation, ValueError):
                raise ValidationError(f"{name} must be a number")
            if not value.is_finite() or value <= 0:
                raise ValidationError(f"{name} must be positive")
            object.__setattr__(self, name, value)
        if not self.material_name_3x3 or not self.material_name_2x12:
            raise ValidationError("Both frame and tabletop materials are required")

    @property
    def dimensions(self) -> dict:
        return {"length": self.length, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class PriceQuote:
    """Result of a custom price calculation."""
    cost: Decimal
    price: Decimal
    breakdown: dict = field(default_factory=dict)


PriceCalculator = Callable[[dict, Decimal, dict], PriceQuote]


def calculate_custom_price(dimensions: dict, labor_days: Decimal, costs: dict) -> PriceQuote:
    """Placeholder plank-count calculator.

    The cut list here (four legs plus a perimeter rail from 3x3 stock, 1-unit
    tabletop boards from 2x12 stock) is a stand-in, not the workshop's own
    geometry. Deployments set ``LEDGER_PRICE_CALCULATOR`` to their real
    calculator; only the cost formula above is fixed.
    """
    length = Decimal(str(dimensions["length"]))
    width = Decimal(str(dimensions["width"]))
    height = Decimal(str(dimensions["height"]))

    # four legs plus a rail around the perimeter
    frame_run = 4 * height + 2 * (length + width)
    planks_3x3 = math.ceil(frame_run / PLANK_LENGTH)

    # tabletop boards run along the length
    boards = math.ceil(width / TABLETOP_BOARD_WIDTH)
    planks_2x12 = math.ceil(boards * length / PLANK_LENGTH)

    material_cost = (
        planks_3x3 * Decimal(str(costs["plank_3x3_cost"]))
        + planks_2x12 * Decimal(str(costs["plank_2x12_cost"]))
    )
    labor_cost = Decimal(str(labor_days)) * Decimal(str(costs["labor_cost_per_day"]))
    overhead_cost = Decimal(str(costs["overhead_cost"]))
    base_cost = material_cost + labor_cost + overhead_cost
    price = base_cost * (1 + Decimal(str(costs["profit_margin"])))

    return PriceQuote(
        cost=to_money(base_cost),
        price=to_money(price),
        breakdown={
            "planks_3x3": planks_3x3,
            "planks_2x12": planks_2x12,
            "material_cost": to_money(material_cost),
            "labor_cost": to_money(labor_cost),
            "overhead_cost": to_money(overhead_cost),
        },
    )


def quote_custom_price(
    item: CatalogItem,
    customization: CustomizationInput,
    calculator: PriceCalculator = calculate_custom_price,
) -> PriceQuote:
    """Price a made-to-order configuration of item."""
    if not item.is_customizable:
        raise InvalidCustomization(f"Item {item.id} is not customizable")

    options = item.customization_options
    frame_material = options.find_material(customization.material_name_3x3)
    top_material = options.find_material(customization.material_name_2x12)

    costs = {
        "labor_cost_per_day": options.labor_cost_per_day,
        "plank_3x3_cost": frame_material.plank_3x3x10_cost,
        "plank_2x12_cost": top_material.plank_2x12x10_cost,
        "profit_margin": options.profit_margin,
        "overhead_cost": options.overhead_cost,
    }
    return calculator(customization.dimensions, customization.labor_days, costs)


def resolve_unit_price(
    item: CatalogItem,
    customization: CustomizationInput | None = None,
    calculator: PriceCalculator = calculate_custom_price,
) -> Decimal:
    """Resolve the unit price to charge for item."""
    if customization is None:
        return to_money(item.price)
    return to_money(quote_custom_price(item, customization, calculator).price)
