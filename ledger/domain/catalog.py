"""
Catalog value objects read by the ledger.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from ledger.domain.errors import MaterialNotFound
from ledger.domain.money import ZERO, to_money


@dataclass(frozen=True)
class Material:
    """Material with per-plank costs."""
    name: str
    plank_3x3x10_cost: Decimal = ZERO
    plank_2x12x10_cost: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict) -> "Material":
        return cls(
            name=data["name"],
            plank_3x3x10_cost=to_money(data.get("plank_3x3x10_cost") or 0),
            plank_2x12x10_cost=to_money(data.get("plank_2x12x10_cost") or 0),
        )


@dataclass(frozen=True)
class CustomizationOptions:
    """Cost inputs for made-to-order pricing."""
    materials: tuple[Material, ...] = ()
    labor_cost_per_day: Decimal = ZERO
    profit_margin: Decimal = Decimal("0")
    overhead_cost: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict | None) -> "CustomizationOptions":
        data = data or {}
        return cls(
            materials=tuple(Material.from_dict(m) for m in data.get("materials") or []),
            labor_cost_per_day=to_money(data.get("labor_cost_per_day") or 0),
            profit_margin=Decimal(str(data.get("profit_margin") or 0)),
            overhead_cost=to_money(data.get("overhead_cost") or 0),
        )

    def to_dict(self) -> dict:
        return {
            "materials": [
                {
                    "name": m.name,
                    "plank_3x3x10_cost": str(m.plank_3x3x10_cost),
                    "plank_2x12x10_cost": str(m.plank_2x12x10_cost),
                }
                for m in self.materials
            ],
            "labor_cost_per_day": str(self.labor_cost_per_day),
            "profit_margin": str(self.profit_margin),
            "overhead_cost": str(self.overhead_cost),
        }

    def find_material(self, name: str) -> Material:
        """Get material by name."""
        for material in self.materials:
            if material.name == name:
                return material
        raise MaterialNotFound(name)


@dataclass(frozen=True)
class CatalogItem:
    """Catalog item as seen by pricing and the ledger."""
    id: UUID
    name: str
    price: Decimal
    cost: Decimal = ZERO
    is_customizable: bool = False
    customization_options: CustomizationOptions = field(default_factory=CustomizationOptions)
    stock: int = 0
    sales: int = 0
