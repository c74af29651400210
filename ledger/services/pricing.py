"""
Pricing service: resolves catalog items and prices cart lines.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from django.conf import settings
from django.utils.module_loading import import_string

from ledger.domain.catalog import CatalogItem
from ledger.domain.errors import NotFound, ValidationError
from ledger.domain.order import OrderLine
from ledger.domain.payment_plan import PaymentPlan, compute_plan
from ledger.domain.pricing import (
    CustomizationInput,
    PriceCalculator,
    PriceQuote,
    quote_custom_price,
    resolve_unit_price,
)
from ledger.infra.repositories import ItemRepository


@dataclass(frozen=True)
class CheckoutLine:
    """One requested purchase line."""
    item_id: UUID
    quantity: int
    customization: CustomizationInput | None = None
    cart_line_id: UUID | None = None

    def __post_init__(self):
        if not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")


def get_price_calculator() -> PriceCalculator:
    """Load the calculator configured in LEDGER_PRICE_CALCULATOR."""
    return import_string(settings.LEDGER_PRICE_CALCULATOR)


class PricingService:
    """Service for price quotes and cart pricing."""

    def __init__(
        self,
        item_repo: ItemRepository | None = None,
        calculator: PriceCalculator | None = None,
    ):
        self.item_repo = item_repo or ItemRepository()
        self.calculator = calculator or get_price_calculator()

    def get_item(self, item_id: UUID) -> CatalogItem:
        item = self.item_repo.get_by_id(item_id)
        if item is None:
            raise NotFound(f"Item {item_id} not found")
        return item

    def quote(self, item_id: UUID, customization: CustomizationInput) -> PriceQuote:
        """Price a custom configuration of an item."""
        return quote_custom_price(self.get_item(item_id), customization, self.calculator)

    def price_lines(self, lines: list[CheckoutLine]) -> tuple[list[OrderLine], dict[UUID, CatalogItem]]:
        """Resolve unit prices for requested lines."""
        if not lines:
            raise ValidationError("Items are required")

        items = self.item_repo.get_many(line.item_id for line in lines)
        missing = [str(line.item_id) for line in lines if line.item_id not in items]
        if missing:
            raise NotFound(f"Items not found: {', '.join(missing)}")

        priced = []
        for line in lines:
            item = items[line.item_id]
            custom = line.customization
            priced.append(OrderLine(
                item_id=item.id,
                quantity=line.quantity,
                unit_price=resolve_unit_price(item, custom, self.calculator),
                is_customizable=item.is_customizable,
                custom_height=custom.height if custom else None,
                custom_width=custom.width if custom else None,
                custom_length=custom.length if custom else None,
                legs_frame_material=custom.material_name_3x3 if custom else None,
                tabletop_material=custom.material_name_2x12 if custom else None,
                cart_line_id=line.cart_line_id,
            ))
        return priced, items

    def preview_plan(self, lines: list[CheckoutLine]) -> PaymentPlan:
        """Compute the payment plan for requested lines."""
        priced, _ = self.price_lines(lines)
        return compute_plan(priced)
