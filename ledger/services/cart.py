"""
Cart operations.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction

from ledger.domain.caller import Caller, require_caller
from ledger.domain.errors import NotFound, ValidationError
from ledger.domain.pricing import CustomizationInput
from ledger.infra.models import CartLineORM
from ledger.infra.repositories import CartRepository
from ledger.services.pricing import PricingService

logger = logging.getLogger(__name__)


class CartService:
    """Service for user carts."""

    def __init__(
        self,
        cart_repo: CartRepository | None = None,
        pricing: PricingService | None = None,
    ):
        self.cart_repo = cart_repo or CartRepository()
        self.pricing = pricing or PricingService()

    def get_cart(self, caller: Caller | None) -> list[CartLineORM]:
        caller = require_caller(caller)
        return self.cart_repo.get_lines(caller.user_id)

    @transaction.atomic
    def add_line(
        self,
        caller: Caller | None,
        item_id: UUID,
        quantity: int = 1,
        customization: CustomizationInput | None = None,
    ) -> CartLineORM:
        """Add item to cart.

        Custom configurations always become a new line priced now; standard
        items stack onto the existing line up to the item's stock.
        """
        caller = require_caller(caller)
        if not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")

        if customization is not None:
            quote = self.pricing.quote(item_id, customization)
            line = self.cart_repo.add_line(
                caller.user_id,
                item_id,
                quantity,
                custom_height=customization.height,
                custom_width=customization.width,
                custom_length=customization.length,
                labor_days=customization.labor_days,
                legs_frame_material=customization.material_name_3x3,
                tabletop_material=customization.material_name_2x12,
                custom_price=quote.price,
            )
            logger.info(
                "cart_custom_line_added",
                extra={"user_id": str(caller.user_id), "status": str(quote.price)},
            )
            return line

        item = self.pricing.get_item(item_id)
        existing = self.cart_repo.find_standard_line(caller.user_id, item_id)
        if existing is not None:
            new_quantity = existing.quantity + quantity
            if new_quantity > item.stock:
                raise ValidationError(f"Max Stock Reached! ({item.stock})")
            return self.cart_repo.set_quantity(existing, new_quantity)

        if quantity > item.stock:
            raise ValidationError("Not enough stock")
        line = self.cart_repo.add_line(caller.user_id, item_id, quantity)
        logger.info("cart_line_added", extra={"user_id": str(caller.user_id)})
        return line

    def remove_line(self, caller: Caller | None, line_id: UUID) -> None:
        caller = require_caller(caller)
        if not self.cart_repo.remove_lines(caller.user_id, [line_id]):
            raise NotFound(f"Cart line {line_id} not found")
