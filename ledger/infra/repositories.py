"""
Infrastructure repositories for domain entities.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from ledger.domain.catalog import CatalogItem, CustomizationOptions
from ledger.domain.errors import ConcurrentModification
from ledger.domain.order import (
    DeliveryOption,
    Order,
    OrderLine,
    OrderStatus,
    PaymentStatus,
    PaymentType,
)
from ledger.infra.models import (
    CartLineORM,
    CartORM,
    CatalogItemORM,
    CheckoutCounter,
    OrderLineORM,
    OrderORM,
)
import logging

logger = logging.getLogger(__name__)


class ItemRepository:
    """Repository for catalog items."""

    def get_by_id(self, item_id: UUID) -> CatalogItem | None:
        """Get item by ID."""
        item_orm = CatalogItemORM.objects.filter(id=item_id).first()
        return self._to_domain(item_orm) if item_orm else None

    def get_many(self, item_ids: Iterable[UUID]) -> dict[UUID, CatalogItem]:
        """Get items by IDs, keyed by ID."""
        return {
            item_orm.id: self._to_domain(item_orm)
            for item_orm in CatalogItemORM.objects.filter(id__in=set(item_ids))
        }

    def create(
        self,
        name: str,
        price: Decimal,
        cost: Decimal = Decimal("0"),
        is_customizable: bool = False,
        customization_options: CustomizationOptions | None = None,
        stock: int = 0,
    ) -> UUID:
        """Create catalog item."""
        item_orm = CatalogItemORM.objects.create(
            name=name,
            price=price,
            cost=cost,
            is_customizable=is_customizable,
            customization_options=customization_options.to_dict() if customization_options else {},
            stock=stock,
        )
        return item_orm.id

    def increment_sales(self, item_id: UUID, delta: int) -> None:
        """Add delta to the item's sales counter."""
        CatalogItemORM.objects.filter(id=item_id).update(sales=F("sales") + delta)

    def _to_domain(self, item_orm: CatalogItemORM) -> CatalogItem:
        return CatalogItem(
            id=item_orm.id,
            name=item_orm.name,
            price=item_orm.price,
            cost=item_orm.cost,
            is_customizable=item_orm.is_customizable,
            customization_options=CustomizationOptions.from_dict(item_orm.customization_options),
            stock=item_orm.stock,
            sales=item_orm.sales,
        )


class OrderRepository:
    """Repository for Order aggregate.

    ``version`` is an optimistic lock: an update only lands if the row still
    carries the version the aggregate was loaded with.
    """

    def get_by_id(self, order_id: UUID) -> Order | None:
        """Get order by ID with lines."""
        try:
            order_orm = OrderORM.objects.prefetch_related("lines").get(id=order_id)
        except OrderORM.DoesNotExist:
            return None
        return self._to_domain(order_orm)

    def find_by_transaction_hash(self, transaction_hash: str) -> Order | None:
        """Get order by its checkout idempotency key."""
        order_orm = (
            OrderORM.objects
            .prefetch_related("lines")
            .filter(transaction_hash=transaction_hash)
            .first()
        )
        return self._to_domain(order_orm) if order_orm else None

    def find_by_session_id(self, session_id: str) -> Order | None:
        """Get order by initial or balance checkout session ID."""
        order_orm = (
            OrderORM.objects
            .prefetch_related("lines")
            .filter(Q(transaction_id=session_id) | Q(balance_session_id=session_id))
            .first()
        )
        return self._to_domain(order_orm) if order_orm else None

    def get_by_user(self, user_id: UUID, limit: int = 50, offset: int = 0) -> list[Order]:
        """Get orders by user with pagination, newest first."""
        orders_orm = (
            OrderORM.objects
            .filter(user_id=user_id)
            .prefetch_related("lines")
            .order_by("-created_at")[offset:offset + limit]
        )
        return [self._to_domain(order_orm) for order_orm in orders_orm]

    @transaction.atomic
    def save(self, order: Order) -> UUID:
        """Insert a new order or conditionally update an existing one."""
        state = {
            "shipping_fee": order.shipping_fee,
            "total_with_shipping": order.total_with_shipping,
            "down_payment": order.down_payment,
            "balance": order.balance,
            "payment_status": order.payment_status.value,
            "status": order.status.value,
            "transaction_id": order.transaction_id,
            "checkout_url": order.checkout_url,
            "balance_session_id": order.balance_session_id,
            "balance_checkout_url": order.balance_checkout_url,
            "delivery_proof": order.delivery_proof,
            "delivery_date": order.delivery_date,
        }

        if order.version == 0:
            order_orm = OrderORM.objects.create(
                id=order.id,
                user_id=order.user_id,
                amount=order.amount,
                payment_type=order.payment_type.value,
                delivery_option=order.delivery_option.value,
                scheduled_date=order.scheduled_date,
                transaction_hash=order.transaction_hash,
                request_hash=order.request_hash,
                version=1,
                **state,
            )
            OrderLineORM.objects.bulk_create([
                OrderLineORM(
                    order=order_orm,
                    item_id=line.item_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    is_customizable=line.is_customizable,
                    custom_height=line.custom_height,
                    custom_width=line.custom_width,
                    custom_length=line.custom_length,
                    legs_frame_material=line.legs_frame_material,
                    tabletop_material=line.tabletop_material,
                    cart_line_id=line.cart_line_id,
                )
                for line in order.lines
            ])
            order.version = 1
            order.created_at = order_orm.created_at
            return order_orm.id

        # Lines and amount are immutable after creation.
        updated = (
            OrderORM.objects
            .filter(id=order.id, version=order.version)
            .update(version=F("version") + 1, updated_at=timezone.now(), **state)
        )
        if not updated:
            logger.warning(
                "order_version_conflict",
                extra={"order_id": str(order.id), "status": order.status.value},
            )
            raise ConcurrentModification(f"Order {order.id} was modified concurrently")
        order.version += 1
        return order.id

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        lines = [
            OrderLine(
                item_id=line_orm.item_id,
                quantity=line_orm.quantity,
                unit_price=line_orm.unit_price,
                is_customizable=line_orm.is_customizable,
                custom_height=line_orm.custom_height,
                custom_width=line_orm.custom_width,
                custom_length=line_orm.custom_length,
                legs_frame_material=line_orm.legs_frame_material,
                tabletop_material=line_orm.tabletop_material,
                cart_line_id=line_orm.cart_line_id,
            )
            for line_orm in order_orm.lines.all()
        ]

        return Order(
            id=order_orm.id,
            user_id=order_orm.user_id,
            lines=lines,
            delivery_option=DeliveryOption(order_orm.delivery_option),
            shipping_fee=order_orm.shipping_fee,
            payment_type=PaymentType(order_orm.payment_type),
            status=OrderStatus(order_orm.status),
            payment_status=PaymentStatus(order_orm.payment_status),
            down_payment=order_orm.down_payment,
            balance=order_orm.balance,
            transaction_hash=order_orm.transaction_hash,
            request_hash=order_orm.request_hash,
            transaction_id=order_orm.transaction_id,
            checkout_url=order_orm.checkout_url,
            balance_session_id=order_orm.balance_session_id,
            balance_checkout_url=order_orm.balance_checkout_url,
            delivery_proof=order_orm.delivery_proof,
            delivery_date=order_orm.delivery_date,
            scheduled_date=order_orm.scheduled_date,
            version=order_orm.version,
            created_at=order_orm.created_at,
        )


class CartRepository:
    """Repository for user carts."""

    def get_lines(self, user_id: UUID) -> list[CartLineORM]:
        """Get cart lines for user."""
        return list(
            CartLineORM.objects
            .select_related("item")
            .filter(cart__user_id=user_id)
            .order_by("created_at")
        )

    def get_or_create_cart(self, user_id: UUID) -> CartORM:
        cart, _ = CartORM.objects.get_or_create(user_id=user_id)
        return cart

    def find_standard_line(self, user_id: UUID, item_id: UUID) -> CartLineORM | None:
        """Get the stackable (non-custom) line for item."""
        return (
            CartLineORM.objects
            .filter(cart__user_id=user_id, item_id=item_id, custom_price__isnull=True)
            .first()
        )

    def add_line(self, user_id: UUID, item_id: UUID, quantity: int, **custom) -> CartLineORM:
        """Append a new line to the user's cart."""
        cart = self.get_or_create_cart(user_id)
        return CartLineORM.objects.create(cart=cart, item_id=item_id, quantity=quantity, **custom)

    def set_quantity(self, line: CartLineORM, quantity: int) -> CartLineORM:
        line.quantity = quantity
        line.save(update_fields=["quantity", "updated_at"])
        return line

    def remove_lines(self, user_id: UUID, line_ids: Iterable[UUID]) -> int:
        """Delete the given lines from the user's cart."""
        deleted, _ = CartLineORM.objects.filter(cart__user_id=user_id, id__in=list(line_ids)).delete()
        return deleted


class CheckoutCounterRepository:
    """Repository for per-user checkout counters."""

    @transaction.atomic
    def next_value(self, user_id: UUID) -> int:
        """Increment and return the user's counter."""
        counter, _ = CheckoutCounter.objects.select_for_update().get_or_create(user_id=user_id)
        CheckoutCounter.objects.filter(pk=counter.pk).update(
            value=F("value") + 1,
            updated_at=timezone.now(),
        )
        counter.refresh_from_db(fields=["value"])
        return counter.value
