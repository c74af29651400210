from __future__ import annotations

from uuid import uuid4

from django.db import models

from ledger.domain.order import DeliveryOption, OrderStatus, PaymentStatus, PaymentType


ORDER_STATUS_CHOICES = [(s.value, s.value) for s in OrderStatus]
PAYMENT_STATUS_CHOICES = [(s.value, s.value) for s in PaymentStatus]
DELIVERY_OPTION_CHOICES = (
    (DeliveryOption.SHIPPING.value, "Shipping"),
    (DeliveryOption.PICKUP.value, "Store pickup"),
)
PAYMENT_TYPE_CHOICES = (
    (PaymentType.FULL_PAYMENT.value, "Full payment"),
    (PaymentType.DOWN_PAYMENT.value, "30% down payment"),
)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CatalogItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    is_customizable = models.BooleanField(default=False)
    # {"materials": [...], "labor_cost_per_day", "profit_margin", "overhead_cost"}
    customization_options = models.JSONField(default=dict, blank=True)
    stock = models.IntegerField(default=0)
    sales = models.IntegerField(default=0)

    class Meta:
        indexes = [
            models.Index(fields=("is_customizable",)),
        ]

    def __str__(self):
        return self.name


class OrderORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    user_id = models.UUIDField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_with_shipping = models.DecimalField(max_digits=12, decimal_places=2)
    down_payment = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES)
    payment_status = models.CharField(
        max_length=30,
        choices=PAYMENT_STATUS_CHOICES,
        default=PaymentStatus.PENDING.value,
    )
    status = models.CharField(
        max_length=30,
        choices=ORDER_STATUS_CHOICES,
        default=OrderStatus.PENDING.value,
    )
    delivery_option = models.CharField(max_length=10, choices=DELIVERY_OPTION_CHOICES)
    scheduled_date = models.DateField(null=True, blank=True)
    delivery_date = models.DateTimeField(null=True, blank=True)
    delivery_proof = models.URLField(max_length=500, null=True, blank=True)

    transaction_hash = models.CharField(max_length=255, unique=True, null=True, blank=True)
    request_hash = models.CharField(max_length=64, blank=True, default="")
    transaction_id = models.CharField(max_length=255, null=True, blank=True)
    checkout_url = models.URLField(max_length=500, blank=True, default="")
    balance_session_id = models.CharField(max_length=255, null=True, blank=True)
    balance_checkout_url = models.URLField(max_length=500, blank=True, default="")

    version = models.PositiveIntegerField(default=0)

    class Meta:
        indexes = [
            models.Index(fields=("user_id", "status")),
            models.Index(fields=("transaction_id",)),
            models.Index(fields=("balance_session_id",)),
        ]


class OrderLineORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    item = models.ForeignKey(
        CatalogItemORM,
        on_delete=models.PROTECT,
        related_name="order_lines",
    )
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    is_customizable = models.BooleanField(default=False)
    custom_height = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    custom_width = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    custom_length = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    legs_frame_material = models.CharField(max_length=100, null=True, blank=True)
    tabletop_material = models.CharField(max_length=100, null=True, blank=True)
    cart_line_id = models.UUIDField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=("order",)),
        ]


class CartORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    user_id = models.UUIDField(unique=True)


class CartLineORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    cart = models.ForeignKey(
        CartORM,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    item = models.ForeignKey(
        CatalogItemORM,
        on_delete=models.CASCADE,
        related_name="cart_lines",
    )
    quantity = models.PositiveIntegerField(default=1)
    custom_height = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    custom_width = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    custom_length = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    labor_days = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    legs_frame_material = models.CharField(max_length=100, null=True, blank=True)
    tabletop_material = models.CharField(max_length=100, null=True, blank=True)
    custom_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=("cart",)),
        ]

    @property
    def is_custom(self) -> bool:
        return self.custom_price is not None


class CheckoutCounter(TimeStampedModel):
    """Server-side per-user counter behind issued checkout tokens."""
    user_id = models.UUIDField(unique=True)
    value = models.PositiveIntegerField(default=0)
