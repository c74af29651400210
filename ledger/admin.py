from django.contrib import admin

from ledger.infra.models import (
    CartLineORM,
    CartORM,
    CatalogItemORM,
    CheckoutCounter,
    OrderLineORM,
    OrderORM,
)
from ledger.infra.event_store import EventStore
from ledger.infra.outbox import OutboxEvent


@admin.register(CatalogItemORM)
class CatalogItemAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "price", "is_customizable", "stock", "sales", "created_at")
    list_filter = ("is_customizable",)
    search_fields = ("name",)


class OrderLineInline(admin.TabularInline):
    model = OrderLineORM
    extra = 0
    readonly_fields = ("item", "quantity", "unit_price", "is_customizable", "cart_line_id")


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id", "user_id", "status", "payment_status", "payment_type",
        "total_with_shipping", "balance", "created_at",
    )
    list_filter = ("status", "payment_status", "payment_type", "delivery_option", "created_at")
    search_fields = ("id", "user_id", "transaction_hash", "transaction_id", "balance_session_id")
    # Money and state change through the ledger services only.
    readonly_fields = (
        "id", "user_id", "amount", "shipping_fee", "total_with_shipping", "down_payment",
        "balance", "payment_type", "payment_status", "status", "transaction_hash",
        "request_hash", "transaction_id", "balance_session_id", "version",
    )
    inlines = [OrderLineInline]


class CartLineInline(admin.TabularInline):
    model = CartLineORM
    extra = 0


@admin.register(CartORM)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user_id", "created_at")
    search_fields = ("user_id",)
    inlines = [CartLineInline]


@admin.register(CheckoutCounter)
class CheckoutCounterAdmin(admin.ModelAdmin):
    list_display = ("user_id", "value", "updated_at")
    search_fields = ("user_id",)
    readonly_fields = ("user_id", "value")


@admin.register(EventStore)
class EventStoreAdmin(admin.ModelAdmin):
    list_display = ("id", "aggregate_id", "aggregate_type", "event_type", "sequence_number", "created_at")
    list_filter = ("aggregate_type", "event_type", "created_at")
    readonly_fields = ("id", "aggregate_id", "aggregate_type", "event_type", "event_version", "event_data", "sequence_number")


@admin.register(OutboxEvent)
class OutboxEventAdmin(admin.ModelAdmin):
    list_display = ("id", "aggregate_id", "aggregate_type", "event_type", "processed", "retry_count", "last_error", "created_at")
    list_filter = ("processed", "aggregate_type", "event_type", "created_at")
    readonly_fields = ("id", "aggregate_id", "aggregate_type", "event_type", "event_data", "processed", "processed_at", "retry_count", "last_error")
