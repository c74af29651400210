"""
Application services.
"""
from ledger.services.cart import CartService
from ledger.services.checkout import (
    CheckoutRequest,
    CheckoutResult,
    CheckoutService,
    IdempotencyGuard,
)
from ledger.services.orders import OrderService
from ledger.services.pricing import CheckoutLine, PricingService

__all__ = [
    "CartService",
    "CheckoutLine",
    "CheckoutRequest",
    "CheckoutResult",
    "CheckoutService",
    "IdempotencyGuard",
    "OrderService",
    "PricingService",
]
