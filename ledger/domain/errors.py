"""
Domain error taxonomy for the order ledger.
"""
from __future__ import annotations

from uuid import UUID


class LedgerError(Exception):
    """Base error carrying a machine-readable code."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationError(LedgerError):
    """Malformed or missing input."""

    code = "VALIDATION_ERROR"


class InvalidCustomization(ValidationError):
    """Customization requested for an item that is not customizable."""

    code = "INVALID_CUSTOMIZATION"


class MaterialNotFound(ValidationError):
    """Selected material is not offered for the item."""

    code = "MATERIAL_NOT_FOUND"

    def __init__(self, material_name: str):
        self.material_name = material_name
        super().__init__(f"Material '{material_name}' is not available for this item")


class NotFound(LedgerError):
    """Order or item does not exist."""

    code = "NOT_FOUND"


class Unauthorized(LedgerError):
    """Caller lacks the capability or ownership required."""

    code = "UNAUTHORIZED"


class InvalidState(LedgerError):
    """State machine guard failed."""

    code = "INVALID_STATE"


class GatewayError(LedgerError):
    """Payment provider call failed."""

    code = "GATEWAY_ERROR"

    def __init__(self, message: str = "Payment provider is unavailable, please try again", detail=None):
        self.detail = detail
        super().__init__(message)


class DuplicateRequest(LedgerError):
    """Idempotency key already used for a different checkout."""

    code = "DUPLICATE_REQUEST"

    def __init__(self, message: str, existing_order_id: UUID | None = None):
        self.existing_order_id = existing_order_id
        super().__init__(message)


class ConcurrentModification(LedgerError):
    """Order changed between read and conditional write."""

    code = "CONCURRENT_MODIFICATION"
