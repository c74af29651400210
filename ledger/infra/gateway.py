"""
Payment gateway adapter (PayMongo-style checkout sessions).
"""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from ledger.domain.errors import GatewayError, ValidationError
from ledger.domain.money import to_centavos

logger = logging.getLogger(__name__)

PAID_EVENT_TYPES = frozenset({
    "checkout_session.completed",
    "checkout_session.payment.paid",
})


@dataclass(frozen=True)
class GatewayLineItem:
    name: str
    amount: Decimal
    quantity: int = 1
    description: str = ""


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    checkout_url: str


class SessionState(str, Enum):
    ACTIVE = "active"
    PAID = "paid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class WebhookEvent:
    event_type: str
    session_id: str | None

    @property
    def is_payment_completed(self) -> bool:
        return self.event_type in PAID_EVENT_TYPES


class PayMongoGateway:
    """Client for the hosted checkout API."""

    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.paymongo.com/v1",
        timeout: float = 10.0,
        currency: str = "PHP",
        payment_method_types: tuple[str, ...] = ("gcash", "card"),
        session: requests.Session | None = None,
    ):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.currency = currency
        self.payment_method_types = payment_method_types
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    @classmethod
    def from_settings(cls) -> "PayMongoGateway":
        if not settings.PAYMONGO_SECRET_KEY:
            raise GatewayError("Payment configuration error", detail="PAYMONGO_SECRET_KEY is not set")
        return cls(
            secret_key=settings.PAYMONGO_SECRET_KEY,
            api_url=settings.PAYMONGO_API_URL,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
            currency=settings.PAYMENT_CURRENCY,
        )

    def _send(self, operation: str, method: str, path: str, **kwargs) -> dict:
        """Call the API and return the response's ``data`` object."""
        try:
            response = getattr(self.session, method)(
                f"{self.api_url}/{path}",
                auth=(self.secret_key, ""),
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            return response.json()["data"]
        except requests.RequestException as e:
            detail = e.response.text if e.response is not None else str(e)
            logger.error("gateway_request_failed", extra={"operation": operation, "error": detail})
            raise GatewayError(detail=detail) from e
        except (KeyError, TypeError, ValueError) as e:
            logger.error("gateway_response_malformed", extra={"operation": operation, "error": repr(e)})
            raise GatewayError(detail=repr(e)) from e

    def create_checkout_session(
        self,
        line_items: list[GatewayLineItem],
        total_amount: Decimal,
        success_url: str,
        cancel_url: str,
        description: str = "",
    ) -> CheckoutSession:
        """Open a hosted checkout session for total_amount."""
        payload = {
            "data": {
                "attributes": {
                    "line_items": [
                        {
                            "amount": to_centavos(item.amount),
                            "currency": self.currency,
                            "name": item.name,
                            "description": item.description or item.name,
                            "quantity": item.quantity,
                        }
                        for item in line_items
                    ],
                    "payment_method_types": list(self.payment_method_types),
                    "success_url": success_url,
                    "cancel_url": cancel_url,
                    "description": description,
                    "send_email_receipt": True,
                    "show_line_items": True,
                    "amount": to_centavos(total_amount),
                }
            }
        }

        data = self._send("create_checkout_session", "post", "checkout_sessions", json=payload)
        try:
            session = CheckoutSession(
                session_id=data["id"],
                checkout_url=data["attributes"]["checkout_url"],
            )
        except (KeyError, TypeError) as e:
            logger.error(
                "gateway_response_malformed",
                extra={"operation": "create_checkout_session", "error": repr(e)},
            )
            raise GatewayError(detail=repr(e)) from e

        logger.info(
            "gateway_session_created",
            extra={"session_id": session.session_id, "operation": "create_checkout_session"},
        )
        return session

    def get_checkout_session_state(self, session_id: str) -> SessionState:
        """Whether a session can still be paid, was paid, or has expired."""
        data = self._send("get_checkout_session", "get", f"checkout_sessions/{session_id}")
        attributes = data.get("attributes") or {}
        if attributes.get("payments"):
            return SessionState.PAID
        if attributes.get("status") == SessionState.EXPIRED.value:
            return SessionState.EXPIRED
        return SessionState.ACTIVE


def get_payment_gateway():
    """Instantiate the gateway configured in PAYMENT_GATEWAY_CLASS."""
    gateway_class = import_string(settings.PAYMENT_GATEWAY_CLASS)
    return gateway_class.from_settings()


def verify_webhook_signature(body: bytes, header: str | None, secret: str) -> bool:
    """Check a ``t=<ts>,te=<sig>,li=<sig>`` signature header."""
    if not header or not secret:
        return False
    parts = {}
    for chunk in header.split(","):
        key, _, value = chunk.strip().partition("=")
        parts[key] = value
    timestamp = parts.get("t")
    if not timestamp:
        return False

    signed = f"{timestamp}.".encode() + body
    expected = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return any(
        hmac.compare_digest(expected, parts[key])
        for key in ("te", "li")
        if parts.get(key)
    )


def parse_webhook_event(body: bytes) -> WebhookEvent:
    """Extract event type and checkout session ID from a webhook body."""
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        raise ValidationError("Malformed webhook payload")
    if not isinstance(payload, dict):
        raise ValidationError("Malformed webhook payload")

    attributes = (payload.get("data") or {}).get("attributes") or {}
    event_type = payload.get("type") or attributes.get("type")
    if not event_type:
        raise ValidationError("Webhook event type is missing")

    resource = attributes.get("data") or {}
    return WebhookEvent(event_type=event_type, session_id=resource.get("id"))
