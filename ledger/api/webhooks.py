"""
Payment gateway webhook endpoint.
"""
import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from ledger.domain.errors import LedgerError, ValidationError
from ledger.infra.gateway import parse_webhook_event, verify_webhook_signature
from ledger.services.orders import OrderService

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Paymongo-Signature"


@csrf_exempt
@require_POST
def payment_webhook_view(request):
    """Receive checkout session events.

    Bad signatures and payloads get 400. Events with nothing to apply (other
    event types, unknown sessions, replays) are acknowledged with 200. When
    applying a payment fails the transaction is rolled back and 503 asks the
    provider to redeliver.
    """
    body = request.body
    if not verify_webhook_signature(body, request.headers.get(SIGNATURE_HEADER), settings.PAYMONGO_WEBHOOK_SECRET):
        logger.warning("webhook_signature_invalid", extra={"operation": "payment_webhook"})
        return JsonResponse({"error": {"code": "UNAUTHORIZED", "message": "Invalid signature"}}, status=400)

    try:
        event = parse_webhook_event(body)
    except ValidationError as e:
        logger.warning("webhook_payload_invalid", extra={"error": e.message})
        return JsonResponse({"error": {"code": e.code, "message": e.message}}, status=400)

    if not event.is_payment_completed or not event.session_id:
        logger.info(
            "webhook_event_skipped",
            extra={"operation": event.event_type, "session_id": event.session_id},
        )
        return JsonResponse({"received": True})

    try:
        OrderService().confirm_checkout_session(event.session_id)
    except LedgerError as e:
        logger.error(
            "webhook_processing_failed",
            extra={"session_id": event.session_id, "error": e.message, "status": e.code},
        )
        return JsonResponse({"error": {"code": e.code, "message": e.message}}, status=503)

    return JsonResponse({"received": True})
