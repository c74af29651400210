"""
GraphQL view with caller resolution and logging support.
"""
import json
import logging
from uuid import UUID, uuid4

from ariadne import graphql_sync
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ledger.api.middleware import ErrorHandler, format_graphql_error
from ledger.api.schema import schema
from ledger.domain.caller import Caller, Role
from ledger.infra.pii_masker import mask_pii_in_dict

logger = logging.getLogger(__name__)


class LedgerGraphQLView:
    """GraphQL view with caller identity and structured logging."""

    def dispatch(self, request, *args, **kwargs):
        """Handle GraphQL request."""
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        user_id = request.headers.get("X-User-ID")
        caller = self._resolve_caller(request, request_id)

        # Log request (with PII masking)
        log_data = {
            "request_id": request_id,
            "user_id": user_id,
            "operation": "graphql",
        }
        logger.info("graphql_request", extra=mask_pii_in_dict(log_data))

        try:
            response = self._process_graphql_request(request, caller)
        except Exception as e:
            response = ErrorHandler.handle_error(e)
            logger.error(
                "graphql_error",
                extra={
                    "request_id": request_id,
                    "error": str(e),
                }
            )

        logger.info(
            "graphql_response",
            extra={
                "request_id": request_id,
                "status": response.status_code,
            }
        )

        return response

    def _resolve_caller(self, request, request_id: str) -> Caller | None:
        """Build caller from identity headers set by the upstream gateway."""
        user_id = request.headers.get("X-User-ID")
        if not user_id:
            return None
        try:
            user_uuid = UUID(user_id)
        except (ValueError, TypeError):
            logger.warning(
                "invalid_user_id",
                extra={"request_id": request_id},
            )
            return None

        role_header = (request.headers.get("X-User-Role") or "").lower()
        role = Role.ADMIN if role_header == Role.ADMIN.value else Role.USER
        return Caller(user_id=user_uuid, role=role)

    def _process_graphql_request(self, request, caller: Caller | None):
        """Process GraphQL request."""
        if request.method == "GET":
            return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse(
                {"error": {"code": "VALIDATION_ERROR", "message": "Invalid JSON"}},
                status=400
            )

        _, result = graphql_sync(
            schema,
            data,
            context_value={"request": request, "caller": caller},
            error_formatter=format_graphql_error,
            debug=settings.DEBUG,
        )

        # Requests that never executed (parse or validation errors) carry no
        # "data" key; resolver errors are reported with 200 alongside data.
        status_code = 200 if "data" in result else 400
        return JsonResponse(result, status=status_code)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    view = LedgerGraphQLView()
    return view.dispatch(request)
