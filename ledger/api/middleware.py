"""
Error mapping for HTTP and GraphQL responses.
"""
import logging

from ariadne import format_error
from django.http import JsonResponse
from graphql import GraphQLError

from ledger.domain.errors import LedgerError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred"


class ErrorHandler:
    """Error handler for API responses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "INVALID_CUSTOMIZATION": 400,
        "MATERIAL_NOT_FOUND": 400,
        "NOT_FOUND": 404,
        "UNAUTHORIZED": 403,
        "INVALID_STATE": 409,
        "DUPLICATE_REQUEST": 409,
        "CONCURRENT_MODIFICATION": 409,
        "GATEWAY_ERROR": 502,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error and return JSON response."""
        if isinstance(error, LedgerError):
            status_code = cls.ERROR_CODES.get(error.code, 400)
            return JsonResponse(
                {
                    "error": {
                        "code": error.code,
                        "message": error.message,
                    }
                },
                status=status_code,
            )

        logger.error(
            "unexpected_error",
            extra={"error": f"{type(error).__name__}: {error}"},
            exc_info=True,
        )

        return JsonResponse(
            {
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": INTERNAL_ERROR_MESSAGE,
                }
            },
            status=500,
        )


def format_graphql_error(error: GraphQLError, debug: bool = False) -> dict:
    """Expose ledger errors with their code, hide everything else."""
    original = error.original_error
    if isinstance(original, LedgerError):
        formatted = error.formatted
        formatted["message"] = original.message
        formatted["extensions"] = {"code": original.code}
        return formatted

    # Parse and validation errors are raised outside resolvers.
    if original is None or error.path is None or debug:
        return format_error(error, debug)

    logger.error(
        "unexpected_error",
        extra={"error": f"{type(original).__name__}: {original}", "operation": ".".join(map(str, error.path))},
        exc_info=(type(original), original, original.__traceback__),
    )
    formatted = error.formatted
    formatted["message"] = INTERNAL_ERROR_MESSAGE
    formatted["extensions"] = {"code": "INTERNAL_ERROR"}
    return formatted
