"""Global exception handler middleware."""

import logging
import uuid
from typing import Any, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from candle.utils.exceptions import CandleException, FirebaseError
from candle.utils.logger import end_request_context, get_logger, request_context, start_request_context

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Global error handler middleware that catches and formats all exceptions."""

    async def dispatch(self, request: Request, call_next: Any) -> JSONResponse:
        """
        Handle exceptions and return proper JSON responses.

        Args:
            request: HTTP request.
            call_next: Next middleware/route handler.

        Returns:
            JSON response with error details.
        """
        # Let OPTIONS (CORS preflight) requests pass through untouched
        if request.method == "OPTIONS":
            return await call_next(request)

        # Clients may pass their own id to correlate app and server logs
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = start_request_context(request_id, request.method, request.url.path)
        try:
            response = await self._handle(request, call_next)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            end_request_context(token)

    async def _handle(self, request: Request, call_next: Any) -> Any:
        try:
            return await call_next(request)
        except CandleException as e:
            extra_data = {"error_code": e.error_code, "details": e.details}
            if isinstance(e, FirebaseError) and e.original_error is not None:
                extra_data["firebase_error"] = repr(e.original_error)
            logger.warning(f"Candle exception: {e.error_code} - {e.message}", extra={"extra_data": extra_data})
            return self._create_error_response(
                status_code=e.status_code,
                error_code=e.error_code,
                message=e.message,
                details=e.details,
            )
        except Exception as e:
            logger.error(
                f"Unhandled exception: {str(e)}",
                extra={"extra_data": {"exception_type": type(e).__name__}},
                exc_info=True,
            )
            return self._create_error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_code="INTERNAL_SERVER_ERROR",
                message="An unexpected error occurred",
                details={"error": str(e)} if logger.isEnabledFor(logging.DEBUG) else {},
            )

    @staticmethod
    def _create_error_response(
        status_code: int,
        error_code: str,
        message: str,
        details: Dict[str, Any],
    ) -> JSONResponse:
        """
        Create JSON error response.

        Args:
            status_code: HTTP status code.
            error_code: Error code identifier.
            message: Error message.
            details: Additional error details.

        Returns:
            JSON response.
        """
        return JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": details,
                    "requestId": request_context().get("requestId"),
                },
            },
        )
