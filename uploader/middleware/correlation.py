"""Correlation ID middleware for request tracking."""

import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.contextvars import bind_contextvars, clear_contextvars

REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle request correlation IDs.

    Assigns a unique correlation ID to each request and adds it to:
    - Request state
    - Response headers
    - Structured logging context
    """

    def _validate_correlation_id(self, value: str | None) -> bool:
        """
        Validate if a string is a valid correlation ID.

        Args:
        ----
            value: The string to validate

        Returns:
        -------
            True if valid correlation ID, False otherwise
        """
        if not value:
            return False

        try:
            uuid.UUID(value)
            return True
        except (ValueError, AttributeError, TypeError):
            return False

    def _get_correlation_id(self, request: Request) -> str:
        """Reuse a valid incoming ``X-Request-ID`` or generate a new one."""
        header_value = request.headers.get(REQUEST_ID_HEADER, "")
        if self._validate_correlation_id(header_value):
            return header_value

        return str(uuid.uuid4())

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers
        """
        clear_contextvars()

        correlation_id = self._get_correlation_id(request)
        bind_contextvars(correlation_id=correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id

        return response
