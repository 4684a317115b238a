"""Error handling middleware."""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_CONTENT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from starlette.types import ASGIApp

from uploader.core.logging import get_logger
from uploader.errors import (
    ContentNotFoundError,
    InvalidDigestError,
    InvalidFilenameError,
    InvalidJobIdError,
    JobNotFoundError,
    UploaderError,
)

logger = get_logger(__name__)

# Map exception types to status codes, most specific first
ErrorMapping = dict[type[Exception], int]


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn exceptions escaping the routes into JSON error responses.

    Error responses produced by the routes themselves (``HTTPException``,
    request validation) pass through untouched so their headers survive.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.error_mapping: ErrorMapping = {
            ContentNotFoundError: HTTP_404_NOT_FOUND,
            JobNotFoundError: HTTP_404_NOT_FOUND,
            InvalidDigestError: HTTP_422_UNPROCESSABLE_CONTENT,
            InvalidFilenameError: HTTP_422_UNPROCESSABLE_CONTENT,
            InvalidJobIdError: HTTP_422_UNPROCESSABLE_CONTENT,
            UploaderError: HTTP_500_INTERNAL_SERVER_ERROR,
            ValueError: HTTP_422_UNPROCESSABLE_CONTENT,
        }

    def _get_status_code(self, exc: Exception) -> int:
        for exc_type in type(exc).__mro__:
            if exc_type in self.error_mapping:
                return self.error_mapping[exc_type]
        return HTTP_500_INTERNAL_SERVER_ERROR

    def _create_error_response(
        self,
        error_type: str,
        detail: str,
        status_code: int,
        correlation_id: str | None,
    ) -> JSONResponse:
        """Create JSON error response with optional correlation ID."""
        response = JSONResponse(
            status_code=status_code,
            content={
                "error": error_type,
                "message": detail,
                "status_code": status_code,
                "correlation_id": correlation_id if correlation_id else "unknown",
            },
        )
        if correlation_id:
            response.headers["X-Request-ID"] = correlation_id
        return response

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and handle errors.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers or error response
        """
        try:
            return await call_next(request)
        except Exception as exc:
            correlation_id = getattr(request.state, "correlation_id", None)
            error_type = exc.__class__.__name__
            status_code = self._get_status_code(exc)
            if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
                detail = "Internal server error"
                logger.exception(
                    "request_error",
                    error_type=error_type,
                    path=request.url.path,
                    method=request.method,
                )
            else:
                detail = str(exc)
                logger.warning(
                    "request_error",
                    error_type=error_type,
                    error_message=detail,
                    status_code=status_code,
                    path=request.url.path,
                    method=request.method,
                )

            return self._create_error_response(
                error_type, detail, status_code, correlation_id
            )
