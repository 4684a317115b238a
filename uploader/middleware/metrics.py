"""Request metrics middleware for Prometheus monitoring."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from uploader.core.logging import get_logger
from uploader.core.metrics import REQUESTS_TOTAL, RESPONSES_TOTAL

logger = get_logger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect request/response metrics.

    Records:
    - Total requests by method and route
    - Total responses by status code
    """

    def _route_path(self, request: Request) -> str:
        """Use the route template so job ids and digests don't explode labels."""
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path
        return path.rstrip("/") or "/"

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and record metrics.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers
        """
        try:
            start_time = time.time()
            response = await call_next(request)
            duration = time.time() - start_time
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise

        # The route is only resolved once the router has run
        REQUESTS_TOTAL.labels(
            method=request.method,
            path=self._route_path(request),
        ).inc()
        RESPONSES_TOTAL.labels(status_code=str(response.status_code)).inc()

        logger.info(
            "request_processed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=duration,
        )

        return response
