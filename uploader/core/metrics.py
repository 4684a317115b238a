"""Prometheus metrics for uploads, downloads and HTTP traffic."""

from prometheus_client import Counter, Gauge

UPLOADS = Counter(
    "uploader_newfiles_uploads",
    "The number of uploads made in the application",
)

DOWNLOADS = Counter(
    "uploader_newfiles_downloads",
    "The number of downloads made by the application",
)

SENT = Counter(
    "uploader_sent_files",
    "The count of sent files",
)

UPLOADS_ACTIVE = Gauge(
    "uploader_newfiles_uploads_active",
    "The count of currently active uploads",
)

DOWNLOADS_ACTIVE = Gauge(
    "uploader_newfiles_downloads_active",
    "The count of currently active downloads",
)

# HTTP metrics
REQUESTS_TOTAL = Counter(
    "uploader_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "path"],
)

RESPONSES_TOTAL = Counter(
    "uploader_http_responses_total",
    "Total number of HTTP responses",
    labelnames=["status_code"],
)
