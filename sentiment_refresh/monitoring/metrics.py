"""Prometheus metrics for monitoring the sentiment refresh pipeline."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Define metrics
FETCH_OPERATIONS = Counter(
    "sentiment_refresh_fetch_operations_total",
    "Number of upstream fetch operations performed",
    ["operation_type"],
)

API_ERRORS = Counter(
    "sentiment_refresh_api_errors_total",
    "Number of upstream API errors encountered",
    ["error_type"],
)

ITEMS_PROCESSED = Counter(
    "sentiment_refresh_items_processed_total",
    "Number of posts/comments kept and scored",
    ["subreddit", "kind"],
)

RUNS_FINISHED = Counter(
    "sentiment_refresh_runs_total",
    "Number of refresh runs by terminal status",
    ["status"],
)

REQUEST_DURATION = Histogram(
    "sentiment_refresh_request_duration_seconds",
    "Duration of upstream API requests in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the refresh pipeline."""

    def __init__(self, port: int = 8000):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
        """
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Start the Prometheus metrics server."""
        if not self.server_started:
            try:
                start_http_server(self.port)
                self.server_started = True
                logger.info(f"Started Prometheus metrics server on port {self.port}")
            except OSError as e:
                logger.error(f"Failed to start Prometheus metrics server: {str(e)}")

    def record_fetch_operation(self, operation_type: str) -> None:
        """
        Record a fetch operation.

        Args:
            operation_type: Type of fetch operation (e.g., 'listing', 'comments', 'token')
        """
        FETCH_OPERATIONS.labels(operation_type=operation_type).inc()

    def record_api_error(self, error_type: str) -> None:
        """
        Record an API error.

        Args:
            error_type: Type of API error (e.g., '401', '429', 'transport')
        """
        API_ERRORS.labels(error_type=error_type).inc()

    def record_items_processed(self, subreddit: str, kind: str, count: int = 1) -> None:
        ITEMS_PROCESSED.labels(subreddit=subreddit, kind=kind).inc(count)

    def record_run(self, status: str) -> None:
        RUNS_FINISHED.labels(status=status).inc()

    def time_request(self) -> "RequestTimer":
        """
        Create a context manager for timing API requests.

        Returns:
            RequestTimer context manager
        """
        return RequestTimer()


class RequestTimer:
    """Context manager for timing API requests."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            REQUEST_DURATION.observe(time.time() - self.start_time)
