"""Prometheus metrics for monitoring the Yak client."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Define metrics
API_REQUESTS = Counter(
    "yak_client_api_requests_total",
    "Number of signed API requests issued",
    ["endpoint"],
)

API_ERRORS = Counter(
    "yak_client_api_errors_total",
    "Number of API errors encountered",
    ["endpoint", "error_type"],
)

GEOCODE_FAILURES = Counter(
    "yak_client_geocode_failures_total",
    "Number of reverse geocoding lookups that failed or timed out",
)

MESSAGES_ENRICHED = Counter(
    "yak_client_messages_enriched_total",
    "Number of messages returned with a resolved address",
)

REQUEST_DURATION = Histogram(
    "yak_client_request_duration_seconds",
    "Duration of API requests in seconds",
    ["endpoint"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the Yak client."""

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

    def record_api_request(self, endpoint: str) -> None:
        """
        Record an outgoing API request.

        Args:
            endpoint: API page requested (e.g. 'getMessages')
        """
        API_REQUESTS.labels(endpoint=endpoint).inc()

    def record_api_error(self, endpoint: str, error_type: str) -> None:
        """
        Record an API error.

        Args:
            endpoint: API page requested
            error_type: Kind of failure (e.g. 'transport', '5xx', 'malformed')
        """
        API_ERRORS.labels(endpoint=endpoint, error_type=error_type).inc()

    def record_geocode_failure(self) -> None:
        """Record a reverse geocoding lookup that degraded to no address."""
        GEOCODE_FAILURES.inc()

    def record_message_enriched(self) -> None:
        """Record a message returned with its address."""
        MESSAGES_ENRICHED.inc()

    def time_request(self, endpoint: str) -> "RequestTimer":
        """
        Create a context manager for timing API requests.

        Args:
            endpoint: API page being timed

        Returns:
            RequestTimer context manager
        """
        return RequestTimer(endpoint)


class RequestTimer:
    """Context manager for timing API requests."""

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            duration = time.time() - self.start_time
            REQUEST_DURATION.labels(endpoint=self.endpoint).observe(duration)
