"""
Prometheus metrics endpoint.

Exposes application metrics in Prometheus format for scraping.

Metrics exposed:
- dapur_events_total: Total events by type
- dapur_projection_lag: Projection consumer lag
- dapur_trial_balance_balanced: 1 when the last trial balance closed, else 0
- dapur_request_duration_seconds: HTTP request duration histogram
"""
import logging
import re
import time

from django.db import models
from django.http import HttpResponse
from django.views import View
from prometheus_client import Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)

_metrics_initialized = False

# Metric references (initialized lazily)
_events_total = None
_projection_lag = None
_trial_balance_balanced = None
_request_duration = None
_active_requests = None


def _init_prometheus():
    """Register metrics with the default registry once per process."""
    global _metrics_initialized
    global _events_total, _projection_lag, _trial_balance_balanced
    global _request_duration, _active_requests

    if _metrics_initialized:
        return

    _events_total = Gauge(
        "dapur_events_total",
        "Total number of events",
        ["event_type"],
    )

    _projection_lag = Gauge(
        "dapur_projection_lag",
        "Number of events pending processing",
        ["consumer"],
    )

    _trial_balance_balanced = Gauge(
        "dapur_trial_balance_balanced",
        "1 if total debits equal total credits in the last trial balance, 0 otherwise",
    )

    _request_duration = Histogram(
        "dapur_request_duration_seconds",
        "HTTP request duration in seconds",
        ["method", "endpoint", "status"],
        buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    )

    _active_requests = Gauge(
        "dapur_active_requests",
        "Number of requests currently being processed",
    )

    _metrics_initialized = True
    logger.info("Prometheus metrics initialized")


def record_trial_balance(is_balanced: bool) -> None:
    """Publish the outcome of the latest trial balance."""
    _init_prometheus()
    _trial_balance_balanced.set(1 if is_balanced else 0)


def collect_metrics():
    """Collect current metrics values."""
    _init_prometheus()

    from events.models import BusinessEvent
    from projections.base import projection_registry

    try:
        event_counts = (
            BusinessEvent.objects
            .values("event_type")
            .annotate(count=models.Count("id"))
        )
        for row in event_counts:
            _events_total.labels(event_type=row["event_type"]).set(row["count"])

        for projection in projection_registry.all():
            _projection_lag.labels(consumer=projection.name).set(projection.get_lag())

    except Exception as e:
        logger.error(f"Error collecting metrics: {e}")


def get_prometheus_response():
    """Generate Prometheus metrics response."""
    try:
        collect_metrics()
        output = generate_latest()
        return HttpResponse(output, content_type=CONTENT_TYPE_LATEST)

    except Exception as e:
        logger.error(f"Error generating metrics: {e}")
        return HttpResponse(
            f"# Error generating metrics: {e}\n",
            content_type="text/plain",
            status=500,
        )


class MetricsView(View):
    """
    Prometheus metrics endpoint.

    Exposes metrics in Prometheus format at /_metrics.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        return get_prometheus_response()


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """
    _init_prometheus()

    def middleware(request):
        start = time.time()
        _active_requests.inc()
        status = 500

        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            _active_requests.dec()
            duration = time.time() - start

            # Normalize endpoint for cardinality control
            endpoint = re.sub(r"/\d+/", "/{id}/", request.path)
            endpoint = re.sub(r"/[0-9a-f-]{36}/", "/{uuid}/", endpoint)

            _request_duration.labels(
                method=request.method,
                endpoint=endpoint[:50],  # Truncate long paths
                status=f"{status // 100}xx",
            ).observe(duration)

    return middleware
