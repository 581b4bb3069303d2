"""
Prometheus metrics blueprint for observability.

Exposes /metrics with HTTP request metrics plus POS counters.
This endpoint should be restricted to internal network or monitoring systems only.
"""
from flask import Blueprint, Response, request, g, current_app
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Check if running in multi-process mode (Gunicorn)
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

_metric_registry = registry if not MULTIPROCESS_MODE else None

# HTTP Request Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Number of HTTP requests currently being processed',
    registry=_metric_registry
)

# POS Metrics
sales_committed_total = Counter(
    'pos_sales_committed_total',
    'Sales committed, by payment method',
    ['payment_method'],
    registry=_metric_registry
)

tenant_stores_open = Gauge(
    'pos_tenant_stores_open',
    'Tenant store engines currently cached',
    registry=_metric_registry,
    multiprocess_mode='livesum'
)


def record_sale(payment_method):
    """Count a committed sale. Split payments are counted as 'split'."""
    label = 'split' if payment_method.startswith('split:') else payment_method
    sales_committed_total.labels(payment_method=label).inc()


def setup_metrics_instrumentation(app):
    """
    Setup before_request and after_request hooks for automatic metrics collection.

    Called from the app factory after app creation.
    """

    @app.before_request
    def before_request_metrics():
        g._prometheus_metrics_start_time = time.time()
        http_requests_in_flight.inc()

    @app.after_request
    def after_request_metrics(response):
        start = g.pop('_prometheus_metrics_start_time', None)
        if start is not None:
            endpoint = request.endpoint or 'unknown'
            http_request_duration_seconds.labels(
                method=request.method,
                endpoint=endpoint
            ).observe(time.time() - start)
            http_requests_total.labels(
                method=request.method,
                endpoint=endpoint,
                http_status=response.status_code
            ).inc()
            http_requests_in_flight.dec()
        return response


@metrics_bp.route('/metrics')
def metrics():
    """
    Prometheus metrics endpoint.

    SECURITY NOTE: not authenticated; restrict by network rules in production.
    """
    stores = current_app.extensions.get('tenant_stores')
    if stores is not None:
        tenant_stores_open.set(len(stores))

    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
