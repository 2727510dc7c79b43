"""
Prometheus metrics registration and helpers.

Exports:
- observe_request(...): record HTTP request metrics
- observe_media_upload(...): record media uploads by type and outcome
- observe_account_deletion(...): record account deletion outcomes
- metrics_latest(): return text exposition from correct registry (handles multiprocess)
- CONTENT_TYPE_LATEST: correct Prometheus content type
"""

import os
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess


REQUEST_COUNTER = Counter(
    'kinnect_http_requests_total', 'Total HTTP requests', ['endpoint', 'method', 'status']
)

REQUEST_LATENCY = Histogram(
    'kinnect_http_request_latency_seconds', 'HTTP request latency seconds', ['endpoint']
)

MEDIA_UPLOADS = Counter(
    'kinnect_media_uploads_total', 'Media uploads', ['type', 'outcome']
)

MEDIA_UPLOAD_BYTES = Histogram(
    'kinnect_media_upload_bytes', 'Size of uploaded media files', buckets=[
        10 * 1024, 100 * 1024, 512 * 1024, 1024 * 1024, 5 * 1024 * 1024, 10 * 1024 * 1024
    ]
)

ACCOUNT_DELETIONS = Counter(
    'kinnect_account_deletions_total', 'Account deletion attempts', ['outcome']
)


def observe_request(endpoint: str, method: str, status: int, latency_seconds: float) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, method=method, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def observe_media_upload(media_type: str, outcome: str, size: int = None) -> None:
    MEDIA_UPLOADS.labels(type=media_type, outcome=outcome).inc()
    if size is not None:
        MEDIA_UPLOAD_BYTES.observe(size)


def observe_account_deletion(outcome: str) -> None:
    ACCOUNT_DELETIONS.labels(outcome=outcome).inc()


def metrics_latest() -> bytes:
    """Return the Prometheus text exposition, multiprocess-aware if configured."""
    prom_mp_dir = os.getenv('PROMETHEUS_MULTIPROC_DIR')
    if prom_mp_dir:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    # Default registry
    return generate_latest()
