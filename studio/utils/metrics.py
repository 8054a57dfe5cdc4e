"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
download_requests_total = Counter(
    "studio_download_requests_total",
    "Download requests by kind and final status code",
    ["kind", "status"],
)

access_decisions_total = Counter(
    "studio_access_decisions_total",
    "Access gate decisions",
    ["kind", "result"],  # kind: packet / page; result: granted / tier_insufficient / vault_locked
)

audit_write_failures_total = Counter(
    "studio_audit_write_failures_total",
    "Download log inserts that failed (request continued)",
)

circuit_breaker_state = Gauge(
    "studio_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
packet_build_duration_seconds = Histogram(
    "studio_packet_build_duration_seconds",
    "Time to render and zip a packet",
    ["mode"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30, 60],
)

packet_size_bytes = Histogram(
    "studio_packet_size_bytes",
    "Size of built archives",
    buckets=[1_000, 10_000, 100_000, 1_000_000, 10_000_000, 50_000_000],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
