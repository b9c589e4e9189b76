"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
image_generation_attempts_total = Counter(
    "image_generation_attempts_total",
    "Backend generateContent calls by model and outcome",
    ["model", "outcome"],
)

image_generation_retries_total = Counter(
    "image_generation_retries_total",
    "Backoff retries scheduled after rate limiting",
    ["model"],
)

image_generation_fallbacks_total = Counter(
    "image_generation_fallbacks_total",
    "Downgrades from the high tier to the standard tier",
    ["reason"],
)

image_generation_failed_total = Counter(
    "image_generation_failed_total",
    "Terminal generation failures by kind",
    ["kind"],
)

prompt_enhancements_total = Counter(
    "prompt_enhancements_total",
    "Prompt enhancement calls by outcome",
    ["outcome"],  # enhanced, unchanged, failed
)

# Histograms
image_generation_duration_seconds = Histogram(
    "image_generation_duration_seconds",
    "Wall time of one generate request including retries and backoff",
    buckets=(1, 2.5, 5, 10, 20, 30, 60, 120, 300),
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
