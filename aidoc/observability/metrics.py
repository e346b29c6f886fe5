from time import perf_counter
from typing import Optional

from prometheus_client import Counter, Histogram

# ---- METRICS (names are Prometheus-safe; units are in names) ----

EXTRACTION_REQUESTS = Counter(
    "extraction_requests_total",
    "Total /extract-dates requests by outcome",
    labelnames=("outcome",),
)

PIPELINE_OUTCOMES = Counter(
    "pipeline_outcomes_total",
    "Terminal state of the validation/repair pipeline",
    labelnames=("state", "repaired"),
)

MODEL_CALLS = Counter(
    "model_calls_total",
    "Calls to the chat-completion endpoint by kind and result",
    labelnames=("kind", "result"),
)

REQUEST_LATENCY_MS = Histogram(
    "request_latency_ms",
    "End-to-end latency of /extract-dates in milliseconds",
    # Two sequential model calls can take several seconds
    buckets=(100, 250, 500, 1000, 2000, 4000, 8000, 16000, 32000, 64000)
)

ERRORS_TOTAL = Counter(
    "errors_total",
    "Count of errors by type",
    labelnames=("type",),
)

# ---- HELPERS ----

def timer_start() -> float:
    return perf_counter()

def timer_observe_ms(start: float) -> float:
    elapsed_ms = (perf_counter() - start) * 1000.0
    REQUEST_LATENCY_MS.observe(elapsed_ms)
    return elapsed_ms

def record_request(outcome: str) -> None:
    EXTRACTION_REQUESTS.labels(outcome=outcome).inc()

def record_pipeline(state: str, repaired: bool) -> None:
    PIPELINE_OUTCOMES.labels(state=state, repaired=str(repaired).lower()).inc()

def record_model_call(kind: str, result: str) -> None:
    MODEL_CALLS.labels(kind=kind, result=result).inc()

def record_error(err_type: Optional[str]) -> None:
    if err_type:
        ERRORS_TOTAL.labels(type=err_type).inc()
