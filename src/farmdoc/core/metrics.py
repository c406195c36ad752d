from __future__ import annotations

import time
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request
from starlette.responses import Response


REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=("method", "path", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path"),
)

RECORDS_TOTAL = Counter(
    "farmdoc_records_total",
    "Records emitted by extraction",
    labelnames=("family",),
)

ROWS_SKIPPED_TOTAL = Counter(
    "farmdoc_rows_skipped_total",
    "Rows that matched no known row pattern",
    labelnames=("family",),
)

DOCUMENTS_FAILED_TOTAL = Counter(
    "farmdoc_documents_failed_total",
    "Documents whose extraction was aborted",
    labelnames=("family", "reason"),
)


def observe_extraction(family: str, records: int, skipped: int) -> None:
    RECORDS_TOTAL.labels(family=family).inc(records)
    if skipped:
        ROWS_SKIPPED_TOTAL.labels(family=family).inc(skipped)


def observe_failure(family: str, reason: str) -> None:
    DOCUMENTS_FAILED_TOTAL.labels(family=family, reason=reason).inc()


async def metrics_endpoint(_: Request) -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    method = request.method.upper()
    path = request.url.path
    start = time.perf_counter()
    response: Response | None = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur = time.perf_counter() - start
        # Route template keeps label cardinality bounded (/extract/{family})
        route = request.scope.get("route")
        path = getattr(route, "path", None) or path
        REQUEST_LATENCY.labels(method=method, path=path).observe(dur)
        status_str = str(getattr(response, "status_code", 500))
        REQUEST_COUNT.labels(method=method, path=path, status=status_str).inc()
