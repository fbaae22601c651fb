"""
Prometheus metrics and per-request access logging.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

logger = logging.getLogger("fitbyte.access")

api_requests_total = Counter(
    "fitbyte_http_requests_total",
    "Total API requests",
    ["method", "endpoint", "status_code"],
)

api_request_duration_seconds = Histogram(
    "fitbyte_http_request_duration_seconds",
    "API request duration",
    ["method", "endpoint"],
)


def _endpoint_label(request: Request) -> str:
    # Route templates keep label cardinality bounded (no raw activity ids).
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


async def track_requests(request: Request, call_next):
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed = time.perf_counter() - start
        endpoint = _endpoint_label(request)
        api_requests_total.labels(
            request.method, endpoint, str(status_code)
        ).inc()
        api_request_duration_seconds.labels(request.method, endpoint).observe(
            elapsed
        )
        logger.info(
            '"%s %s" %s %.1fms',
            request.method,
            request.url.path,
            status_code,
            elapsed * 1000,
        )


def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
