"""
Prometheus metrics for the quiz manager API and commands
"""
from prometheus_client import Counter, Histogram, Gauge, Info
import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

app_info = Info("mkquiz_app", "mkquiz application information")
app_info.info({
    "version": "2.1.0",
    "name": "mkquiz",
})

http_requests_total = Counter(
    "mkquiz_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "mkquiz_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)
)

http_requests_in_progress = Gauge(
    "mkquiz_http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"]
)

quiz_operations_total = Counter(
    "mkquiz_quiz_operations_total",
    "Quiz manifest operations",
    ["operation", "outcome"]  # operation: add, remove, rebuild, fix_paths
)

extraction_duration_seconds = Histogram(
    "mkquiz_extraction_duration_seconds",
    "Question extraction call duration",
    buckets=(1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0)
)

errors_total = Counter(
    "mkquiz_errors_total",
    "Total application errors",
    ["error_type", "endpoint"]
)

uploads_swept_total = Counter(
    "mkquiz_uploads_swept_total",
    "Stale scratch uploads removed"
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP request metrics
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_endpoint(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()

        try:
            response = await call_next(request)
            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()
            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(time.time() - start_time)
            return response

        except Exception as e:
            errors_total.labels(
                error_type=type(e).__name__,
                endpoint=endpoint
            ).inc()
            raise

        finally:
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()

    def _normalize_endpoint(self, path: str) -> str:
        """
        Collapse per-year quiz listings into one label
        """
        if not path.startswith("/api/"):
            return "/static"
        parts = path.split("/")
        # /api/quizzes/1st -> /api/quizzes/{year}
        if len(parts) == 4 and parts[2] == "quizzes" and parts[3] != "from-pdf":
            return "/api/quizzes/{year}"
        return path


def record_quiz_operation(operation: str, success: bool):
    """Record the outcome of a manifest operation"""
    quiz_operations_total.labels(operation=operation, outcome="success" if success else "failed").inc()


def record_extraction(duration: float):
    """Record a question extraction call"""
    extraction_duration_seconds.observe(duration)


def record_error(error_type: str, endpoint: str):
    """Record a handled API error"""
    errors_total.labels(error_type=error_type, endpoint=endpoint).inc()


def record_uploads_swept(count: int):
    """Record stale uploads removed by the startup sweep"""
    if count:
        uploads_swept_total.inc(count)
