"""
=============================================================================
LOGGING MIDDLEWARE
=============================================================================

Access log: one line per request with method, path, status, size and
duration, written to the `staticserver.access` logger.

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 10.0.0.7 - - [18/Oct/2026:10:15:32 +0000] "GET /app.js" 200 5120    │
    │ 0.84ms                                                              │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"method": "GET", "path": "/app.js", "status_code": 200, ...}       │
    └─────────────────────────────────────────────────────────────────────┘

The stage sits second in the pipeline, right after the HTTPS redirect, so
it sees every request that is served (the redirect logs its own 301s).
It never changes the response.

=============================================================================
"""

import time
import json
import logging
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """One access log entry."""

    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging stage.

        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        log_entry = RequestLog(
            method=request.method,
            path=request.path,
            query=request.query,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
