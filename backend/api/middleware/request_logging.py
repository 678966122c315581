"""
Request logging middleware - sampled API request log lines.

Refresh and admin calls are the interesting ones operationally; list them in
REQUEST_LOG_ENDPOINTS to log every hit while status polling stays sampled.
"""

import logging
import os
import random
import time
from dataclasses import dataclass, field
from typing import List

from flask import Flask, g, request

from utils.rate_limiter import GUEST_SESSION_HEADER


logger = logging.getLogger("api.request")


@dataclass
class RequestLogSettings:
    enabled: bool = True
    sample_rate: float = 0.0
    watchlist: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "RequestLogSettings":
        """
        Env vars:
          - REQUEST_LOG_ENABLED (default: true)
          - REQUEST_LOG_SAMPLE_RATE (default: 0.0)
          - REQUEST_LOG_ENDPOINTS (comma-separated path prefixes to always log)
        """
        try:
            sample_rate = float(os.environ.get("REQUEST_LOG_SAMPLE_RATE", "0.0"))
        except ValueError:
            sample_rate = 0.0
        raw = os.environ.get("REQUEST_LOG_ENDPOINTS", "")
        return cls(
            enabled=os.environ.get("REQUEST_LOG_ENABLED", "true").lower() == "true",
            sample_rate=sample_rate,
            watchlist=[p.strip() for p in raw.split(",") if p.strip()],
        )

    def should_log(self, path: str) -> bool:
        if any(path.startswith(prefix) for prefix in self.watchlist):
            return True
        if self.sample_rate <= 0:
            return False
        if self.sample_rate >= 1:
            return True
        return random.random() <= self.sample_rate


def setup_request_logging_middleware(app: Flask, settings: RequestLogSettings = None) -> None:
    settings = settings or RequestLogSettings.from_env()
    if not settings.enabled:
        return

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()

    @app.after_request
    def _log_request(response):
        path = request.path
        if not path.startswith("/api") or not settings.should_log(path):
            return response

        duration_ms = None
        if hasattr(g, "request_start"):
            duration_ms = round((time.perf_counter() - g.request_start) * 1000, 2)

        logger.info(
            "api_request path=%s method=%s status=%s duration_ms=%s request_id=%s session=%s",
            path,
            request.method,
            response.status_code,
            duration_ms,
            getattr(g, "request_id", None),
            request.headers.get(GUEST_SESSION_HEADER),
        )
        return response
