"""
Request Rate Limiter - Flask-Limiter configuration

Coarse abuse protection for the public API. This sits in front of the
durable guest-refresh admission rules (services/guest_jobs.py) and never
replaces them: a request that passes here can still be rejected as busy or
cooling down.

Uses Redis in production, memory storage for development.
"""

import os
import logging
from flask import request, g, jsonify
from flask_limiter import Limiter

logger = logging.getLogger(__name__)

REDIS_URL = os.environ.get("REDIS_URL")

if REDIS_URL:
    storage_uri = REDIS_URL
else:
    storage_uri = "memory://"

GUEST_SESSION_HEADER = "X-Guest-Session"


def get_rate_limit_key():
    """
    Get rate limit key - guest session if the client sent one, else remote_addr.

    Keying on the session avoids punishing visitors behind a shared IP.
    """
    session_id = request.headers.get(GUEST_SESSION_HEADER)
    if session_id:
        return f"session:{session_id}"
    return f"ip:{request.remote_addr}"


# Per-endpoint limits by cost
RATE_LIMITS = {
    # Freshness checks are cheap reads polled by the UI
    "status": "120 per minute",

    # Refresh requests create jobs; the durable cooldown is the real gate
    "refresh": "10 per minute",

    # Administrative triggers
    "admin": "30 per minute",
}

DEFAULT_LIMITS = ["2000 per day", "500 per hour"]

limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=DEFAULT_LIMITS,
    storage_uri=storage_uri,
    key_prefix="rate_limit",
    headers_enabled=True,
)


def init_limiter(app):
    """
    Bind the module-level limiter to the app.

    Honors RATELIMIT_ENABLED from app config (tests turn it off).
    """
    limiter.init_app(app)

    @app.errorhandler(429)
    def ratelimit_handler(e):
        request_id = getattr(g, 'request_id', None)
        response = jsonify({
            "error": {
                "code": "TOO_MANY_REQUESTS",
                "message": str(e.description),
                "requestId": request_id,
            }
        })
        return response, 429

    logger.info(
        "rate_limiter_initialized storage=%s enabled=%s",
        storage_uri.split("://")[0],
        app.config.get("RATELIMIT_ENABLED", True),
    )
    return limiter


def get_limiter():
    """Get the limiter bound to the current app."""
    return limiter
