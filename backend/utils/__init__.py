"""
Utility modules for the backend.
"""
from .clock import utcnow, isoformat
from .rate_limiter import (
    init_limiter,
    get_limiter,
    get_rate_limit_key,
    RATE_LIMITS,
)

__all__ = [
    'utcnow',
    'isoformat',
    'init_limiter',
    'get_limiter',
    'get_rate_limit_key',
    'RATE_LIMITS',
]
