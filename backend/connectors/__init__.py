"""
Parser adapters and the plumbing they share.

- base.py: ParserAdapter contract and RunStats
- registry.py: parser_key -> adapter class
- http.py / rate_limiter.py: polite outbound fetching
- adapters/: shipped adapters
"""
from .base import ParserAdapter, RunStats
from .registry import ParserRegistry, get_parser_registry
from .rate_limiter import DomainRateLimiter, get_domain_rate_limiter

__all__ = [
    "ParserAdapter",
    "RunStats",
    "ParserRegistry",
    "get_parser_registry",
    "DomainRateLimiter",
    "get_domain_rate_limiter",
]
