"""
Connector Rate Limiter - Domain-keyed politeness for outbound fetches.

Separate from Flask-Limiter (which is client-keyed for API rate limiting).
State is in-process only; it paces adapters and never decides whether a
run is allowed.

Key format: fetch:{domain}
"""
import time
import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    "requests_per_minute": 10,
    "requests_per_hour": 100,
}


class DomainRateLimiter:
    """Sliding-window rate limiter keyed by domain."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config_path: Path to YAML config file.
                        Defaults to connectors/rate_limits.yaml
            sleep: Injected for tests
            clock: Injected for tests
        """
        self.config_path = config_path or str(Path(__file__).parent / "rate_limits.yaml")
        self._config = None
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._history: Dict[str, list] = defaultdict(list)

    @property
    def config(self) -> Dict[str, Any]:
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f) or {}
                logger.info("fetch_rate_limits_loaded path=%s", self.config_path)
                return config
        except FileNotFoundError:
            logger.warning(
                "fetch_rate_limits_missing path=%s using defaults", self.config_path
            )
            return {"defaults": dict(DEFAULT_LIMITS), "domains": {}}

    def get_limits(self, domain: str) -> Dict[str, int]:
        defaults = self.config.get("defaults") or {}
        domain_config = (self.config.get("domains") or {}).get(domain) or {}

        limits = {}
        for key, fallback in DEFAULT_LIMITS.items():
            limits[key] = domain_config.get(key, defaults.get(key, fallback))
        return limits

    @staticmethod
    def domain_for(url: str) -> str:
        host = urlparse(url).hostname or ""
        if host.startswith("www."):
            host = host[4:]
        return host

    def _prune(self, key: str, now: float):
        self._history[key] = [t for t in self._history[key] if now - t < 3600]

    def _counts(self, key: str, now: float):
        history = self._history[key]
        minute = sum(1 for t in history if now - t < 60)
        return minute, len(history)

    def wait(self, domain: str):
        """
        Block until a request to domain is allowed, then record it.

        The minute window is enforced by sleeping until the oldest request
        in it ages out. An exhausted hour window also waits rather than fails.
        """
        limits = self.get_limits(domain)
        key = f"fetch:{domain}"

        while True:
            with self._lock:
                now = self._clock()
                self._prune(key, now)
                minute_count, hour_count = self._counts(key, now)

                if (
                    minute_count < limits["requests_per_minute"]
                    and hour_count < limits["requests_per_hour"]
                ):
                    self._history[key].append(now)
                    return

                history = self._history[key]
                if hour_count >= limits["requests_per_hour"]:
                    delay = 3600 - (now - history[0])
                else:
                    in_minute = [t for t in history if now - t < 60]
                    delay = 60 - (now - in_minute[0])

            delay = max(delay, 0.01)
            logger.debug("fetch_rate_limited domain=%s wait=%.1fs", domain, delay)
            self._sleep(delay)

    def is_allowed(self, domain: str) -> bool:
        limits = self.get_limits(domain)
        key = f"fetch:{domain}"
        with self._lock:
            now = self._clock()
            self._prune(key, now)
            minute_count, hour_count = self._counts(key, now)
        return (
            minute_count < limits["requests_per_minute"]
            and hour_count < limits["requests_per_hour"]
        )

    def get_status(self, domain: str) -> Dict:
        limits = self.get_limits(domain)
        key = f"fetch:{domain}"
        with self._lock:
            now = self._clock()
            self._prune(key, now)
            minute_count, hour_count = self._counts(key, now)

        return {
            "domain": domain,
            "minute": {"current": minute_count, "limit": limits["requests_per_minute"]},
            "hour": {"current": hour_count, "limit": limits["requests_per_hour"]},
            "is_allowed": (
                minute_count < limits["requests_per_minute"]
                and hour_count < limits["requests_per_hour"]
            ),
        }


# Global instance (lazy init)
_rate_limiter = None


def get_domain_rate_limiter() -> DomainRateLimiter:
    """Get the global fetch rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = DomainRateLimiter()
    return _rate_limiter
