"""
Polite HTTP fetch shared by adapters.

One GET per call: project User-Agent, a bounded timeout and the per-domain
politeness wait. Retrying is left to the next scheduled run.
"""
import logging
from typing import Optional

import requests
from flask import current_app, has_app_context

from constants import USER_AGENT

from .rate_limiter import DomainRateLimiter, get_domain_rate_limiter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def _configured_timeout() -> float:
    if has_app_context():
        return float(current_app.config.get(
            "CONNECTOR_FETCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS
        ))
    return DEFAULT_TIMEOUT_SECONDS


def polite_fetch(
    url: str,
    rate_limiter: Optional[DomainRateLimiter] = None,
    timeout: Optional[float] = None,
    session: Optional[requests.Session] = None,
) -> requests.Response:
    """
    Fetch url after waiting for its domain's politeness window.

    Raises:
        requests.RequestException: on network errors and non-2xx responses
    """
    limiter = rate_limiter or get_domain_rate_limiter()
    limiter.wait(limiter.domain_for(url))

    http = session or requests
    response = http.get(
        url,
        timeout=timeout if timeout is not None else _configured_timeout(),
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/json",
            "Accept-Language": "en-US,en;q=0.9",
        },
    )
    logger.debug("fetch url=%s status=%s", url, response.status_code)
    response.raise_for_status()
    return response
