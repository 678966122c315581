"""
Scope strings - comma-separated "<kind>:<slug>" tokens.

    "city:austin-tx,county:travis-county-tx,state:texas"

kind is one of city/county/state. Order is not significant and duplicates
are harmless. A token without a recognised prefix is taken as a bare slug.
"""
import re
from typing import Iterable, List

from constants import SCOPE_KINDS

_TOKEN_RE = re.compile(r"^(?:%s):(.+)$" % "|".join(SCOPE_KINDS))


def _token_to_slug(token: str) -> str:
    token = token.strip()
    match = _TOKEN_RE.match(token)
    return match.group(1).strip() if match else token


def scope_to_jurisdiction_slugs(scope: str) -> List[str]:
    """
    Parse a scope string into jurisdiction slugs (kind prefix discarded).

    Returns slugs in first-seen order without duplicates.

    >>> scope_to_jurisdiction_slugs("city:austin-tx, state:texas,city:austin-tx")
    ['austin-tx', 'texas']
    """
    if not scope:
        return []

    slugs = []
    for token in scope.split(","):
        slug = _token_to_slug(token)
        if slug and slug not in slugs:
            slugs.append(slug)
    return slugs


def normalize_scope_key(scope: str) -> str:
    """Canonical cache key for a scope: sorted, deduplicated slugs."""
    return jurisdiction_slugs_to_scope_key(scope_to_jurisdiction_slugs(scope))


def jurisdiction_slugs_to_scope_key(slugs: Iterable[str]) -> str:
    return ",".join(sorted(set(slugs)))


def resolve_scope(scope, default_scope: str) -> str:
    """Use default_scope when the caller sent nothing (or only whitespace)."""
    if scope is None or not str(scope).strip():
        return default_scope
    return str(scope).strip()
