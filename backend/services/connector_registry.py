"""
Connector Registry - read path over configured connectors.

A connector's jurisdiction_slug may itself be compound ('city:austin-tx'),
so matching asks "does this connector's slug reference any requested slug"
rather than testing equality.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from models.connector import Connector
from models.database import db


def connector_slug_parts(jurisdiction_slug: str) -> List[str]:
    """The slug itself plus its jurisdiction segment (never the kind prefix)."""
    if not jurisdiction_slug:
        return []
    parts = [jurisdiction_slug]
    bare = jurisdiction_slug.split(':')[-1]
    if bare and bare != jurisdiction_slug:
        parts.append(bare)
    return parts


def connector_matches_slugs(jurisdiction_slug: str, slugs: Iterable[str]) -> bool:
    wanted = set(slugs)
    return any(part in wanted for part in connector_slug_parts(jurisdiction_slug))


def connector_jurisdiction_slug(jurisdiction_slug: str) -> str:
    """The bare jurisdiction slug a connector points at ('city:austin-tx' -> 'austin-tx')."""
    return jurisdiction_slug.split(':')[-1]


def list_enabled(
    kinds: Optional[Iterable[str]] = None,
    jurisdiction_slugs: Optional[Iterable[str]] = None,
    db_session=None,
) -> List[Connector]:
    """
    Enabled connectors in registry order (by id).

    Args:
        kinds: Restrict to these kinds (None = all kinds)
        jurisdiction_slugs: Restrict to connectors referencing any of these
            slugs. None means no restriction; an empty list matches nothing.
    """
    session = db_session or db.session
    query = session.query(Connector).filter(Connector.enabled.is_(True))
    if kinds is not None:
        query = query.filter(Connector.kind.in_(list(kinds)))

    connectors = query.order_by(Connector.id).all()

    if jurisdiction_slugs is None:
        return connectors

    slugs = list(jurisdiction_slugs)
    return [c for c in connectors if connector_matches_slugs(c.jurisdiction_slug, slugs)]


def latest_run_at(jurisdiction_slugs: Iterable[str], db_session=None) -> Optional[datetime]:
    """Most recent last_run_at among enabled connectors matching the slugs."""
    runs = [c.last_run_at for c in list_enabled(jurisdiction_slugs=jurisdiction_slugs, db_session=db_session)
            if c.last_run_at is not None]
    return max(runs) if runs else None


def get_connector(connector_id, db_session=None) -> Optional[Connector]:
    session = db_session or db.session
    return session.get(Connector, connector_id)

