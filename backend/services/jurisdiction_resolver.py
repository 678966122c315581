"""
Jurisdiction Hierarchy Resolver

Expands selected jurisdiction slugs into the full set of jurisdiction ids
a query or job should cover:

    state  -> itself + its counties + those counties' cities
    county -> itself + its cities
    city   -> itself

Unknown slugs are skipped. An empty selection yields an empty set; whether
that means "no restriction" or "match nothing" is the caller's decision.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from constants import JURISDICTION_COUNTY, JURISDICTION_STATE
from models.database import db
from models.jurisdiction import Jurisdiction

logger = logging.getLogger(__name__)


class JurisdictionForest:
    """In-memory snapshot of the jurisdiction table, loaded with one query."""

    def __init__(self, rows: Iterable[Jurisdiction]):
        self.by_slug: Dict[str, Jurisdiction] = {}
        self.children: Dict[int, List[Jurisdiction]] = defaultdict(list)
        for row in rows:
            self.by_slug[row.slug] = row
            if row.parent_id is not None:
                self.children[row.parent_id].append(row)

    @classmethod
    def load(cls, db_session=None) -> "JurisdictionForest":
        session = db_session or db.session
        return cls(session.query(Jurisdiction).all())

    def expand(self, selected_slugs: Iterable[str]) -> Set[int]:
        expanded: Set[int] = set()

        for slug in selected_slugs or []:
            node = self.by_slug.get(slug)
            if node is None:
                logger.debug("jurisdiction_expand_skip unknown_slug=%s", slug)
                continue

            expanded.add(node.id)

            if node.type == JURISDICTION_STATE:
                for county in self.children.get(node.id, []):
                    expanded.add(county.id)
                    for city in self.children.get(county.id, []):
                        expanded.add(city.id)
            elif node.type == JURISDICTION_COUNTY:
                for city in self.children.get(node.id, []):
                    expanded.add(city.id)

        return expanded


def expand(selected_slugs: Iterable[str], db_session=None) -> Set[int]:
    """Expand slugs hierarchically into jurisdiction ids."""
    selected = list(selected_slugs or [])
    if not selected:
        return set()
    return JurisdictionForest.load(db_session).expand(selected)


def get_jurisdiction_ids(slugs: Iterable[str], db_session=None) -> List[int]:
    """Direct slug -> id lookup, no hierarchical expansion."""
    slugs = list(slugs or [])
    if not slugs:
        return []
    session = db_session or db.session
    rows = session.query(Jurisdiction.id).filter(Jurisdiction.slug.in_(slugs)).all()
    return [row.id for row in rows]


def get_jurisdiction_by_slug(slug: str, db_session=None) -> Optional[Jurisdiction]:
    session = db_session or db.session
    return session.query(Jurisdiction).filter_by(slug=slug).first()
