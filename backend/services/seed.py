"""
Seed loader - jurisdictions and connectors from a YAML file.

Idempotent: jurisdictions are matched by slug and connectors by key, so the
same file can be applied on every deploy. Rows not mentioned in the file
are left alone. Engine-owned connector fields (source_id, last_run_at,
last_status) are never written here.

File shape:

    jurisdictions:
      - {slug: texas, name: Texas, type: state}
      - {slug: travis-county-tx, name: Travis County, type: county, parent: texas}
    connectors:
      - key: austin-council-meetings
        jurisdiction_slug: city:austin-tx
        kind: meetings
        parser_key: html_meetings
        source_url: https://...
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

from constants import CONNECTOR_KINDS, JURISDICTION_TYPES
from models.connector import Connector
from models.database import db
from models.jurisdiction import Jurisdiction

logger = logging.getLogger(__name__)

JURISDICTION_FIELDS = ("name", "type")
CONNECTOR_FIELDS = (
    "jurisdiction_slug", "kind", "parser_key", "source_url",
    "enabled", "schedule", "notes", "options",
)


class SeedFileError(ValueError):
    pass


@dataclass
class SeedReport:
    created: Dict[str, int] = field(default_factory=lambda: {"jurisdictions": 0, "connectors": 0})
    updated: Dict[str, int] = field(default_factory=lambda: {"jurisdictions": 0, "connectors": 0})
    unchanged: Dict[str, int] = field(default_factory=lambda: {"jurisdictions": 0, "connectors": 0})

    def to_dict(self) -> Dict[str, Any]:
        return {"created": self.created, "updated": self.updated, "unchanged": self.unchanged}


def _require(entry: Dict[str, Any], keys, label: str):
    missing = [k for k in keys if not entry.get(k)]
    if missing:
        raise SeedFileError(f"{label} is missing {', '.join(missing)}: {entry}")


def _apply(row, values: Dict[str, Any], fields) -> bool:
    changed = False
    for name in fields:
        if name in values and getattr(row, name) != values[name]:
            setattr(row, name, values[name])
            changed = True
    return changed


def _seed_jurisdictions(entries: List[Dict[str, Any]], session, report: SeedReport):
    for entry in entries:
        _require(entry, ("slug", "name", "type"), "jurisdiction")
        if entry["type"] not in JURISDICTION_TYPES:
            raise SeedFileError(f"Unknown jurisdiction type {entry['type']!r} for {entry['slug']}")

        parent_id = None
        if entry.get("parent"):
            parent = session.query(Jurisdiction).filter_by(slug=entry["parent"]).first()
            if parent is None:
                raise SeedFileError(
                    f"Parent {entry['parent']!r} of {entry['slug']!r} must be listed before it"
                )
            parent_id = parent.id

        values = {"name": entry["name"], "type": entry["type"], "parent_id": parent_id}
        row = session.query(Jurisdiction).filter_by(slug=entry["slug"]).first()
        if row is None:
            session.add(Jurisdiction(slug=entry["slug"], **values))
            report.created["jurisdictions"] += 1
        elif _apply(row, values, JURISDICTION_FIELDS + ("parent_id",)):
            report.updated["jurisdictions"] += 1
        else:
            report.unchanged["jurisdictions"] += 1
        session.flush()


def _seed_connectors(entries: List[Dict[str, Any]], session, report: SeedReport):
    for entry in entries:
        _require(entry, ("key", "jurisdiction_slug", "kind", "parser_key", "source_url"), "connector")
        if entry["kind"] not in CONNECTOR_KINDS:
            raise SeedFileError(f"Unknown connector kind {entry['kind']!r} for {entry['key']}")

        values = {name: entry[name] for name in CONNECTOR_FIELDS if name in entry}
        values.setdefault("enabled", True)

        row = session.query(Connector).filter_by(key=entry["key"]).first()
        if row is None:
            session.add(Connector(key=entry["key"], **values))
            report.created["connectors"] += 1
        elif _apply(row, values, CONNECTOR_FIELDS):
            report.updated["connectors"] += 1
        else:
            report.unchanged["connectors"] += 1
    session.flush()


def load_seed_data(data: Dict[str, Any], db_session=None) -> SeedReport:
    """Apply parsed seed data and commit. Rolls back on any invalid entry."""
    session = db_session or db.session
    if not isinstance(data, dict):
        raise SeedFileError("Seed file must be a mapping with jurisdictions/connectors lists")

    report = SeedReport()
    try:
        _seed_jurisdictions(data.get("jurisdictions") or [], session, report)
        _seed_connectors(data.get("connectors") or [], session, report)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("seed_applied %s", report.to_dict())
    return report


def load_seed_file(path: str, db_session=None) -> SeedReport:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return load_seed_data(data, db_session=db_session)
