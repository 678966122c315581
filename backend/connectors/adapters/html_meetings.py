"""
HTML Meetings Adapter - generic meeting-calendar page parser.

Reads connector.source_url, selects one element per meeting with CSS
selectors and upserts Meeting rows keyed by (source_id, external_id).
Selectors default to the class names below and can be overridden per
connector through connector.options["selectors"].
"""
import logging
from datetime import timezone
from typing import Any, Dict, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from models.civic import Meeting

from ..base import ParserAdapter, RunStats

logger = logging.getLogger(__name__)

DEFAULT_SELECTORS = {
    "item": ".meeting",
    "title": ".meeting-title",
    "date": ".meeting-date",
    "body": ".meeting-body",
    "location": ".meeting-location",
    "agenda": "a.agenda",
    "minutes": "a.minutes",
}

# Attribute carrying a stable id on the item element, when the page has one
DEFAULT_ID_ATTRIBUTE = "data-id"

UPDATABLE_FIELDS = ("title", "body_name", "starts_at", "location", "agenda_url", "minutes_url")


def _text(element) -> Optional[str]:
    if element is None:
        return None
    text = " ".join(element.get_text(" ", strip=True).split())
    return text or None


def parse_meeting_datetime(raw: str):
    """
    Parse a human-formatted date/time into naive UTC.

    Raises:
        ValueError: if the text is not a recognisable date
    """
    parsed = date_parser.parse(raw, fuzzy=True)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class HtmlMeetingsAdapter(ParserAdapter):

    PARSER_KEY = "html_meetings"

    def __init__(self, connector, db_session, rate_limiter=None):
        super().__init__(connector, db_session, rate_limiter)
        options = connector.options or {}
        self.selectors = {**DEFAULT_SELECTORS, **(options.get("selectors") or {})}
        self.id_attribute = options.get("id_attribute", DEFAULT_ID_ATTRIBUTE)

    def run(self, source_id: int, jurisdiction_id: int, stats: RunStats) -> None:
        url = self.connector.source_url
        response = self.fetch(url)
        soup = BeautifulSoup(response.text, "html.parser")

        items = soup.select(self.selectors["item"])
        logger.info(
            "html_meetings_page key=%s items=%d", self.connector.key, len(items)
        )

        for index, item in enumerate(items):
            try:
                record = self.parse_item(item, url)
            except (ValueError, OverflowError) as e:
                stats.add_error(f"entry {index}: {e}")
                continue

            if record is None:
                stats.skipped_count += 1
                continue

            self.upsert(record, source_id, jurisdiction_id, stats)

        self.db_session.flush()

    def parse_item(self, item, base_url: str) -> Optional[Dict[str, Any]]:
        """
        Extract one meeting from its element.

        Returns None for entries without a date (nothing to place on a
        calendar). Raises ValueError for entries that cannot be understood.
        """
        title = _text(item.select_one(self.selectors["title"]))
        if not title:
            raise ValueError("missing title")

        raw_date = _text(item.select_one(self.selectors["date"]))
        if not raw_date:
            return None
        starts_at = parse_meeting_datetime(raw_date)

        agenda_url = self._link(item, "agenda", base_url)
        minutes_url = self._link(item, "minutes", base_url)

        external_id = item.get(self.id_attribute) or agenda_url
        if not external_id:
            external_id = f"{title}|{starts_at.isoformat()}"

        return {
            "external_id": str(external_id)[:255],
            "title": title,
            "body_name": _text(item.select_one(self.selectors["body"])),
            "starts_at": starts_at,
            "location": _text(item.select_one(self.selectors["location"])),
            "agenda_url": agenda_url,
            "minutes_url": minutes_url,
        }

    def _link(self, item, name: str, base_url: str) -> Optional[str]:
        anchor = item.select_one(self.selectors[name])
        if anchor is None or not anchor.get("href"):
            return None
        return urljoin(base_url, anchor["href"])

    def upsert(self, record: Dict[str, Any], source_id: int, jurisdiction_id: int, stats: RunStats):
        existing = self.db_session.query(Meeting).filter_by(
            source_id=source_id,
            external_id=record["external_id"],
        ).first()

        if existing is None:
            self.db_session.add(Meeting(
                source_id=source_id,
                jurisdiction_id=jurisdiction_id,
                **record,
            ))
            stats.new_count += 1
            return

        changed = False
        for field_name in UPDATABLE_FIELDS:
            if getattr(existing, field_name) != record[field_name]:
                setattr(existing, field_name, record[field_name])
                changed = True

        if changed:
            stats.updated_count += 1
        else:
            stats.skipped_count += 1
