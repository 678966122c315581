"""
Parser Adapter contract.

An adapter fetches one external source, normalizes its records and upserts
them. The run executor only knows three things about it: its PARSER_KEY,
that run() fills in a RunStats, and that run() raises when the source
cannot be processed at all.

Errors inside run() that concern a single record go to stats.add_error()
and do not fail the run.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import MAX_RECORDED_ERRORS


@dataclass
class RunStats:
    """Outcome counters for one connector run."""
    new_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None

    def add_error(self, message: str, max_errors: int = MAX_RECORDED_ERRORS):
        """Count an error; keep the message only while under max_errors."""
        self.error_count += 1
        if len(self.errors) < max_errors:
            self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "newCount": self.new_count,
            "updatedCount": self.updated_count,
            "skippedCount": self.skipped_count,
            "errorCount": self.error_count,
            "errors": list(self.errors),
        }
        if self.first_error is not None:
            data["firstError"] = self.first_error
        return data

    def summary(self) -> str:
        line = (
            f"Completed: {self.new_count} new, {self.updated_count} updated, "
            f"{self.error_count} errors"
        )
        if self.first_error:
            line += f"; first error: {self.first_error}"
        return line


class ParserAdapter(ABC):
    """
    Abstract base class for all parser adapters.

    Subclasses must set PARSER_KEY and implement run().
    """

    PARSER_KEY: str = "base"

    def __init__(self, connector, db_session, rate_limiter=None):
        """
        Args:
            connector: Connector row being run
            db_session: SQLAlchemy session for upserts
            rate_limiter: Optional DomainRateLimiter for outbound requests
        """
        self.connector = connector
        self.db_session = db_session
        self.rate_limiter = rate_limiter

    @abstractmethod
    def run(self, source_id: int, jurisdiction_id: int, stats: RunStats) -> None:
        """
        Fetch, normalize and upsert this connector's records.

        Args:
            source_id: Source handle the records belong to
            jurisdiction_id: Jurisdiction the records are filed under
            stats: Mutable counters; must be filled in even on partial failure
        """

    def fetch(self, url: str, **kwargs):
        from .http import polite_fetch
        return polite_fetch(url, rate_limiter=self.rate_limiter, **kwargs)
