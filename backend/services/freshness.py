"""
Freshness Evaluator - is the data for a scope live or seed?

Read-only. Safe to call as often as the UI likes, including while runs are
in progress.

Jurisdictions are looked up by exact slug with no hierarchy expansion:
freshness describes exactly what was asked for, not its descendants.

Decision table:
    recent successful runs == 0           -> seed / no-successful-runs
    recent runs > 0, tracked rows == 0    -> seed / tables-empty
    otherwise                             -> live / ok
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func

from constants import (
    KIND_TO_TABLE,
    MODE_LIVE,
    MODE_SEED,
    REASON_NO_SUCCESSFUL_RUNS,
    REASON_OK,
    REASON_TABLES_EMPTY,
    RUN_SUCCESS,
    TRACKED_TABLES,
)
from models.civic import TRACKED_MODELS
from models.database import db
from models.ingest_run import IngestRun
from models.source import Source
from services.connector_registry import list_enabled
from services.guest_jobs import successful_run_durations_ms
from services.jurisdiction_resolver import get_jurisdiction_ids
from services.scope import resolve_scope, scope_to_jurisdiction_slugs
from utils.clock import isoformat, utcnow

logger = logging.getLogger(__name__)


@dataclass
class FreshnessVerdict:
    mode: str
    reason: str
    last_run_at: Optional[datetime]
    table_counts: Dict[str, int]
    avg_durations: Dict[str, int]
    scope_used: str
    enabled_connectors: int
    recent_runs: int
    jurisdiction_slugs: List[str] = field(default_factory=list)

    @property
    def total_estimate(self) -> int:
        return sum(v for v in self.avg_durations.values() if v)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "reason": self.reason,
            "lastRunAt": isoformat(self.last_run_at),
            "tableCounts": dict(self.table_counts),
            "avgDurations": dict(self.avg_durations),
            "totalEstimate": self.total_estimate,
            "scopeUsed": self.scope_used,
            "diagnostics": {
                "enabledConnectors": self.enabled_connectors,
                "recentRuns": self.recent_runs,
                "jurisdictionSlugs": list(self.jurisdiction_slugs),
            },
        }


def decide(recent_runs: int, total_rows: int):
    """(mode, reason) for the given counts."""
    if recent_runs == 0:
        return MODE_SEED, REASON_NO_SUCCESSFUL_RUNS
    if total_rows == 0:
        return MODE_SEED, REASON_TABLES_EMPTY
    return MODE_LIVE, REASON_OK


def count_tracked_rows(jurisdiction_ids: List[int], db_session=None) -> Dict[str, int]:
    session = db_session or db.session
    counts = {table: 0 for table in TRACKED_TABLES}
    if not jurisdiction_ids:
        return counts
    for table in TRACKED_TABLES:
        model = TRACKED_MODELS[table]
        counts[table] = session.query(func.count(model.id)).filter(
            model.jurisdiction_id.in_(jurisdiction_ids)
        ).scalar() or 0
    return counts


def average_durations_by_table(now: datetime, db_session=None) -> Dict[str, int]:
    """Mean successful-run duration per tracked table, 0 when no sample."""
    session = db_session or db.session
    config = current_app.config

    averages: Dict[str, int] = {}
    for table in TRACKED_TABLES:
        kinds = [kind for kind, target in KIND_TO_TABLE.items() if target == table]
        query = session.query(IngestRun.started_at, IngestRun.finished_at).join(
            Source, IngestRun.source_id == Source.id
        ).filter(Source.kind.in_(kinds))
        durations = successful_run_durations_ms(
            now,
            window_days=config["ETA_WINDOW_DAYS"],
            max_duration_ms=config["ETA_MAX_DURATION_MS"],
            db_session=session,
            query=query,
        )
        averages[table] = int(round(sum(durations) / len(durations))) if durations else 0
    return averages


def evaluate(scope: Optional[str] = None, now: Optional[datetime] = None, db_session=None) -> FreshnessVerdict:
    session = db_session or db.session
    config = current_app.config
    now = now or utcnow()

    scope_used = resolve_scope(scope, config["DEFAULT_SCOPE"])
    slugs = scope_to_jurisdiction_slugs(scope_used)
    jurisdiction_ids = get_jurisdiction_ids(slugs, db_session=session)

    enabled = list_enabled(jurisdiction_slugs=slugs, db_session=session)

    window_start = now - timedelta(hours=config["FRESHNESS_WINDOW_HOURS"])
    recent = [
        c for c in enabled
        if c.last_status == RUN_SUCCESS and c.last_run_at is not None and c.last_run_at >= window_start
    ]
    last_run_at = max((c.last_run_at for c in recent), default=None)

    table_counts = count_tracked_rows(jurisdiction_ids, db_session=session)
    mode, reason = decide(len(recent), sum(table_counts.values()))

    verdict = FreshnessVerdict(
        mode=mode,
        reason=reason,
        last_run_at=last_run_at,
        table_counts=table_counts,
        avg_durations=average_durations_by_table(now, db_session=session),
        scope_used=scope_used,
        enabled_connectors=len(enabled),
        recent_runs=len(recent),
        jurisdiction_slugs=slugs,
    )
    logger.debug(
        "freshness_evaluated scope=%r mode=%s reason=%s recent=%d",
        scope_used, mode, reason, len(recent),
    )
    return verdict
