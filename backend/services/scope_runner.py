"""
Scope Fan-out - runs every matching connector for a scope, one at a time.

Connectors run sequentially with a pacing delay between consecutive runs.
This is politeness toward the upstream sites and must not be parallelised.
A failing connector is reported in its result entry and never stops the
loop or raises out of it.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from flask import current_app, has_app_context

from constants import RUN_ERROR, RUN_SUCCESS, SCOPE_RUN_KINDS
from services.connector_registry import list_enabled
from services.errors import IngestionError
from services.run_executor import run_connector
from services.scope import scope_to_jurisdiction_slugs

logger = logging.getLogger(__name__)

DEFAULT_PACING_SECONDS = 1.0


@dataclass
class ScopeRunResult:
    summary: str
    connectors_run: int
    results: List[Dict[str, Any]] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "summary": self.summary,
            "connectorsRun": self.connectors_run,
            "results": self.results,
        }


def _pacing_seconds() -> float:
    if has_app_context():
        return float(current_app.config.get("CONNECTOR_PACING_SECONDS", DEFAULT_PACING_SECONDS))
    return DEFAULT_PACING_SECONDS


def run_connectors(
    connectors,
    pacing_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    db_session=None,
) -> ScopeRunResult:
    """Run the given connectors in order, pacing between runs."""
    if pacing_seconds is None:
        pacing_seconds = _pacing_seconds()

    # Capture ids up front; a failed run rolls back the session and expires rows
    targets = [(c.id, c.key) for c in connectors]

    results = []
    succeeded = failed = 0

    for index, (connector_id, connector_key) in enumerate(targets):
        if index > 0 and pacing_seconds > 0:
            sleep(pacing_seconds)

        try:
            outcome = run_connector(connector_id, db_session=db_session)
        except IngestionError as e:
            logger.warning("scope_connector_rejected key=%s error=%s", connector_key, e)
            results.append({"connectorKey": connector_key, "status": RUN_ERROR, "error": str(e)})
            failed += 1
            continue
        except Exception as e:
            logger.exception("scope_connector_crashed key=%s", connector_key)
            results.append({"connectorKey": connector_key, "status": RUN_ERROR, "error": str(e)})
            failed += 1
            continue

        results.append({
            "connectorKey": connector_key,
            "status": outcome.status,
            "stats": outcome.stats.to_dict(),
        })
        if outcome.status == RUN_SUCCESS:
            succeeded += 1
        else:
            failed += 1

    summary = f"{succeeded} succeeded, {failed} failed"
    logger.info("scope_run_done connectors=%d summary=%r", len(targets), summary)
    return ScopeRunResult(summary=summary, connectors_run=len(targets), results=results)


def run_scope(
    scope: str,
    pacing_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    db_session=None,
) -> ScopeRunResult:
    """Run every enabled meetings/elections/ordinances connector the scope names."""
    slugs = scope_to_jurisdiction_slugs(scope)
    connectors = list_enabled(
        kinds=SCOPE_RUN_KINDS,
        jurisdiction_slugs=slugs,
        db_session=db_session,
    )
    logger.info("scope_run_start scope=%r slugs=%s connectors=%d", scope, slugs, len(connectors))
    return run_connectors(connectors, pacing_seconds=pacing_seconds, sleep=sleep, db_session=db_session)


def run_all(
    pacing_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    db_session=None,
) -> ScopeRunResult:
    """Scheduled sweep: every enabled connector of any kind."""
    connectors = list_enabled(db_session=db_session)
    logger.info("sweep_start connectors=%d", len(connectors))
    return run_connectors(connectors, pacing_seconds=pacing_seconds, sleep=sleep, db_session=db_session)
