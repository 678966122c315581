"""
Run Executor - runs exactly one connector and records the outcome.

Per invocation:
- one IngestRun row (opened running, closed success | error)
- one Connector update (last_run_at, last_status)
- whatever the adapter writes

Adapter failures end this run only; they are recorded, never raised.
Configuration errors (connector missing or disabled) are raised before
anything is written.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from connectors.base import RunStats
from connectors.registry import ParserRegistry, get_parser_registry
from constants import RUN_ERROR, RUN_SUCCESS
from models.connector import Connector
from models.database import db
from models.ingest_run import IngestRun
from models.source import Source
from services.connector_registry import connector_jurisdiction_slug
from services.errors import (
    ConnectorDisabledError,
    ConnectorNotFoundError,
    UnknownParserError,
)
from services.jurisdiction_resolver import get_jurisdiction_by_slug
from utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class RunConnectorResult:
    stats: RunStats
    status: str
    run_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "status": self.status,
            "runId": self.run_id,
        }


class JurisdictionNotFoundError(LookupError):
    pass


def get_or_create_source(connector: Connector, jurisdiction_id: Optional[int], session) -> Source:
    """
    Return the connector's Source, creating it on first run.

    sources.connector_id is unique: when two first runs race, the loser's
    insert fails and it re-reads the winner's row.
    """
    source = session.query(Source).filter_by(connector_id=connector.id).first()
    if source is None:
        source = Source(
            connector_id=connector.id,
            jurisdiction_id=jurisdiction_id,
            kind=connector.kind,
            url=connector.source_url,
        )
        session.add(source)
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            logger.info("source_create_race connector=%s", connector.key)
            source = session.query(Source).filter_by(connector_id=connector.id).one()

    if connector.source_id != source.id:
        connector.source_id = source.id
    session.commit()
    return source


def _load_runnable_connector(connector_id, session) -> Connector:
    connector = session.get(Connector, connector_id)
    if connector is None:
        raise ConnectorNotFoundError(f"Connector not found: {connector_id}")
    if not connector.enabled:
        raise ConnectorDisabledError(f"Connector is disabled: {connector.key}")
    return connector


def run_connector(
    connector_id,
    registry: Optional[ParserRegistry] = None,
    db_session=None,
    rate_limiter=None,
) -> RunConnectorResult:
    """
    Run one connector end to end.

    Raises:
        ConnectorNotFoundError: no connector with this id
        ConnectorDisabledError: connector exists but enabled is false
    """
    session = db_session or db.session
    registry = registry or get_parser_registry()

    connector = _load_runnable_connector(connector_id, session)
    connector_key = connector.key

    jurisdiction_slug = connector_jurisdiction_slug(connector.jurisdiction_slug)
    jurisdiction = get_jurisdiction_by_slug(jurisdiction_slug, db_session=session)
    jurisdiction_id = jurisdiction.id if jurisdiction else None

    source = get_or_create_source(connector, jurisdiction_id, session)
    source_id = source.id

    run = IngestRun.open(source_id)
    session.add(run)
    session.commit()
    run_id = run.id

    stats = RunStats()
    error: Optional[Exception] = None
    started = time.monotonic()
    logger.info(
        "connector_run_start key=%s parser=%s run_id=%s",
        connector_key, connector.parser_key, run_id,
    )

    try:
        adapter_class = registry.get(connector.parser_key)
        if jurisdiction_id is None:
            raise JurisdictionNotFoundError(f"Jurisdiction not found: {jurisdiction_slug}")
        adapter = adapter_class(connector, session, rate_limiter=rate_limiter)
        adapter.run(source_id, jurisdiction_id, stats)
        session.flush()
    except UnknownParserError as e:
        error = e
    except Exception as e:
        error = e
        logger.exception("connector_adapter_failed key=%s run_id=%s", connector_key, run_id)

    if error is not None:
        # Drop the adapter's unflushed/failed writes; the open run is already committed
        session.rollback()
        run = session.get(IngestRun, run_id)
        connector = session.get(Connector, connector_id)
        run.mark_failed(str(error), stats=stats.to_dict())
        status = RUN_ERROR
    else:
        run.mark_succeeded(stats.to_dict(), stats.summary())
        status = RUN_SUCCESS

    connector.record_run(status)
    session.commit()

    duration_ms = int((time.monotonic() - started) * 1000)
    log = logger.info if status == RUN_SUCCESS else logger.warning
    log(
        "connector_run_done key=%s status=%s run_id=%s duration_ms=%d new=%d updated=%d errors=%d",
        connector_key, status, run_id, duration_ms,
        stats.new_count, stats.updated_count, stats.error_count,
    )

    return RunConnectorResult(stats=stats, status=status, run_id=run_id)
