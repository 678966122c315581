"""
Guest Job Manager - admission control for anonymous refresh requests.

Rules are evaluated in order; the first that matches rejects the request
and no job is created:

1. volume      jobs started in the last hour >= GUEST_MAX_JOBS_PER_HOUR  -> busy (503)
2. concurrency running jobs >= GUEST_MAX_RUNNING_JOBS                   -> busy (503)
3. cooldown    same session started a job in the last cooldown window   -> cooldown (429)

All three are queries over guest_jobs, so they hold across app instances
and restarts. An admitted job is committed before the fan-out is handed
to the dispatcher, and the dispatcher's callback performs the single
terminal transition.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func

from constants import (
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PROGRESS_COMPLETED,
    JOB_PROGRESS_FAILED,
    JOB_PROGRESS_RUNNING,
    JOB_RUNNING,
    RUN_SUCCESS,
)
from models.database import db
from models.guest_job import GuestJob
from models.ingest_run import IngestRun
from services.connector_registry import latest_run_at
from services.errors import SessionCooldownError, SystemBusyError
from services.job_dispatcher import get_dispatcher
from services.scope import resolve_scope, scope_to_jurisdiction_slugs
from utils.clock import isoformat, utcnow

logger = logging.getLogger(__name__)


@dataclass
class RefreshTicket:
    job_id: int
    started_at: datetime
    previous_last_run_at: Optional[datetime]
    estimated_duration_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobID": self.job_id,
            "startedAt": isoformat(self.started_at),
            "previousLastRunAt": isoformat(self.previous_last_run_at),
            "estimatedDurationMs": self.estimated_duration_ms,
        }


# =============================================================================
# Duration estimates
# =============================================================================

def successful_run_durations_ms(
    now: datetime,
    window_days: int,
    max_duration_ms: int,
    db_session=None,
    query=None,
) -> List[float]:
    """
    Durations of successful runs started inside the window, keeping only
    values in (0, max_duration_ms]. Zero/negative values are clock skew and
    very long ones are stuck runs.
    """
    session = db_session or db.session
    if query is None:
        query = session.query(IngestRun.started_at, IngestRun.finished_at)
    rows = query.filter(
        IngestRun.status == RUN_SUCCESS,
        IngestRun.started_at >= now - timedelta(days=window_days),
        IngestRun.finished_at.isnot(None),
    ).all()

    durations = []
    for started_at, finished_at in rows:
        duration_ms = (finished_at - started_at).total_seconds() * 1000
        if 0 < duration_ms <= max_duration_ms:
            durations.append(duration_ms)
    return durations


def estimate_duration_ms(now: Optional[datetime] = None, db_session=None) -> int:
    config = current_app.config
    durations = successful_run_durations_ms(
        now or utcnow(),
        window_days=config["ETA_WINDOW_DAYS"],
        max_duration_ms=config["ETA_MAX_DURATION_MS"],
        db_session=db_session,
    )
    if not durations:
        return int(config["DEFAULT_ESTIMATED_DURATION_MS"])
    return int(round(sum(durations) / len(durations)))


# =============================================================================
# Admission
# =============================================================================

def check_admission(
    session_id: Optional[str],
    client_ip: Optional[str],
    now: datetime,
    db_session=None,
):
    """
    Raise the first matching rejection, or return None when admitted.

    Raises:
        SystemBusyError: volume or concurrency ceiling reached
        SessionCooldownError: this session refreshed too recently
    """
    session = db_session or db.session
    config = current_app.config

    # 1. Volume
    volume_query = session.query(func.count(GuestJob.id)).filter(
        GuestJob.started_at >= now - timedelta(hours=1)
    )
    if config["GUEST_VOLUME_GUARD_PER_IP"] and client_ip:
        volume_query = volume_query.filter(GuestJob.client_ip == client_ip)
    recent_jobs = volume_query.scalar() or 0
    if recent_jobs >= config["GUEST_MAX_JOBS_PER_HOUR"]:
        logger.warning("guest_refresh_rejected rule=volume recent=%d", recent_jobs)
        raise SystemBusyError(
            "The system is busy. Please try again later.", rule="volume"
        )

    # 2. Concurrency
    running_jobs = session.query(func.count(GuestJob.id)).filter(
        GuestJob.status == JOB_RUNNING
    ).scalar() or 0
    if running_jobs >= config["GUEST_MAX_RUNNING_JOBS"]:
        logger.warning("guest_refresh_rejected rule=concurrency running=%d", running_jobs)
        raise SystemBusyError(
            "Too many updates are running. Please try again shortly.", rule="concurrency"
        )

    # 3. Session cooldown
    if not session_id:
        return None
    cooldown = timedelta(seconds=config["GUEST_SESSION_COOLDOWN_SECONDS"])
    last_started = session.query(func.max(GuestJob.started_at)).filter(
        GuestJob.session_id == session_id,
        GuestJob.started_at >= now - cooldown,
    ).scalar()
    if last_started is not None:
        remaining = cooldown - (now - last_started)
        retry_after = max(1, int(remaining.total_seconds() + 0.999))
        logger.info(
            "guest_refresh_rejected rule=cooldown session=%s retry_after=%d",
            session_id, retry_after,
        )
        raise SessionCooldownError(
            "You refreshed recently. Please wait before refreshing again.",
            retry_after_seconds=retry_after,
        )
    return None


# =============================================================================
# Job lifecycle
# =============================================================================

def _run_scope_task(scope: str):
    def task():
        from services.scope_runner import run_scope
        return run_scope(scope)
    return task


def finish_guest_job(job_id: int, error: Optional[BaseException] = None, db_session=None) -> bool:
    """
    Completion callback: completed when error is None, else failed.

    A second call for the same job is a no-op (logged, returns False).
    """
    session = db_session or db.session
    if error is not None:
        session.rollback()

    job = session.get(GuestJob, job_id)
    if job is None:
        logger.warning("guest_job_missing job_id=%s", job_id)
        return False

    if error is None:
        changed = job.finish(JOB_COMPLETED, JOB_PROGRESS_COMPLETED)
    else:
        changed = job.finish(JOB_FAILED, JOB_PROGRESS_FAILED)
    if changed:
        session.commit()
        logger.info("guest_job_finished job_id=%s status=%s", job_id, job.status)
    return changed


def request_refresh(
    scope: Optional[str] = None,
    session_id: Optional[str] = None,
    client_ip: Optional[str] = None,
    dispatcher=None,
    db_session=None,
) -> RefreshTicket:
    """
    Admit a guest refresh and start the background fan-out.

    Raises:
        SystemBusyError / SessionCooldownError: request not admitted
    """
    session = db_session or db.session
    scope = resolve_scope(scope, current_app.config["DEFAULT_SCOPE"])
    now = utcnow()

    check_admission(session_id, client_ip, now, db_session=session)

    estimated_ms = estimate_duration_ms(now, db_session=session)
    previous_last_run_at = latest_run_at(scope_to_jurisdiction_slugs(scope), db_session=session)

    job = GuestJob(
        session_id=session_id,
        client_ip=client_ip,
        scope=scope,
        status=JOB_RUNNING,
        estimated_duration_ms=estimated_ms,
        progress_message=JOB_PROGRESS_RUNNING,
        started_at=now,
    )
    session.add(job)
    session.commit()
    job_id = job.id

    logger.info(
        "guest_refresh_admitted job_id=%s scope=%r session=%s eta_ms=%d",
        job_id, scope, session_id, estimated_ms,
    )

    ticket = RefreshTicket(
        job_id=job_id,
        started_at=now,
        previous_last_run_at=previous_last_run_at,
        estimated_duration_ms=estimated_ms,
    )

    dispatcher = dispatcher or get_dispatcher()
    try:
        dispatcher.submit(
            _run_scope_task(scope),
            on_done=lambda error: finish_guest_job(job_id, error),
        )
    except Exception as e:
        logger.error("guest_refresh_dispatch_failed job_id=%s error=%s", job_id, e)
        finish_guest_job(job_id, e, db_session=session)
        raise
    return ticket


def get_job(job_id: int, db_session=None) -> Optional[GuestJob]:
    session = db_session or db.session
    return session.get(GuestJob, job_id)
