"""
Guest Job Model - one admitted anonymous refresh request

Exactly one terminal transition (completed | failed), made by the
background fan-out's completion callback. Admission rules are queries over
this table, so they hold across any number of app instances.
"""
import logging

from models.database import db
from utils.clock import utcnow, isoformat

logger = logging.getLogger(__name__)


class GuestJob(db.Model):
    __tablename__ = 'guest_jobs'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(120), nullable=True, index=True)
    client_ip = db.Column(db.String(64), nullable=True, index=True)
    scope = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(20), nullable=False, default='running', index=True)
    estimated_duration_ms = db.Column(db.Integer, nullable=False)
    progress_message = db.Column(db.String(255))

    started_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    completed_at = db.Column(db.DateTime)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('running', 'completed', 'failed')",
            name='guest_jobs_status_check',
        ),
    )

    def finish(self, status, message):
        """
        Terminal transition. Returns False (and leaves the row alone) when
        the job already finished.
        """
        if self.status != 'running':
            logger.warning(
                "guest_job_already_finished job_id=%s status=%s attempted=%s",
                self.id, self.status, status,
            )
            return False
        self.status = status
        self.progress_message = message
        self.completed_at = utcnow()
        return True

    def to_dict(self):
        return {
            'jobID': self.id,
            'sessionID': self.session_id,
            'scope': self.scope,
            'status': self.status,
            'estimatedDurationMs': self.estimated_duration_ms,
            'progressMessage': self.progress_message,
            'startedAt': isoformat(self.started_at),
            'completedAt': isoformat(self.completed_at),
        }

    def __repr__(self):
        return f"<GuestJob {self.id} {self.status} scope={self.scope}>"
