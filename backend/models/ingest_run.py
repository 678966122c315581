"""
Ingest Run Model - one execution record per connector invocation.

Lifecycle: running -> success | error. Opened at run start, closed exactly
once with finished_at set, never touched again. Successful closed runs are
the sample the duration estimates are drawn from.
"""
from models.database import db
from utils.clock import utcnow, isoformat


class RunAlreadyClosedError(RuntimeError):
    """Raised when something tries to close a run twice."""


class IngestRun(db.Model):
    """Tracks individual connector run executions."""

    __tablename__ = 'ingest_runs'

    id = db.Column(db.Integer, primary_key=True)
    source_id = db.Column(db.Integer, db.ForeignKey('sources.id'), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default='running', index=True)
    log = db.Column(db.Text, nullable=False, default='')

    # RunStats.to_dict() payload
    stats = db.Column(db.JSON, nullable=False, default=dict)

    started_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    finished_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index('ix_ingest_runs_status_started', 'status', 'started_at'),
        db.CheckConstraint(
            "status IN ('running', 'success', 'error')",
            name='ingest_runs_status_check',
        ),
    )

    @classmethod
    def open(cls, source_id, log=''):
        """Create a run in the running state."""
        return cls(source_id=source_id, status='running', log=log, stats={}, started_at=utcnow())

    @property
    def is_closed(self):
        return self.status != 'running'

    def _close(self, status, log, stats):
        if self.is_closed:
            raise RunAlreadyClosedError(f"IngestRun {self.id} already closed as {self.status}")
        self.status = status
        self.log = log
        self.stats = stats or {}
        self.finished_at = utcnow()

    def mark_succeeded(self, stats, log):
        self._close('success', log, stats)

    def mark_failed(self, message, stats=None):
        self._close('error', f"Error: {message}", stats)

    @property
    def duration_ms(self):
        if not self.started_at or not self.finished_at:
            return None
        return (self.finished_at - self.started_at).total_seconds() * 1000

    def to_dict(self):
        return {
            'id': self.id,
            'source_id': self.source_id,
            'status': self.status,
            'log': self.log,
            'stats': self.stats,
            'started_at': isoformat(self.started_at),
            'finished_at': isoformat(self.finished_at),
            'duration_ms': self.duration_ms,
        }

    def __repr__(self):
        return f"<IngestRun {self.id} source={self.source_id} {self.status}>"
