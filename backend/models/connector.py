"""
Connector Model - one configured fetch target per jurisdiction x data kind

Created by configuration (seed file / admin tooling). The ingestion engine
only ever writes last_run_at and last_status, once per run, last write wins.

jurisdiction_slug may be a bare slug ('austin-tx') or kind-qualified
('city:austin-tx'); see services.connector_registry.connector_matches_slugs.
"""
from models.database import db
from utils.clock import utcnow, isoformat


class Connector(db.Model):
    __tablename__ = 'connectors'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(120), unique=True, nullable=False)  # e.g. 'austin-council-meetings'
    jurisdiction_slug = db.Column(db.String(160), nullable=False, index=True)
    kind = db.Column(db.String(20), nullable=False, index=True)
    parser_key = db.Column(db.String(80), nullable=False)
    source_url = db.Column(db.Text, nullable=False)
    enabled = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # Set lazily by the run executor on first run
    source_id = db.Column(db.Integer, nullable=True)

    last_run_at = db.Column(db.DateTime, nullable=True)
    last_status = db.Column(db.String(20), nullable=True)  # success | error

    # Adapter-specific settings (e.g. CSS selectors for html_meetings)
    options = db.Column(db.JSON, nullable=True)

    # Free-form scheduling hint and operator notes (not interpreted here)
    schedule = db.Column(db.String(60))
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "kind IN ('meetings', 'elections', 'ordinances', 'rss', 'docs')",
            name='connectors_kind_check',
        ),
    )

    def record_run(self, status, at=None):
        """Stamp the outcome of a run (unconditional, once per invocation)."""
        self.last_run_at = at or utcnow()
        self.last_status = status

    def to_dict(self):
        return {
            'id': self.id,
            'key': self.key,
            'jurisdiction_slug': self.jurisdiction_slug,
            'kind': self.kind,
            'parser_key': self.parser_key,
            'source_url': self.source_url,
            'enabled': self.enabled,
            'source_id': self.source_id,
            'last_run_at': isoformat(self.last_run_at),
            'last_status': self.last_status,
            'schedule': self.schedule,
            'options': self.options or {},
        }

    def __repr__(self):
        return f"<Connector {self.key} enabled={self.enabled}>"
