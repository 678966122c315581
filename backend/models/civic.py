"""
Civic data tables populated by parser adapters.

Only the columns the ingestion engine and the freshness check reason about
are modelled here. (source_id, external_id) is the adapters' upsert key.
"""
from models.database import db
from utils.clock import utcnow


class Meeting(db.Model):
    __tablename__ = 'meetings'

    id = db.Column(db.Integer, primary_key=True)
    jurisdiction_id = db.Column(db.Integer, db.ForeignKey('jurisdictions.id'), nullable=False, index=True)
    source_id = db.Column(db.Integer, db.ForeignKey('sources.id'), nullable=True)
    external_id = db.Column(db.String(255), nullable=False)

    title = db.Column(db.Text, nullable=False)
    body_name = db.Column(db.String(255))
    starts_at = db.Column(db.DateTime, nullable=False, index=True)
    location = db.Column(db.Text)
    agenda_url = db.Column(db.Text)
    minutes_url = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint('source_id', 'external_id', name='uq_meetings_source_external'),
    )


class Legislation(db.Model):
    __tablename__ = 'legislation'

    id = db.Column(db.Integer, primary_key=True)
    jurisdiction_id = db.Column(db.Integer, db.ForeignKey('jurisdictions.id'), nullable=False, index=True)
    source_id = db.Column(db.Integer, db.ForeignKey('sources.id'), nullable=True)
    external_id = db.Column(db.String(255), nullable=False)

    title = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(40))
    introduced_at = db.Column(db.Date)
    doc_url = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint('source_id', 'external_id', name='uq_legislation_source_external'),
    )


class Election(db.Model):
    __tablename__ = 'elections'

    id = db.Column(db.Integer, primary_key=True)
    jurisdiction_id = db.Column(db.Integer, db.ForeignKey('jurisdictions.id'), nullable=False, index=True)
    source_id = db.Column(db.Integer, db.ForeignKey('sources.id'), nullable=True)
    external_id = db.Column(db.String(255), nullable=False)

    name = db.Column(db.Text, nullable=False)
    kind = db.Column(db.String(40))  # general | primary | runoff | special
    date = db.Column(db.Date, nullable=False)
    info_url = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint('source_id', 'external_id', name='uq_elections_source_external'),
    )


# Freshness table name -> model
TRACKED_MODELS = {
    'meetings': Meeting,
    'legislation': Legislation,
    'elections': Election,
}
