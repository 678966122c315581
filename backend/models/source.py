"""
Source Model - storage partition handle for a connector

Created lazily on the connector's first run, then immutable. connector_id
is unique so concurrent first runs cannot create two handles.
"""
from models.database import db
from utils.clock import utcnow


class Source(db.Model):
    __tablename__ = 'sources'

    id = db.Column(db.Integer, primary_key=True)
    connector_id = db.Column(db.Integer, db.ForeignKey('connectors.id'), unique=True, nullable=False)
    jurisdiction_id = db.Column(db.Integer, db.ForeignKey('jurisdictions.id'), nullable=True)
    kind = db.Column(db.String(20), nullable=False)
    url = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    runs = db.relationship('IngestRun', backref='source', lazy='dynamic')

    def __repr__(self):
        return f"<Source {self.id} connector={self.connector_id} kind={self.kind}>"
