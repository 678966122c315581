"""
Jurisdiction Model - state > county > city forest

Seeded once and read-only to the ingestion engine. A city's parent is a
county or (for unincorporated layouts) a state; counties hang off states.
"""
from models.database import db
from utils.clock import utcnow


class Jurisdiction(db.Model):
    __tablename__ = 'jurisdictions'

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), unique=True, nullable=False, index=True)  # e.g. 'austin-tx'
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(20), nullable=False)  # state | county | city
    parent_id = db.Column(db.Integer, db.ForeignKey('jurisdictions.id'), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "type IN ('state', 'county', 'city')",
            name='jurisdictions_type_check',
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'slug': self.slug,
            'name': self.name,
            'type': self.type,
            'parent_id': self.parent_id,
        }

    def __repr__(self):
        return f"<Jurisdiction {self.type}:{self.slug}>"
