"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.jurisdiction import Jurisdiction
from models.connector import Connector
from models.source import Source
from models.ingest_run import IngestRun, RunAlreadyClosedError
from models.guest_job import GuestJob
from models.civic import Meeting, Legislation, Election, TRACKED_MODELS

__all__ = [
    'db',
    'Jurisdiction',
    'Connector',
    'Source',
    'IngestRun',
    'RunAlreadyClosedError',
    'GuestJob',
    'Meeting',
    'Legislation',
    'Election',
    'TRACKED_MODELS',
]
