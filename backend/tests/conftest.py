"""
Shared pytest configuration for backend tests.

Provides:
- backend/ on sys.path so `from services import ...` works
- app/client/session fixtures on in-memory SQLite
- a parser registry of stub adapters (no network)
- row factories for jurisdictions, connectors, runs and guest jobs
"""

import sys
from datetime import timedelta
from pathlib import Path

# Add backend directory to Python path so imports like
# `from services.scope import ...` and `from models import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest

from connectors.base import ParserAdapter
from connectors.registry import ParserRegistry
from models import (
    Connector,
    GuestJob,
    IngestRun,
    Jurisdiction,
    Meeting,
    Source,
    db,
)
from utils.clock import utcnow


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'JOB_DISPATCHER': 'inline',
    'CONNECTOR_PACING_SECONDS': 0,
    'RATELIMIT_ENABLED': False,
    'ADMIN_SECRET': '',
    'DEFAULT_SCOPE': 'city:austin-tx,county:travis-county-tx,state:texas',
}


# =============================================================================
# Stub adapters
# =============================================================================

class StubSuccessAdapter(ParserAdapter):
    """Writes two meetings for its jurisdiction."""

    PARSER_KEY = "stub_ok"

    def run(self, source_id, jurisdiction_id, stats):
        for n in range(2):
            external_id = f"{self.connector.key}-{n}"
            exists = self.db_session.query(Meeting).filter_by(
                source_id=source_id, external_id=external_id
            ).first()
            if exists:
                stats.skipped_count += 1
                continue
            self.db_session.add(Meeting(
                source_id=source_id,
                jurisdiction_id=jurisdiction_id,
                external_id=external_id,
                title=f"Meeting {n}",
                starts_at=utcnow() + timedelta(days=n + 1),
            ))
            stats.new_count += 1


class StubPartialAdapter(ParserAdapter):
    """Completes but reports per-record errors."""

    PARSER_KEY = "stub_partial"

    def run(self, source_id, jurisdiction_id, stats):
        stats.new_count = 3
        stats.updated_count = 1
        stats.add_error("row 7: missing date")
        stats.add_error("row 9: bad title")


class StubFailingAdapter(ParserAdapter):
    """Counts some progress, then blows up."""

    PARSER_KEY = "stub_fail"

    def run(self, source_id, jurisdiction_id, stats):
        stats.new_count = 1
        stats.add_error("row 1: unparseable")
        raise RuntimeError("upstream returned 500")


# =============================================================================
# App fixtures
# =============================================================================

@pytest.fixture
def app():
    """Create test Flask application with a fresh in-memory database."""
    from app import create_app

    app = create_app(dict(TEST_CONFIG))
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def parser_registry(monkeypatch):
    """Swap the process-wide parser registry for stub adapters."""
    import connectors.registry as registry_module

    registry = ParserRegistry()
    for adapter in (StubSuccessAdapter, StubPartialAdapter, StubFailingAdapter):
        registry.register(adapter)
    monkeypatch.setattr(registry_module, "_default_registry", registry)
    return registry


# =============================================================================
# Row factories
# =============================================================================

@pytest.fixture
def make_jurisdiction(session):
    def _make(slug, type_='city', parent=None, name=None):
        row = Jurisdiction(
            slug=slug,
            name=name or slug.replace('-', ' ').title(),
            type=type_,
            parent_id=parent.id if parent is not None else None,
        )
        session.add(row)
        session.commit()
        return row
    return _make


@pytest.fixture
def texas_forest(make_jurisdiction):
    """texas > {travis-county-tx > {austin-tx, pflugerville-tx}, williamson-county-tx > {round-rock-tx}}"""
    texas = make_jurisdiction('texas', 'state')
    travis = make_jurisdiction('travis-county-tx', 'county', texas)
    williamson = make_jurisdiction('williamson-county-tx', 'county', texas)
    austin = make_jurisdiction('austin-tx', 'city', travis)
    pflugerville = make_jurisdiction('pflugerville-tx', 'city', travis)
    round_rock = make_jurisdiction('round-rock-tx', 'city', williamson)
    return {
        'texas': texas,
        'travis-county-tx': travis,
        'williamson-county-tx': williamson,
        'austin-tx': austin,
        'pflugerville-tx': pflugerville,
        'round-rock-tx': round_rock,
    }


@pytest.fixture
def make_connector(session):
    def _make(key, jurisdiction_slug='city:austin-tx', kind='meetings',
              parser_key='stub_ok', enabled=True, **fields):
        row = Connector(
            key=key,
            jurisdiction_slug=jurisdiction_slug,
            kind=kind,
            parser_key=parser_key,
            source_url=fields.pop('source_url', f"https://example.gov/{key}"),
            enabled=enabled,
            **fields,
        )
        session.add(row)
        session.commit()
        return row
    return _make


@pytest.fixture
def make_run(session):
    """Insert a closed IngestRun of a given duration, started `age` ago."""
    def _make(connector, duration_ms, status='success', age=timedelta(hours=1)):
        source = session.query(Source).filter_by(connector_id=connector.id).first()
        if source is None:
            source = Source(connector_id=connector.id, kind=connector.kind, url=connector.source_url)
            session.add(source)
            session.flush()
        started_at = utcnow() - age
        run = IngestRun(
            source_id=source.id,
            status=status,
            log='',
            stats={},
            started_at=started_at,
            finished_at=started_at + timedelta(milliseconds=duration_ms),
        )
        session.add(run)
        session.commit()
        return run
    return _make


@pytest.fixture
def make_guest_job(session):
    def _make(status='running', session_id=None, client_ip=None, age=timedelta(minutes=1),
              scope='city:austin-tx'):
        job = GuestJob(
            session_id=session_id,
            client_ip=client_ip,
            scope=scope,
            status=status,
            estimated_duration_ms=120000,
            progress_message='Updating local data...',
            started_at=utcnow() - age,
        )
        session.add(job)
        session.commit()
        return job
    return _make
