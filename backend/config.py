import os
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse
from dotenv import load_dotenv

load_dotenv()


def _get_database_url():
    """
    Get and normalize DATABASE_URL.

    PostgreSQL is the production database. SQLite URLs are accepted for
    local development and the test suite only.

    For cloud PostgreSQL, automatically adds sslmode=require if missing.
    Returns None when DATABASE_URL is unset (create_app fails fast unless
    the URI is supplied through config overrides).
    """
    database_url = os.getenv('DATABASE_URL')
    if not database_url:
        return None

    if database_url.startswith('sqlite'):
        return database_url

    valid_prefixes = ('postgresql://', 'postgresql+psycopg2://', 'postgres://')
    if not database_url.startswith(valid_prefixes):
        raise RuntimeError(
            f"DATABASE_URL must be a PostgreSQL (or sqlite) URL, got: {database_url[:30]}..."
        )

    # SQLAlchemy requires postgresql://
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)

    parsed = urlparse(database_url)
    is_localhost = parsed.hostname in ('localhost', '127.0.0.1', None)

    if not is_localhost:
        query_params = parse_qs(parsed.query)
        if 'sslmode' not in query_params:
            query_params['sslmode'] = ['require']
            new_query = urlencode(query_params, doseq=True)
            database_url = urlunparse((
                parsed.scheme, parsed.netloc, parsed.path,
                parsed.params, new_query, parsed.fragment
            ))

    return database_url


def get_database_url():
    return _get_database_url()


def _env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    # Admin/cron endpoints require X-Admin-Secret when this is set
    ADMIN_SECRET = os.getenv('ADMIN_SECRET', '')

    SQLALCHEMY_DATABASE_URI = _get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Connection pool settings (PostgreSQL only; dropped for sqlite in create_app)
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,      # Verify connection is alive before using
        'pool_recycle': 300,        # Recycle connections every 5 minutes
        'pool_timeout': 60,
        'pool_size': 5,
        'max_overflow': 10,
        'connect_args': {
            'connect_timeout': 30,
            'options': '-c statement_timeout=300000',
        }
    }

    # Scope used when a caller does not send one
    DEFAULT_SCOPE = os.getenv(
        'DEFAULT_SCOPE', 'city:austin-tx,county:travis-county-tx,state:texas'
    )

    # Guest refresh admission control (evaluated against guest_jobs rows)
    GUEST_MAX_JOBS_PER_HOUR = _env_int('GUEST_MAX_JOBS_PER_HOUR', 50)
    GUEST_MAX_RUNNING_JOBS = _env_int('GUEST_MAX_RUNNING_JOBS', 20)
    GUEST_SESSION_COOLDOWN_SECONDS = _env_int('GUEST_SESSION_COOLDOWN_SECONDS', 300)
    GUEST_VOLUME_GUARD_PER_IP = _env_bool('GUEST_VOLUME_GUARD_PER_IP', False)

    # Duration estimate from historical ingest runs
    DEFAULT_ESTIMATED_DURATION_MS = _env_int('DEFAULT_ESTIMATED_DURATION_MS', 120000)
    ETA_WINDOW_DAYS = _env_int('ETA_WINDOW_DAYS', 30)
    ETA_MAX_DURATION_MS = _env_int('ETA_MAX_DURATION_MS', 600000)

    FRESHNESS_WINDOW_HOURS = _env_int('FRESHNESS_WINDOW_HOURS', 72)

    # Fan-out pacing between consecutive connector runs
    CONNECTOR_PACING_SECONDS = _env_float('CONNECTOR_PACING_SECONDS', 1.0)
    CONNECTOR_FETCH_TIMEOUT_SECONDS = _env_float('CONNECTOR_FETCH_TIMEOUT_SECONDS', 10.0)

    # Background dispatch: 'thread' (default) or 'inline'
    JOB_DISPATCHER = os.getenv('JOB_DISPATCHER', 'thread')
    JOB_WORKERS = _env_int('JOB_WORKERS', 2)

    # Flask-Limiter (request throttling in front of the admission rules)
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
