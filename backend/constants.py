"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Jurisdiction types, connector kinds, run/job statuses and freshness reason
codes. Import these instead of repeating string literals.
"""

# =============================================================================
# JURISDICTIONS
# =============================================================================

JURISDICTION_STATE = 'state'
JURISDICTION_COUNTY = 'county'
JURISDICTION_CITY = 'city'

JURISDICTION_TYPES = (JURISDICTION_STATE, JURISDICTION_COUNTY, JURISDICTION_CITY)

# Scope tokens use the jurisdiction type as their prefix: "city:austin-tx"
SCOPE_KINDS = JURISDICTION_TYPES


# =============================================================================
# CONNECTORS
# =============================================================================

CONNECTOR_KINDS = ('meetings', 'elections', 'ordinances', 'rss', 'docs')

# Kinds a guest/scope refresh runs (rss/docs only run in the scheduled sweep)
SCOPE_RUN_KINDS = ('meetings', 'elections', 'ordinances')

# Connector kind -> tracked table bucket used in freshness averages
KIND_TO_TABLE = {
    'meetings': 'meetings',
    'ordinances': 'legislation',
    'elections': 'elections',
}

TRACKED_TABLES = ('meetings', 'legislation', 'elections')


# =============================================================================
# STATUSES
# =============================================================================

RUN_RUNNING = 'running'
RUN_SUCCESS = 'success'
RUN_ERROR = 'error'

RUN_STATUSES = (RUN_RUNNING, RUN_SUCCESS, RUN_ERROR)

JOB_RUNNING = 'running'
JOB_COMPLETED = 'completed'
JOB_FAILED = 'failed'

JOB_STATUSES = (JOB_RUNNING, JOB_COMPLETED, JOB_FAILED)


# =============================================================================
# FRESHNESS
# =============================================================================

MODE_LIVE = 'live'
MODE_SEED = 'seed'

REASON_NO_SUCCESSFUL_RUNS = 'no-successful-runs'
REASON_TABLES_EMPTY = 'tables-empty'
REASON_SUCCESS_BUT_EMPTY_WINDOW = 'success-but-empty-window'  # reserved
REASON_OK = 'ok'


# =============================================================================
# INGESTION
# =============================================================================

# RunStats keeps at most this many error messages; error_count is unbounded
MAX_RECORDED_ERRORS = 10

USER_AGENT = 'LocalGovWatch/1.0 (+https://localgov.watch/about)'

JOB_PROGRESS_RUNNING = 'Updating local data...'
JOB_PROGRESS_COMPLETED = 'Update complete'
JOB_PROGRESS_FAILED = 'Update failed'
