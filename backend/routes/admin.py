"""
Connector administration API Routes

For operators and the external scheduler:
- GET  /api/admin/connectors              list connectors
- POST /api/admin/connectors/<id>/run     run one connector now
- POST /api/admin/connectors/run-scope    fan-out over a scope
- POST /api/admin/connectors/cron         scheduled sweep of every enabled connector

When ADMIN_SECRET is set, every call must send it in X-Admin-Secret.
These run synchronously on the request; the scheduler should allow for
the pacing delay between connectors.
"""
import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from api.middleware.error_envelope import make_error_response
from api.schemas import ScopeRunRequest
from models.connector import Connector
from models.database import db
from services import scope_runner
from services.run_executor import run_connector
from utils.rate_limiter import RATE_LIMITS, limiter

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

ADMIN_SECRET_HEADER = 'X-Admin-Secret'


@admin_bp.before_request
def require_admin_secret():
    expected = current_app.config.get('ADMIN_SECRET') or ''
    if not expected:
        return None
    supplied = request.headers.get(ADMIN_SECRET_HEADER, '')
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("admin_secret_rejected path=%s", request.path)
        return make_error_response("FORBIDDEN", "Invalid admin secret")
    return None


@admin_bp.route("", methods=["GET"])
@limiter.limit(RATE_LIMITS["admin"])
def list_connectors():
    connectors = db.session.query(Connector).order_by(Connector.id).all()
    return jsonify({
        "count": len(connectors),
        "connectors": [c.to_dict() for c in connectors],
    })


@admin_bp.route("/<int:connector_id>/run", methods=["POST"])
@limiter.limit(RATE_LIMITS["admin"])
def run_one(connector_id):
    """404 when the connector does not exist, 409 when it is disabled."""
    result = run_connector(connector_id)
    return jsonify(result.to_dict())


@admin_bp.route("/run-scope", methods=["POST"])
@limiter.limit(RATE_LIMITS["admin"])
def run_scope():
    payload = request.get_json(silent=True) or {}
    params = ScopeRunRequest.model_validate(payload)
    scope = params.scope or current_app.config['DEFAULT_SCOPE']
    result = scope_runner.run_scope(scope)
    return jsonify(result.to_dict())


@admin_bp.route("/cron", methods=["POST"])
@limiter.limit(RATE_LIMITS["admin"])
def cron():
    result = scope_runner.run_all()
    return jsonify(result.to_dict())
