"""
Guest refresh and data-status API Routes

Public endpoints used by the web client:
- POST /api/guest/refresh       admit a background refresh of a scope
- GET  /api/guest/jobs/<id>     poll an admitted job
- GET  /api/data-status         live vs seed verdict for a scope

Admission rejections (503 SYSTEM_BUSY, 429 SESSION_COOLDOWN) are raised by
the service and rendered by the error envelope.
"""
from flask import Blueprint, jsonify, request

from api.middleware.error_envelope import make_error_response
from api.schemas import FreshnessQuery, RefreshRequest
from services import freshness, guest_jobs
from utils.rate_limiter import GUEST_SESSION_HEADER, RATE_LIMITS, limiter

refresh_bp = Blueprint('refresh', __name__)


def _client_ip():
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.remote_addr


@refresh_bp.route("/guest/refresh", methods=["POST"])
@limiter.limit(RATE_LIMITS["refresh"])
def request_refresh():
    """
    Body (JSON, all optional):
        - scope: "city:austin-tx,county:travis-county-tx"
        - sessionID: guest session id (falls back to the X-Guest-Session header)

    Returns:
        202 {jobID, startedAt, previousLastRunAt, estimatedDurationMs}
    """
    payload = request.get_json(silent=True) or {}
    params = RefreshRequest.model_validate(payload)
    session_id = params.session_id or request.headers.get(GUEST_SESSION_HEADER) or None

    ticket = guest_jobs.request_refresh(
        scope=params.scope,
        session_id=session_id,
        client_ip=_client_ip(),
    )
    return jsonify(ticket.to_dict()), 202


@refresh_bp.route("/guest/jobs/<int:job_id>", methods=["GET"])
@limiter.limit(RATE_LIMITS["status"])
def get_job(job_id):
    job = guest_jobs.get_job(job_id)
    if job is None:
        return make_error_response("NOT_FOUND", f"Job not found: {job_id}")
    return jsonify(job.to_dict())


@refresh_bp.route("/data-status", methods=["GET"])
@limiter.limit(RATE_LIMITS["status"])
def data_status():
    """
    Query params:
        - scope: optional, defaults to DEFAULT_SCOPE

    Always 200 with the verdict; seed mode is an answer, not an error.
    """
    params = FreshnessQuery.model_validate(request.args.to_dict())
    verdict = freshness.evaluate(params.scope)
    return jsonify(verdict.to_dict())
