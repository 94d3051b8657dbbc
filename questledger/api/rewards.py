"""
Rewards API Endpoints

Balance summary, ledger history, tier table and ledger verification.
"""
from datetime import datetime

from flask import Blueprint, request, jsonify

from ..middleware.service_auth import require_service_auth
from ..services import ledger_service
from ..services.rewards_views import get_rewards_summary, get_history, get_tiers
from ..utils.errors import bad_request
from ..utils.exceptions import MemberNotFoundError
from ..models.member import Member
from ..extensions import db

rewards_bp = Blueprint('rewards', __name__)


def _parse_date(value, field):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f'{field} must be an ISO 8601 date')


@rewards_bp.route('/summary/<int:member_id>', methods=['GET'])
@require_service_auth
def rewards_summary(member_id):
    """Balance, tier, progress to next tier and recent activity."""
    recent = request.args.get('recent', type=int)
    summary = get_rewards_summary(member_id, recent=recent)

    return jsonify({
        'success': True,
        **summary,
    })


@rewards_bp.route('/history/<int:member_id>', methods=['GET'])
@require_service_auth
def rewards_history(member_id):
    """
    Paginated ledger history.

    Query params:
        page, per_page: pagination (per_page capped by HISTORY_MAX_PER_PAGE)
        kind: CREDIT or DEBIT
        source: QUEST, MEMBERSHIP, BOOKING, REDEMPTION, ADJUSTMENT
        start_date, end_date: ISO 8601 bounds on occurred_at
    """
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 20, type=int)

    try:
        start = _parse_date(request.args.get('start_date'), 'start_date')
        end = _parse_date(request.args.get('end_date'), 'end_date')
    except ValueError as e:
        return bad_request(str(e))

    history = get_history(
        member_id,
        page=page,
        per_page=per_page,
        kind=request.args.get('kind'),
        source=request.args.get('source'),
        start=start,
        end=end,
    )

    return jsonify({
        'success': True,
        **history,
    })


@rewards_bp.route('/tiers', methods=['GET'])
@require_service_auth
def list_tiers():
    """The reward tier table."""
    return jsonify({
        'success': True,
        **get_tiers(),
    })


@rewards_bp.route('/verify/<int:member_id>', methods=['GET'])
@require_service_auth
def verify_ledger(member_id):
    """Replay the member's ledger against the cached balance and tier."""
    if db.session.get(Member, member_id) is None:
        raise MemberNotFoundError(member_id)

    report = ledger_service.verify_member(member_id)

    return jsonify({
        'success': True,
        'verification': report,
    })
