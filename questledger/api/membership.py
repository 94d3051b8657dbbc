"""
Membership API Endpoints

Ledger entry point for the membership/billing collaborator: sign-up bonuses,
manual adjustments and redemptions.
"""
from flask import Blueprint, request, jsonify

from ..middleware.service_auth import require_service_auth
from ..services.reward_coordinator import reward_coordinator
from ..utils.errors import bad_request, ErrorCode

membership_bp = Blueprint('membership', __name__)


@membership_bp.route('/bonus', methods=['POST'])
@require_service_auth
def activate_bonus():
    """
    Credit or debit points outside of quests.

    Request body:
    {
        "member_id": 42,
        "points": 500,
        "source": "MEMBERSHIP",
        "description": "Annual plan welcome bonus",
        "metadata": {"plan": "annual"}
    }

    Negative points are accepted for ADJUSTMENT and REDEMPTION only.
    """
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    for field in ('member_id', 'points'):
        if field not in data:
            return bad_request(f'Missing required field: {field}', ErrorCode.MISSING_FIELD)

    try:
        member_id = int(data['member_id'])
    except (TypeError, ValueError):
        return bad_request('member_id must be an integer')

    points = data['points']
    if isinstance(points, bool) or not isinstance(points, int):
        return bad_request('points must be an integer')

    metadata = data.get('metadata') or {}
    if not isinstance(metadata, dict):
        return bad_request('metadata must be an object')

    result = reward_coordinator.activate_membership_bonus(
        member_id,
        points,
        source=data.get('source', 'MEMBERSHIP'),
        metadata=metadata,
        description=data.get('description'),
    )

    return jsonify({
        'success': True,
        'member_id': member_id,
        **result,
    }), 201
