"""
Quests API Endpoints

Progress tracking for domain triggers and the member's quest board.
"""
from flask import Blueprint, request, jsonify

from ..middleware.service_auth import require_service_auth
from ..services.reward_coordinator import reward_coordinator
from ..services.rewards_views import get_quest_board
from ..utils.errors import bad_request, ErrorCode

quests_bp = Blueprint('quests', __name__)


@quests_bp.route('/track', methods=['POST'])
@require_service_auth
def track_progress():
    """
    Record one qualifying domain event.

    Request body:
    {
        "member_id": 42,
        "trigger": "BOOKING_COMPLETED",
        "metadata": {"booking_id": "bk_123"}
    }

    Every call counts; callers deduplicate their own events.
    """
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    member_id = data.get('member_id')
    trigger = data.get('trigger')

    if member_id is None:
        return bad_request('Missing required field: member_id', ErrorCode.MISSING_FIELD)
    if not trigger:
        return bad_request('Missing required field: trigger', ErrorCode.MISSING_FIELD)

    try:
        member_id = int(member_id)
    except (TypeError, ValueError):
        return bad_request('member_id must be an integer')

    metadata = data.get('metadata') or {}
    if not isinstance(metadata, dict):
        return bad_request('metadata must be an object')

    results = reward_coordinator.track_progress(member_id, trigger, metadata=metadata)

    return jsonify({
        'success': True,
        'member_id': member_id,
        'trigger': trigger,
        'results': results,
        'points_earned': sum(r['points_earned'] for r in results),
    })


@quests_bp.route('/board/<int:member_id>', methods=['GET'])
@require_service_auth
def quest_board(member_id):
    """All active quests with the member's progress."""
    board = get_quest_board(member_id)

    return jsonify({
        'success': True,
        **board,
    })
