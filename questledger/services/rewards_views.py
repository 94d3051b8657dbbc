"""
Rewards read views.

Read-only projections for member-facing screens. Nothing here creates
progress rows, resets epochs or writes the ledger. Database and catalog
failures degrade to a default view flagged with degraded=True; only a
missing member is reported as an error.
"""
import math
from datetime import datetime
from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.member import Member
from ..models.quest import QuestProgress
from ..models.ledger import TransactionKind, TransactionSource
from ..models.badge import MemberBadge
from ..utils.exceptions import ConfigurationError, MemberNotFoundError, ValidationError
from . import ledger_service, quest_catalog
from .epoch import should_reset, next_reset_at
from .tier_calculator import tier_for, progress_to_next


def _get_member(member_id: int) -> Member:
    member = db.session.get(Member, member_id)
    if member is None or member.is_deleted:
        raise MemberNotFoundError(member_id)
    return member


def _degrade(view: str, member_id, error: Exception) -> None:
    db.session.rollback()
    current_app.logger.error(f"[QuestLedger] {view} degraded for member {member_id}: {error}")


def _transaction_view(transaction) -> Dict[str, Any]:
    data = transaction.to_dict()
    data['quest_title'] = transaction.quest.title if transaction.quest_id and transaction.quest else None
    return data


def get_rewards_summary(member_id: int, recent: Optional[int] = None) -> Dict[str, Any]:
    """
    Balance, tier, progress to the next tier, lifetime totals, badges and
    the most recent ledger entries (newest first).
    """
    if recent is None:
        recent = current_app.config.get('RECENT_LEDGER_ENTRIES', 10)
    recent = max(1, min(recent, current_app.config.get('HISTORY_MAX_PER_PAGE', 100)))
    member = _get_member(member_id)
    balance = member.loyalty_points or 0
    tier_code = member.loyalty_tier

    try:
        tiers = quest_catalog.tier_table()
        current = tier_for(balance, tiers)
        progress = progress_to_next(balance, tiers)
        rows, _ = ledger_service.history(member_id, limit=recent)
        lifetime = ledger_service.totals(member_id)
        badge_count = MemberBadge.query.filter_by(member_id=member_id).count()

        return {
            'member_id': member_id,
            'balance': balance,
            'tier': current.to_dict(),
            'progress_to_next': {
                'next_tier': progress['next_tier'].to_dict() if progress['next_tier'] else None,
                'points_remaining': progress['points_remaining'],
                'progress_ratio': progress['progress_ratio'],
            },
            'lifetime_earned': lifetime['lifetime_earned'],
            'lifetime_spent': lifetime['lifetime_spent'],
            'badge_count': badge_count,
            'recent_transactions': [_transaction_view(row) for row in rows],
            'degraded': False,
        }

    except (SQLAlchemyError, ConfigurationError) as e:
        _degrade('Rewards summary', member_id, e)
        return {
            'member_id': member_id,
            'balance': balance,
            'tier': {'tier': tier_code},
            'progress_to_next': None,
            'lifetime_earned': None,
            'lifetime_spent': None,
            'badge_count': 0,
            'recent_transactions': [],
            'degraded': True,
        }


def get_quest_board(member_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Every active quest with the member's progress.

    Quests the member never touched show a zero count. A recurring quest
    whose epoch has lapsed is shown as fresh (zero, not completed); the
    stored row is left as-is until the next trigger resets it.
    """
    now = now or datetime.utcnow()
    _get_member(member_id)

    try:
        quests = quest_catalog.active_quests()
        rows = QuestProgress.query.filter(
            QuestProgress.member_id == member_id,
            QuestProgress.quest_id.in_([q.id for q in quests])
        ).all() if quests else []
        by_quest = {row.quest_id: row for row in rows}

        board = []
        for quest in quests:
            progress = by_quest.get(quest.id)
            count = 0
            completed = False
            completed_at = None
            resets_at = None

            if progress is not None and not should_reset(quest, progress, now):
                count = progress.current_count
                completed = progress.is_completed
                completed_at = progress.completed_at
                resets_at = next_reset_at(quest, progress)

            board.append({
                **quest.to_dict(),
                'current_count': count,
                'is_completed': completed,
                'completed_at': completed_at.isoformat() if completed_at else None,
                'progress_percent': round(min(100.0, count / quest.target_count * 100), 2),
                'next_reset_at': resets_at.isoformat() if resets_at else None,
            })

        return {
            'member_id': member_id,
            'quests': board,
            'completed_count': sum(1 for item in board if item['is_completed']),
            'degraded': False,
        }

    except SQLAlchemyError as e:
        _degrade('Quest board', member_id, e)
        return {
            'member_id': member_id,
            'quests': [],
            'completed_count': 0,
            'degraded': True,
        }


def get_history(
    member_id: int,
    page: int = 1,
    per_page: int = 20,
    kind: Optional[str] = None,
    source: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Paginated ledger history, newest first.

    Raises:
        ValidationError: bad page, per_page, kind or source
    """
    max_per_page = current_app.config.get('HISTORY_MAX_PER_PAGE', 100)
    if page < 1:
        raise ValidationError('page must be >= 1', 'page')
    if per_page < 1 or per_page > max_per_page:
        raise ValidationError(f'per_page must be between 1 and {max_per_page}', 'per_page')

    if kind:
        try:
            kind = TransactionKind(kind.upper()).value
        except ValueError:
            raise ValidationError(f'Unknown transaction kind: {kind}', 'kind')
    if source:
        try:
            source = TransactionSource(source.upper()).value
        except ValueError:
            raise ValidationError(f'Unknown transaction source: {source}', 'source')

    _get_member(member_id)

    try:
        rows, total = ledger_service.history(
            member_id,
            limit=per_page,
            offset=(page - 1) * per_page,
            kind=kind,
            source=source,
            start=start,
            end=end,
        )
        pages = math.ceil(total / per_page) if total else 0
        return {
            'member_id': member_id,
            'transactions': [_transaction_view(row) for row in rows],
            'pagination': {
                'page': page,
                'per_page': per_page,
                'total': total,
                'pages': pages,
                'has_next': page < pages,
                'has_prev': page > 1,
            },
            'degraded': False,
        }

    except SQLAlchemyError as e:
        _degrade('History', member_id, e)
        return {
            'member_id': member_id,
            'transactions': [],
            'pagination': {
                'page': page,
                'per_page': per_page,
                'total': 0,
                'pages': 0,
                'has_next': False,
                'has_prev': False,
            },
            'degraded': True,
        }


def get_tiers() -> Dict[str, Any]:
    """The tier table for display."""
    try:
        return {
            'tiers': [level.to_dict() for level in quest_catalog.tier_table()],
            'degraded': False,
        }
    except (SQLAlchemyError, ConfigurationError) as e:
        _degrade('Tier table', None, e)
        return {'tiers': [], 'degraded': True}
