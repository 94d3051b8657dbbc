"""
Badge Service

Grants badges to members. A member holds each badge at most once; the
unique constraint on (member_id, badge_id) settles races between concurrent
grants, so grant() is safe to call again after a retried credit.
"""
from typing import List, Dict, Any, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.badge import Badge, MemberBadge
from ..utils.exceptions import ConfigurationError


class BadgeService:
    """Service for member badges."""

    def grant(self, member_id: int, badge_id: int, source: str = 'QUEST',
              metadata: Optional[Dict[str, Any]] = None) -> bool:
        """
        Give a badge to a member.

        Returns:
            True if the badge was granted now, False if the member already
            had it.

        Raises:
            ConfigurationError: the badge does not exist or is disabled
        """
        badge = db.session.get(Badge, badge_id)
        if badge is None:
            raise ConfigurationError(f'Badge {badge_id} does not exist')
        if not badge.is_active:
            raise ConfigurationError(f'Badge {badge.slug} is disabled')

        if self._existing(member_id, badge_id):
            return False

        member_badge = MemberBadge(
            member_id=member_id,
            badge_id=badge_id,
            source=source,
            extra_data=metadata or {},
            notified=False,
        )
        db.session.add(member_badge)

        try:
            db.session.commit()
        except IntegrityError:
            # Another grant for the same pair committed first
            db.session.rollback()
            return False

        current_app.logger.info(f"[QuestLedger] Granted badge {badge.slug} to member {member_id}")
        return True

    def _existing(self, member_id: int, badge_id: int) -> Optional[MemberBadge]:
        return MemberBadge.query.filter_by(
            member_id=member_id,
            badge_id=badge_id
        ).first()

    def member_badges(self, member_id: int) -> List[Dict[str, Any]]:
        """Badges earned by a member, newest first."""
        rows = MemberBadge.query.filter_by(
            member_id=member_id
        ).order_by(MemberBadge.earned_at.desc(), MemberBadge.id.desc()).all()
        return [row.to_dict() for row in rows]

    def unnotified(self, member_id: int) -> List[Dict[str, Any]]:
        """Badges the member has not been told about yet."""
        rows = MemberBadge.query.filter_by(
            member_id=member_id,
            notified=False
        ).order_by(MemberBadge.earned_at.asc()).all()
        return [row.to_dict() for row in rows]

    def mark_notified(self, member_id: int) -> int:
        """Mark all of a member's badges as notified."""
        count = MemberBadge.query.filter_by(
            member_id=member_id,
            notified=False
        ).update({'notified': True})
        db.session.commit()
        return count
