"""
Quest Progress Tracker

Advances one member's progress on one quest for a single trigger. Works on
the caller's session and never commits; the reward coordinator owns the
transaction so progress and credit land together.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional

from ..extensions import db
from ..models.quest import Quest, QuestProgress
from .epoch import should_reset


@dataclass
class ProgressOutcome:
    """Result of applying one trigger to one quest."""
    quest: Quest
    progress: QuestProgress
    just_completed: bool = False
    already_completed: bool = False
    was_reset: bool = False

    @property
    def progress_percent(self) -> float:
        target = self.quest.target_count or 1
        return round(min(100.0, self.progress.current_count / target * 100), 2)

    def to_dict(self, points_earned: int = 0) -> Dict[str, Any]:
        return {
            'quest_id': self.quest.id,
            'quest_slug': self.quest.slug,
            'quest_title': self.quest.title,
            'current_count': self.progress.current_count,
            'target_count': self.quest.target_count,
            'is_completed': self.progress.is_completed,
            'progress_percent': self.progress_percent,
            'points_earned': points_earned,
        }


class QuestProgressTracker:
    """Applies triggers to QuestProgress rows."""

    def load_or_create(self, member_id: int, quest: Quest, now: datetime,
                       for_update: bool = False) -> QuestProgress:
        """
        Fetch the member's progress row for a quest, creating it if needed.

        The row is re-read from the database (populate_existing) so a retried
        unit of work never sees stale identity-map state.
        """
        query = QuestProgress.query.filter_by(
            member_id=member_id,
            quest_id=quest.id
        ).populate_existing()
        if for_update:
            query = query.with_for_update()

        progress = query.first()
        if progress is None:
            progress = QuestProgress(
                member_id=member_id,
                quest_id=quest.id,
                current_count=0,
                is_completed=False,
                last_reset_at=now,
                extra_data={},
            )
            db.session.add(progress)
        return progress

    def apply_trigger(self, member_id: int, quest: Quest, now: Optional[datetime] = None,
                      metadata: Optional[Dict[str, Any]] = None) -> ProgressOutcome:
        """
        Count one unit of progress.

        Resets the row first when its epoch has lapsed. A quest already
        completed in the current epoch is left untouched (one-shot quests stay
        completed forever). Otherwise the count goes up by one and the quest
        completes once it reaches target_count.
        """
        now = now or datetime.utcnow()
        progress = self.load_or_create(member_id, quest, now, for_update=True)
        outcome = ProgressOutcome(quest=quest, progress=progress)

        if should_reset(quest, progress, now):
            progress.current_count = 0
            progress.is_completed = False
            progress.completed_at = None
            progress.last_reset_at = now
            outcome.was_reset = True

        if progress.is_completed:
            outcome.already_completed = True
            return outcome

        progress.current_count = (progress.current_count or 0) + 1

        if progress.current_count >= quest.target_count:
            progress.is_completed = True
            progress.completed_at = now
            outcome.just_completed = True

        if metadata:
            # Opaque to the engine; kept for read views
            progress.extra_data = {**(progress.extra_data or {}), 'last_trigger': metadata}

        return outcome
