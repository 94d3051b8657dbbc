"""
Reward Crediting Coordinator

Entry point for triggers and membership bonuses. Every quest a trigger
touches is processed as one unit of work:

    1. re-read the member (fresh, locked for update where the database
       supports it)
    2. apply the trigger to the quest's progress row
    3. on completion, append the ledger entry and move the cached balance
       and tier
    4. commit

Units for the same member run under a per-member lock, so two workers in
this process never read the same previous balance. Across processes the
version columns on Member and QuestProgress turn a lost update into a
StaleDataError (or an IntegrityError for a duplicate progress row); the whole
unit is then rolled back and re-run from a fresh read.

Badge grants and notifications run after the commit and are best effort:
their failures are logged and reported, never rolled into the ledger.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models.member import Member
from ..models.quest import Quest
from ..models.ledger import TransactionKind, TransactionSource, SOURCE_LABELS
from ..utils.exceptions import (
    BestEffortFailure,
    ConfigurationError,
    ConflictError,
    MemberNotFoundError,
    NotFoundError,
    QuestNotFoundError,
    ValidationError,
)
from ..utils.locks import member_lock
from . import ledger_service, quest_catalog
from .badge_service import BadgeService
from .notification_service import notification_service as default_notifier
from .quest_tracker import QuestProgressTracker


# Sources allowed to move points down
DEBIT_SOURCES = {TransactionSource.ADJUSTMENT.value, TransactionSource.REDEMPTION.value}


@dataclass
class _QuestUnitResult:
    """Plain values captured inside the transaction, safe to use after commit."""
    report: Dict[str, Any]
    member_id: int
    quest_id: int
    quest_slug: str
    just_completed: bool
    points_earned: int
    badge_id: Optional[int]
    balance: int
    previous_tier: str
    new_tier: str
    transaction_id: Optional[int] = None
    warnings: List[str] = field(default_factory=list)


class RewardCoordinator:
    """Serializes progress and ledger writes per member."""

    def __init__(self, tracker: QuestProgressTracker = None, badges: BadgeService = None,
                 notifier=None):
        self.tracker = tracker or QuestProgressTracker()
        self.badges = badges or BadgeService()
        self.notifier = notifier or default_notifier

    # ==================== Public entry points ====================

    def track_progress(self, member_id: int, trigger: str,
                       metadata: Optional[Dict[str, Any]] = None,
                       now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Apply one trigger to every active quest it matches.

        Returns one report per quest: quest_id, current_count, target_count,
        is_completed, progress_percent, points_earned. Each quest commits
        independently; a failure raises after the quests before it committed.

        Raises:
            MemberNotFoundError: the member does not exist or is not active
            ConflictError: a quest kept colliding with concurrent writers
            ConfigurationError: the tier table is empty
        """
        now = now or datetime.utcnow()
        self._require_member(member_id)

        categories = quest_catalog.resolve_categories(trigger)
        if not categories:
            current_app.logger.info(f"[QuestLedger] Trigger {trigger!r} matches no quest category")
            return []

        quest_ids = []
        for category in categories:
            for quest in quest_catalog.active_quests_for(category):
                if quest.id not in quest_ids:
                    quest_ids.append(quest.id)

        reports = []
        for quest_id in quest_ids:
            try:
                result = self._run_unit(
                    member_id,
                    lambda quest_id=quest_id: self._quest_unit(member_id, quest_id, trigger, metadata, now)
                )
            except QuestNotFoundError as e:
                current_app.logger.warning(f"[QuestLedger] Skipping quest for trigger {trigger!r}: {e.message}")
                continue
            if result.just_completed:
                self._after_completion(result, trigger)
            report = dict(result.report)
            if result.warnings:
                report['warnings'] = result.warnings
            reports.append(report)

        return reports

    def activate_membership_bonus(self, member_id: int, points: int,
                                  source: str = TransactionSource.MEMBERSHIP.value,
                                  metadata: Optional[Dict[str, Any]] = None,
                                  description: Optional[str] = None,
                                  now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Credit (or, for ADJUSTMENT and REDEMPTION, debit) points outside of
        quests, through the same locked, retried, single-transaction path.

        Returns:
            Dict with transaction, balance, tier and previous_tier.

        Raises:
            ValidationError: zero points, unknown source, or a negative
                amount for a source that cannot debit
            MemberNotFoundError, ConflictError, ConfigurationError
        """
        if isinstance(points, bool) or not isinstance(points, int) or points == 0:
            raise ValidationError('Points must be a non-zero integer', 'points')

        try:
            source = TransactionSource(str(source).upper()).value
        except ValueError:
            raise ValidationError(f'Unknown transaction source: {source}', 'source')

        if source == TransactionSource.QUEST.value:
            raise ValidationError('Quest rewards are credited by tracking progress', 'source')
        if points < 0 and source not in DEBIT_SOURCES:
            raise ValidationError(f'{source} entries cannot remove points', 'points')

        kind = TransactionKind.CREDIT if points > 0 else TransactionKind.DEBIT
        description = description or SOURCE_LABELS.get(source, source)
        self._require_member(member_id)

        def unit():
            member = self._load_member(member_id)
            transaction, previous_tier = ledger_service.append(
                member,
                kind,
                source,
                abs(points),
                description=description,
                extra_data=metadata,
                occurred_at=now,
            )
            db.session.flush()
            return {
                'transaction': transaction.to_dict(),
                'balance': member.loyalty_points,
                'tier': member.loyalty_tier,
                'previous_tier': previous_tier,
            }

        result = self._run_unit(member_id, unit)

        self.notifier.emit('points_credited', member_id, {
            'source': source,
            'points': points,
            'balance': result['balance'],
            'transaction_id': result['transaction']['id'],
        })
        if result['tier'] != result['previous_tier']:
            self.notifier.emit('tier_changed', member_id, {
                'previous_tier': result['previous_tier'],
                'new_tier': result['tier'],
                'balance': result['balance'],
            })
        return result

    def handle_event(self, event: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Consume a domain event ({member_id, trigger, metadata}).

        Events for members or quests that no longer exist are dropped: the
        entity will not come back, so retrying is pointless.
        """
        try:
            return self.track_progress(
                event['member_id'],
                event['trigger'],
                metadata=event.get('metadata'),
            )
        except NotFoundError as e:
            current_app.logger.warning(f"[QuestLedger] Dropping event {event.get('trigger')!r}: {e.message}")
            return []

    # ==================== Units of work ====================

    def _run_unit(self, member_id: int, unit: Callable[[], Any]):
        """
        Run unit() and commit, under the member's lock.

        Optimistic-concurrency failures roll back and re-run the whole unit;
        anything else rolls back and propagates.
        """
        max_retries = current_app.config.get('CREDIT_MAX_RETRIES', 3)
        backoff = current_app.config.get('CREDIT_RETRY_BACKOFF', 0.05)
        attempt = 0

        while True:
            attempt += 1
            with member_lock(member_id):
                try:
                    result = unit()
                    db.session.commit()
                    return result
                except (StaleDataError, IntegrityError) as e:
                    db.session.rollback()
                    if attempt > max_retries:
                        current_app.logger.error(
                            f"[QuestLedger] Giving up on member {member_id} after {attempt} attempts: {e}"
                        )
                        raise ConflictError(member_id, attempt) from e
                    current_app.logger.warning(
                        f"[QuestLedger] Concurrent update for member {member_id} "
                        f"(attempt {attempt}), retrying: {type(e).__name__}"
                    )
                except Exception:
                    db.session.rollback()
                    raise

            if backoff:
                time.sleep(backoff * attempt)

    def _quest_unit(self, member_id: int, quest_id: int, trigger: str,
                    metadata: Optional[Dict[str, Any]], now: datetime) -> _QuestUnitResult:
        member = self._load_member(member_id)
        quest = db.session.get(Quest, quest_id)
        if quest is None or not quest.is_active:
            # Disabled or deleted between listing and processing
            raise QuestNotFoundError(quest_id)

        outcome = self.tracker.apply_trigger(member_id, quest, now, metadata)

        points_earned = 0
        transaction = None
        previous_tier = member.loyalty_tier
        if outcome.just_completed and quest.reward_points > 0:
            transaction, previous_tier = ledger_service.append(
                member,
                TransactionKind.CREDIT,
                TransactionSource.QUEST,
                quest.reward_points,
                description=f'Completed quest: {quest.title}',
                extra_data={
                    'quest_id': quest.id,
                    'trigger': trigger,
                    'metadata': metadata or {},
                },
                quest_id=quest.id,
                occurred_at=now,
            )
            points_earned = quest.reward_points

        db.session.flush()

        if outcome.just_completed:
            current_app.logger.info(
                f"[QuestLedger] Member {member_id} completed quest {quest.slug} (+{points_earned} pts)"
            )

        return _QuestUnitResult(
            report=outcome.to_dict(points_earned),
            member_id=member_id,
            quest_id=quest.id,
            quest_slug=quest.slug,
            just_completed=outcome.just_completed,
            points_earned=points_earned,
            badge_id=quest.reward_badge_id,
            balance=member.loyalty_points,
            previous_tier=previous_tier,
            new_tier=member.loyalty_tier,
            transaction_id=transaction.id if transaction is not None else None,
        )

    def _after_completion(self, result: _QuestUnitResult, trigger: str) -> None:
        """Badge and notifications for a committed completion."""
        badge_granted = False
        if result.badge_id is not None:
            try:
                badge_granted = self.badges.grant(
                    result.member_id,
                    result.badge_id,
                    source='QUEST',
                    metadata={'quest_id': result.quest_id, 'trigger': trigger},
                )
            except ConfigurationError as e:
                current_app.logger.error(
                    f"[QuestLedger] Badge for quest {result.quest_slug} not granted: {e.message}"
                )
                result.warnings.append(e.message)
            except Exception as e:
                db.session.rollback()
                failure = BestEffortFailure('badge grant', e)
                current_app.logger.error(
                    f"[QuestLedger] {failure.message} (member {result.member_id}, quest {result.quest_slug})"
                )
                result.warnings.append(failure.message)

        result.report['badge_granted'] = badge_granted

        failures = self.notifier.emit('quest_completed', result.member_id, {
            'quest_id': result.quest_id,
            'quest_slug': result.quest_slug,
            'points_earned': result.points_earned,
            'balance': result.balance,
            'transaction_id': result.transaction_id,
        })
        if badge_granted:
            failures += self.notifier.emit('badge_granted', result.member_id, {
                'badge_id': result.badge_id,
                'quest_id': result.quest_id,
            })
        if result.new_tier != result.previous_tier:
            failures += self.notifier.emit('tier_changed', result.member_id, {
                'previous_tier': result.previous_tier,
                'new_tier': result.new_tier,
                'balance': result.balance,
            })
        result.warnings.extend(f.message for f in failures)

    # ==================== Helpers ====================

    def _require_member(self, member_id: int) -> None:
        member = db.session.get(Member, member_id)
        if member is None or member.status != 'active':
            current_app.logger.warning(f"[QuestLedger] Member {member_id} not found or inactive")
            raise MemberNotFoundError(member_id)

    def _load_member(self, member_id: int) -> Member:
        """Fresh read of the member row for this unit of work."""
        member = db.session.get(
            Member,
            member_id,
            populate_existing=True,
            with_for_update=True,
        )
        if member is None or member.status != 'active':
            raise MemberNotFoundError(member_id)
        return member


reward_coordinator = RewardCoordinator()


def track_progress(member_id: int, trigger: str, metadata: Optional[Dict[str, Any]] = None,
                   now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    return reward_coordinator.track_progress(member_id, trigger, metadata=metadata, now=now)


def activate_membership_bonus(member_id: int, points: int, source: str = TransactionSource.MEMBERSHIP.value,
                              metadata: Optional[Dict[str, Any]] = None,
                              description: Optional[str] = None) -> Dict[str, Any]:
    return reward_coordinator.activate_membership_bonus(
        member_id, points, source=source, metadata=metadata, description=description
    )


def handle_event(event: Dict[str, Any]) -> List[Dict[str, Any]]:
    return reward_coordinator.handle_event(event)
