"""
Quest Catalog

Read access to quest definitions and the tier table, plus the default
catalog used to bootstrap a new installation.

Quest definitions are authored elsewhere; this module only reads them. The
tier table is cached for CATALOG_CACHE_TIMEOUT seconds as plain TierLevel
tuples. Member balances are never cached.
"""
from typing import List, NamedTuple, Optional, Dict, Any

from flask import current_app

from ..extensions import db
from ..models.badge import Badge
from ..models.quest import Quest, TriggerCategory, Recurrence
from ..models.tier import RewardTier, seed_reward_tiers
from ..utils.cache import cache, cache_key
from ..utils.exceptions import ConfigurationError


TIER_TABLE_CACHE_KEY = cache_key('catalog', 'tier_table')


class TierLevel(NamedTuple):
    """Cache-safe snapshot of a RewardTier row."""
    tier: str
    name: str
    min_points: int
    max_points: Optional[int]
    benefits: tuple
    multiplier: float
    display_order: int
    color: Optional[str]

    @classmethod
    def from_row(cls, row: RewardTier) -> 'TierLevel':
        return cls(
            tier=row.tier,
            name=row.name,
            min_points=row.min_points,
            max_points=row.max_points,
            benefits=tuple(row.benefits or ()),
            multiplier=float(row.multiplier) if row.multiplier is not None else 1.0,
            display_order=row.display_order or 0,
            color=row.color,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tier': self.tier,
            'name': self.name,
            'min_points': self.min_points,
            'max_points': self.max_points,
            'benefits': list(self.benefits),
            'multiplier': self.multiplier,
            'display_order': self.display_order,
            'color': self.color,
        }


# Raw domain events accepted in place of a category name
EVENT_CATEGORIES = {
    'BOOKING_CREATED': [TriggerCategory.BOOKING],
    'BOOKING_COMPLETED': [TriggerCategory.BOOKING],
    'REVIEW_CREATED': [TriggerCategory.REVIEW],
    'WISHLIST_ADDED': [TriggerCategory.EXPLORATION],
    'LISTING_VIEWED': [TriggerCategory.EXPLORATION],
    'PROFILE_COMPLETED': [TriggerCategory.PROFILE_COMPLETION],
    'PROFILE_UPDATED': [TriggerCategory.PROFILE_COMPLETION],
    'EMAIL_VERIFIED': [TriggerCategory.PROFILE_COMPLETION],
    'PHONE_VERIFIED': [TriggerCategory.PROFILE_COMPLETION],
    'PAYMENT_METHOD_ADDED': [TriggerCategory.PROFILE_COMPLETION],
    'COLLECTION_CREATED': [TriggerCategory.SOCIAL],
    'LISTING_SHARED': [TriggerCategory.SOCIAL],
    'POST_CREATED': [TriggerCategory.SOCIAL],
    'REFERRAL_COMPLETED': [TriggerCategory.REFERRAL],
    'STREAK_MILESTONE': [TriggerCategory.STREAK],
}


DEFAULT_BADGES = [
    {
        'slug': 'first-stay',
        'name': 'First Stay',
        'description': 'Completed your first booking',
        'icon': 'home',
        'color': '#e85d27',
    },
    {
        'slug': 'trusted-reviewer',
        'name': 'Trusted Reviewer',
        'description': 'Shared your first review',
        'icon': 'star',
        'color': '#f4c84c',
    },
    {
        'slug': 'ambassador',
        'name': 'Ambassador',
        'description': 'Referred a friend who booked',
        'icon': 'users',
        'color': '#8fb6d9',
    },
]

DEFAULT_QUESTS = [
    {
        'slug': 'first-booking',
        'title': 'Book your first stay',
        'description': 'Complete your first booking on the platform',
        'trigger_category': TriggerCategory.BOOKING.value,
        'target_count': 1,
        'reward_points': 300,
        'recurrence': Recurrence.NONE.value,
        'badge_slug': 'first-stay',
        'icon': 'home',
        'color': '#e85d27',
        'display_order': 1,
    },
    {
        'slug': 'weekend-check-in',
        'title': 'Weekend check-in',
        'description': 'Book a stay this week',
        'trigger_category': TriggerCategory.BOOKING.value,
        'target_count': 1,
        'reward_points': 200,
        'recurrence': Recurrence.WEEKLY.value,
        'icon': 'calendar',
        'color': '#a08cd9',
        'display_order': 2,
    },
    {
        'slug': 'first-review',
        'title': 'Leave your first review',
        'description': 'Write a review after your stay',
        'trigger_category': TriggerCategory.REVIEW.value,
        'target_count': 1,
        'reward_points': 150,
        'recurrence': Recurrence.NONE.value,
        'badge_slug': 'trusted-reviewer',
        'icon': 'star',
        'color': '#f4c84c',
        'display_order': 3,
    },
    {
        'slug': 'wishlist-explorer',
        'title': 'Save 3 listings',
        'description': 'Add three listings to your wishlist',
        'trigger_category': TriggerCategory.EXPLORATION.value,
        'target_count': 3,
        'reward_points': 180,
        'recurrence': Recurrence.NONE.value,
        'icon': 'heart',
        'color': '#ef6f9a',
        'display_order': 4,
    },
    {
        'slug': 'daily-check-in',
        'title': 'Daily check-in',
        'description': 'Open the app once a day',
        'trigger_category': TriggerCategory.DAILY_CHECK_IN.value,
        'target_count': 1,
        'reward_points': 40,
        'recurrence': Recurrence.DAILY.value,
        'icon': 'sun',
        'color': '#f9a03f',
        'display_order': 5,
    },
    {
        'slug': 'refer-a-friend',
        'title': 'Refer a friend',
        'description': 'Invite a friend who completes a booking',
        'trigger_category': TriggerCategory.REFERRAL.value,
        'target_count': 1,
        'reward_points': 400,
        'recurrence': Recurrence.NONE.value,
        'badge_slug': 'ambassador',
        'icon': 'users',
        'color': '#8fb6d9',
        'display_order': 6,
    },
]


def resolve_categories(trigger: str) -> List[TriggerCategory]:
    """
    Map a trigger onto quest categories.

    Accepts a category name (BOOKING) or a raw domain event
    (BOOKING_COMPLETED). Unknown triggers match nothing.
    """
    if not trigger:
        return []
    name = str(trigger).strip().upper()
    if name in TriggerCategory.__members__:
        return [TriggerCategory(name)]
    return list(EVENT_CATEGORIES.get(name, []))


def active_quests_for(category) -> List[Quest]:
    """Active quests of one trigger category, in display order."""
    if isinstance(category, TriggerCategory):
        category = category.value
    return Quest.query.filter_by(
        trigger_category=category,
        is_active=True
    ).order_by(Quest.display_order, Quest.id).all()


def active_quests() -> List[Quest]:
    """All active quests, in display order."""
    return Quest.query.filter_by(is_active=True).order_by(Quest.display_order, Quest.id).all()


def tier_table() -> List[TierLevel]:
    """
    Ordered tier table.

    Raises:
        ConfigurationError: if no tiers are configured
    """
    levels = cache.get(TIER_TABLE_CACHE_KEY)
    if levels is None:
        rows = RewardTier.query.order_by(RewardTier.min_points).all()
        levels = [TierLevel.from_row(row) for row in rows]
        if levels:
            cache.set(
                TIER_TABLE_CACHE_KEY,
                levels,
                timeout=current_app.config.get('CATALOG_CACHE_TIMEOUT', 60)
            )

    if not levels:
        raise ConfigurationError('Tier table is empty; run `flask loyalty seed` or configure reward tiers')
    return levels


def invalidate() -> None:
    """Drop cached catalog data after tiers are edited."""
    cache.delete(TIER_TABLE_CACHE_KEY)


def validate() -> List[Quest]:
    """
    Check that the active catalog is consistent.

    Returns the active quests when everything checks out.

    Raises:
        ConfigurationError: if the tier table is empty or an active quest
            rewards a missing or disabled badge
    """
    tier_table()

    quests = active_quests()
    problems = []
    for quest in quests:
        if quest.reward_badge_id is None:
            continue
        badge = db.session.get(Badge, quest.reward_badge_id)
        if badge is None:
            problems.append(f'{quest.slug}: badge {quest.reward_badge_id} does not exist')
        elif not badge.is_active:
            problems.append(f'{quest.slug}: badge {badge.slug} is disabled')

    if problems:
        raise ConfigurationError('Invalid quest catalog: ' + '; '.join(problems))
    return quests


def seed_defaults() -> Dict[str, int]:
    """
    Install the default tiers, badges and quests.

    Idempotent: rows are matched by tier code or slug and never overwritten.
    """
    tiers_created = seed_reward_tiers()

    badges_created = 0
    badges = {}
    for badge_data in DEFAULT_BADGES:
        badge = Badge.query.filter_by(slug=badge_data['slug']).first()
        if not badge:
            badge = Badge(**badge_data)
            db.session.add(badge)
            badges_created += 1
        badges[badge_data['slug']] = badge
    db.session.flush()

    quests_created = 0
    for quest_data in DEFAULT_QUESTS:
        if Quest.query.filter_by(slug=quest_data['slug']).first():
            continue
        data = dict(quest_data)
        badge_slug = data.pop('badge_slug', None)
        quest = Quest(**data)
        if badge_slug:
            quest.reward_badge_id = badges[badge_slug].id
        db.session.add(quest)
        quests_created += 1

    db.session.commit()
    invalidate()

    current_app.logger.info(
        f"[QuestLedger] Seeded catalog: {tiers_created} tiers, "
        f"{badges_created} badges, {quests_created} quests"
    )
    return {
        'tiers': tiers_created,
        'badges': badges_created,
        'quests': quests_created,
    }
