"""
Database models for the Quest Ledger engine.
Quests, per-member progress, the reward ledger, tiers and badges.
"""
from .member import Member
from .badge import Badge, MemberBadge
from .quest import Quest, QuestProgress, TriggerCategory, Recurrence
from .ledger import RewardTransaction, TransactionKind, TransactionSource, SOURCE_LABELS
from .tier import RewardTier, DEFAULT_TIERS, seed_reward_tiers

__all__ = [
    'Member',
    # Badges
    'Badge',
    'MemberBadge',
    # Quests
    'Quest',
    'QuestProgress',
    'TriggerCategory',
    'Recurrence',
    # Ledger
    'RewardTransaction',
    'TransactionKind',
    'TransactionSource',
    'SOURCE_LABELS',
    # Tiers
    'RewardTier',
    'DEFAULT_TIERS',
    'seed_reward_tiers',
]
