"""
Quest Ledger services.
"""
from .badge_service import BadgeService
from .notification_service import NotificationService, notification_service
from .quest_tracker import QuestProgressTracker, ProgressOutcome
from .reward_coordinator import (
    RewardCoordinator,
    reward_coordinator,
    track_progress,
    activate_membership_bonus,
    handle_event,
)

__all__ = [
    'BadgeService',
    'NotificationService',
    'notification_service',
    'QuestProgressTracker',
    'ProgressOutcome',
    'RewardCoordinator',
    'reward_coordinator',
    'track_progress',
    'activate_membership_bonus',
    'handle_event',
]
