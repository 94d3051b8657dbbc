"""
API blueprints for Quest Ledger.
"""
from .quests import quests_bp
from .rewards import rewards_bp
from .membership import membership_bp

__all__ = ['quests_bp', 'rewards_bp', 'membership_bp']
