"""
Reward tier table.

Static configuration ordered by min_points. The engine only reads it.
"""
from decimal import Decimal
from typing import Dict, Any
from ..extensions import db


class RewardTier(db.Model):
    """Loyalty tier definition."""

    __tablename__ = 'reward_tiers'

    id = db.Column(db.Integer, primary_key=True)
    tier = db.Column(db.String(30), unique=True, nullable=False)  # BRONZE, SILVER, ...
    name = db.Column(db.String(50), nullable=False)

    min_points = db.Column(db.Integer, nullable=False)
    max_points = db.Column(db.Integer)  # Informational; implied by the next tier's min_points

    benefits = db.Column(db.JSON, default=list)
    multiplier = db.Column(db.Numeric(4, 2), default=Decimal('1.00'))

    display_order = db.Column(db.Integer, default=0)
    color = db.Column(db.String(20))

    def __repr__(self):
        return f'<RewardTier {self.tier} >= {self.min_points}>'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tier': self.tier,
            'name': self.name,
            'min_points': self.min_points,
            'max_points': self.max_points,
            'benefits': self.benefits or [],
            'multiplier': float(self.multiplier) if self.multiplier is not None else 1.0,
            'display_order': self.display_order,
            'color': self.color,
        }


DEFAULT_TIERS = [
    {
        'tier': 'BRONZE',
        'name': 'Bronze',
        'min_points': 0,
        'max_points': 999,
        'benefits': ['Early access to bookings 48h ahead', '1x points on every booking'],
        'multiplier': Decimal('1.00'),
        'display_order': 1,
        'color': '#a08cd9',
    },
    {
        'tier': 'SILVER',
        'name': 'Silver',
        'min_points': 1000,
        'max_points': 2999,
        'benefits': ['Priority support', '2 hour late check-out', '1.25x points'],
        'multiplier': Decimal('1.25'),
        'display_order': 2,
        'color': '#8fb6d9',
    },
    {
        'tier': 'GOLD',
        'name': 'Gold',
        'min_points': 3000,
        'max_points': 4999,
        'benefits': ['Free room upgrade when available', '2 hour early check-in', '1.5x points'],
        'multiplier': Decimal('1.50'),
        'display_order': 3,
        'color': '#f4c84c',
    },
    {
        'tier': 'PLATINUM',
        'name': 'Platinum',
        'min_points': 5000,
        'max_points': None,
        'benefits': ['24/7 concierge', 'Spa and transfer perks', '2x points'],
        'multiplier': Decimal('2.00'),
        'display_order': 4,
        'color': '#d4af37',
    },
]


def seed_reward_tiers() -> int:
    """Install the default tier table. Existing tiers are left untouched."""
    created = 0
    for tier_data in DEFAULT_TIERS:
        existing = RewardTier.query.filter_by(tier=tier_data['tier']).first()
        if not existing:
            db.session.add(RewardTier(**tier_data))
            created += 1
    db.session.commit()
    return created
