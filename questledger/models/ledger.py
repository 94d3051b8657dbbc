"""
Reward ledger model.

Append-only. Every row carries the member's balance immediately after it was
applied, so the balance history can be replayed and checked.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, Any
from ..extensions import db


class TransactionKind(str, Enum):
    """Direction of a ledger entry. points is always a positive magnitude."""
    CREDIT = 'CREDIT'
    DEBIT = 'DEBIT'


class TransactionSource(str, Enum):
    """What moved the points."""
    QUEST = 'QUEST'
    MEMBERSHIP = 'MEMBERSHIP'
    BOOKING = 'BOOKING'
    REDEMPTION = 'REDEMPTION'
    ADJUSTMENT = 'ADJUSTMENT'


SOURCE_LABELS = {
    TransactionSource.QUEST.value: 'Quest reward',
    TransactionSource.MEMBERSHIP.value: 'Membership bonus',
    TransactionSource.BOOKING.value: 'Booking reward',
    TransactionSource.REDEMPTION.value: 'Reward redemption',
    TransactionSource.ADJUSTMENT.value: 'Manual adjustment',
}


class RewardTransaction(db.Model):
    """
    Points ledger entry - the authoritative record of all points changes.

    Design notes:
    - Immutable once created (corrections are new ADJUSTMENT entries)
    - Ordered per member by (occurred_at, id)
    - balance_after[i] == balance_after[i-1] + signed_points[i]
    """
    __tablename__ = 'reward_transactions'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)

    kind = db.Column(db.String(10), nullable=False)      # TransactionKind
    source = db.Column(db.String(20), nullable=False)    # TransactionSource
    points = db.Column(db.Integer, nullable=False)
    balance_after = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    description = db.Column(db.String(500))

    # Set for QUEST entries so read views can show the quest title
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id'), nullable=True)

    extra_data = db.Column(db.JSON, default=dict)

    member = db.relationship('Member', backref=db.backref('reward_transactions', lazy='dynamic'))
    quest = db.relationship('Quest')

    __table_args__ = (
        db.CheckConstraint('points > 0', name='ck_reward_transactions_points_positive'),
        db.Index('ix_reward_transactions_member_order', 'member_id', 'occurred_at', 'id'),
        db.Index('ix_reward_transactions_source', 'source'),
    )

    def __repr__(self):
        return f'<RewardTransaction {self.id}: {self.signed_points:+d} pts for member {self.member_id}>'

    @property
    def signed_points(self) -> int:
        if self.kind == TransactionKind.DEBIT.value:
            return -self.points
        return self.points

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for API responses."""
        return {
            'id': self.id,
            'member_id': self.member_id,
            'kind': self.kind,
            'source': self.source,
            'source_label': SOURCE_LABELS.get(self.source, self.source),
            'points': self.points,
            'signed_points': self.signed_points,
            'balance_after': self.balance_after,
            'occurred_at': self.occurred_at.isoformat() if self.occurred_at else None,
            'description': self.description,
            'quest_id': self.quest_id,
            'metadata': self.extra_data or {},
        }
