"""
Member model.

The member row carries the cached loyalty balance and tier. Apart from the
opening tier set on insert, both are written only by the ledger, in the
same transaction as the RewardTransaction that produced them.
"""
from datetime import datetime
from sqlalchemy import event, select
from ..extensions import db
from .tier import RewardTier


class Member(db.Model):
    """
    A loyalty program member (the user the ledger belongs to).

    loyalty_points always equals balance_after of the member's newest
    RewardTransaction (0 when there is none) and loyalty_tier equals the tier
    computed from it.
    """
    __tablename__ = 'members'

    id = db.Column(db.Integer, primary_key=True)

    # Identity (synced from the accounts collaborator)
    external_id = db.Column(db.String(100), unique=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    name = db.Column(db.String(255))

    status = db.Column(db.String(20), default='active', nullable=False)  # active, suspended, deleted

    # Balance cache
    loyalty_points = db.Column(db.Integer, default=0, nullable=False)
    loyalty_tier = db.Column(db.String(30), default='BRONZE', nullable=False)  # Replaced on insert by the tier table

    # Optimistic concurrency: every UPDATE checks and bumps this
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {
        'version_id_col': version_id,
    }

    def __repr__(self):
        return f'<Member {self.id} pts={self.loyalty_points} tier={self.loyalty_tier}>'

    @property
    def is_deleted(self) -> bool:
        return self.status == 'deleted'

    def to_dict(self):
        return {
            'id': self.id,
            'external_id': self.external_id,
            'email': self.email,
            'name': self.name,
            'status': self.status,
            'loyalty_points': self.loyalty_points,
            'loyalty_tier': self.loyalty_tier,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


@event.listens_for(Member, 'before_insert')
def set_opening_tier(mapper, connection, target):
    """A new member starts in the tier its opening balance maps to."""
    points = target.loyalty_points or 0
    tier = connection.execute(
        select(RewardTier.tier)
        .where(RewardTier.min_points <= points)
        .order_by(RewardTier.min_points.desc())
        .limit(1)
    ).scalar()
    if tier is None:
        # Below every threshold: lowest tier
        tier = connection.execute(
            select(RewardTier.tier).order_by(RewardTier.min_points).limit(1)
        ).scalar()
    if tier is not None:
        target.loyalty_tier = tier
