"""
Badge models.

Badges are unlocked once per member; MemberBadge is unique on
(member_id, badge_id).
"""
from datetime import datetime
from ..extensions import db


class Badge(db.Model):
    """Badge definition."""

    __tablename__ = 'badges'

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(100), unique=True, nullable=False)

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500))
    icon = db.Column(db.String(50), default='trophy')
    color = db.Column(db.String(20), default='#e85d27')

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    member_badges = db.relationship('MemberBadge', backref='badge', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'slug': self.slug,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'color': self.color,
            'is_active': self.is_active,
        }


class MemberBadge(db.Model):
    """Badge earned by a member."""

    __tablename__ = 'member_badges'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    badge_id = db.Column(db.Integer, db.ForeignKey('badges.id'), nullable=False)

    source = db.Column(db.String(30), default='QUEST')  # QUEST, TIER, MANUAL
    extra_data = db.Column(db.JSON, default=dict)

    earned_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Notification status
    notified = db.Column(db.Boolean, default=False)

    __table_args__ = (
        db.UniqueConstraint('member_id', 'badge_id', name='unique_member_badge'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'member_id': self.member_id,
            'badge_id': self.badge_id,
            'badge': self.badge.to_dict() if self.badge else None,
            'source': self.source,
            'metadata': self.extra_data or {},
            'earned_at': self.earned_at.isoformat() if self.earned_at else None,
        }
