"""
Quest catalog and per-member quest progress models.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, Any
from ..extensions import db


class TriggerCategory(str, Enum):
    """Kinds of domain activity a quest counts."""
    BOOKING = 'BOOKING'
    REVIEW = 'REVIEW'
    EXPLORATION = 'EXPLORATION'
    PROFILE_COMPLETION = 'PROFILE_COMPLETION'
    SOCIAL = 'SOCIAL'
    DAILY_CHECK_IN = 'DAILY_CHECK_IN'
    REFERRAL = 'REFERRAL'
    STREAK = 'STREAK'


class Recurrence(str, Enum):
    """How often a quest can be completed."""
    NONE = 'NONE'       # One-shot, completed forever
    DAILY = 'DAILY'     # Rolling 24h window
    WEEKLY = 'WEEKLY'   # Rolling 168h window


class Quest(db.Model):
    """
    Quest definition. Authored by an external admin tool; soft-disabled with
    is_active and never deleted while progress rows reference it.
    """
    __tablename__ = 'quests'

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(100), unique=True, nullable=False)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(500))

    trigger_category = db.Column(db.String(30), nullable=False)  # TriggerCategory
    target_count = db.Column(db.Integer, nullable=False, default=1)
    reward_points = db.Column(db.Integer, nullable=False, default=0)
    recurrence = db.Column(db.String(10), nullable=False, default=Recurrence.NONE.value)

    reward_badge_id = db.Column(db.Integer, db.ForeignKey('badges.id'), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Display
    icon = db.Column(db.String(50))
    color = db.Column(db.String(20))
    display_order = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reward_badge = db.relationship('Badge', backref=db.backref('quests', lazy='dynamic'))

    __table_args__ = (
        db.CheckConstraint('target_count > 0', name='ck_quests_target_count_positive'),
        db.CheckConstraint('reward_points >= 0', name='ck_quests_reward_points_non_negative'),
        db.Index('ix_quests_category_active', 'trigger_category', 'is_active'),
    )

    def __repr__(self):
        return f'<Quest {self.slug} {self.trigger_category} x{self.target_count}>'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'slug': self.slug,
            'title': self.title,
            'description': self.description,
            'trigger_category': self.trigger_category,
            'target_count': self.target_count,
            'reward_points': self.reward_points,
            'recurrence': self.recurrence,
            'reward_badge_id': self.reward_badge_id,
            'is_active': self.is_active,
            'icon': self.icon,
            'color': self.color,
            'display_order': self.display_order,
        }


class QuestProgress(db.Model):
    """
    One row per (member, quest). Overwritten every epoch for recurring quests;
    the ledger, not this row, is the history of past completions.
    """
    __tablename__ = 'quest_progress'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id'), nullable=False)

    current_count = db.Column(db.Integer, default=0, nullable=False)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    completed_at = db.Column(db.DateTime)
    last_reset_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    extra_data = db.Column(db.JSON, default=dict)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    member = db.relationship('Member', backref=db.backref('quest_progress', lazy='dynamic'))
    quest = db.relationship('Quest', backref=db.backref('progress_rows', lazy='dynamic'))

    __mapper_args__ = {
        'version_id_col': version_id,
    }

    __table_args__ = (
        db.UniqueConstraint('member_id', 'quest_id', name='uq_quest_progress_member_quest'),
        db.CheckConstraint('current_count >= 0', name='ck_quest_progress_count_non_negative'),
    )

    def __repr__(self):
        return f'<QuestProgress member={self.member_id} quest={self.quest_id} {self.current_count}>'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'member_id': self.member_id,
            'quest_id': self.quest_id,
            'current_count': self.current_count,
            'is_completed': self.is_completed,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'last_reset_at': self.last_reset_at.isoformat() if self.last_reset_at else None,
        }
