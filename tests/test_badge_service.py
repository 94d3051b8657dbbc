"""
Tests for the badge service.
"""
from unittest.mock import patch

import pytest

from questledger.extensions import db
from questledger.models import MemberBadge
from questledger.services.badge_service import BadgeService
from questledger.utils.exceptions import ConfigurationError


class TestGrant:
    """Tests for BadgeService.grant."""

    def test_grant_once(self, sample_member, sample_badge):
        """Granting twice leaves exactly one row."""
        service = BadgeService()
        assert service.grant(sample_member.id, sample_badge.id, metadata={'quest_id': 1}) is True
        assert service.grant(sample_member.id, sample_badge.id) is False
        assert MemberBadge.query.filter_by(
            member_id=sample_member.id,
            badge_id=sample_badge.id
        ).count() == 1

    def test_concurrent_insert_collision(self, sample_member, sample_badge):
        """A unique-constraint collision is treated as already granted."""
        service = BadgeService()
        # Row written by a racing grant after our existence check
        db.session.add(MemberBadge(member_id=sample_member.id, badge_id=sample_badge.id))
        db.session.commit()

        with patch.object(BadgeService, '_existing', return_value=None):
            assert service.grant(sample_member.id, sample_badge.id) is False

        assert MemberBadge.query.count() == 1

    def test_missing_badge(self, sample_member):
        """Unknown badges are a configuration error."""
        with pytest.raises(ConfigurationError):
            BadgeService().grant(sample_member.id, 4242)

    def test_disabled_badge(self, sample_member, sample_badge):
        """Disabled badges are a configuration error."""
        sample_badge.is_active = False
        db.session.commit()
        with pytest.raises(ConfigurationError):
            BadgeService().grant(sample_member.id, sample_badge.id)


class TestMemberBadges:
    """Tests for listing and notification flags."""

    def test_unnotified_and_mark(self, sample_member, sample_badge):
        """New badges are unnotified until marked."""
        service = BadgeService()
        service.grant(sample_member.id, sample_badge.id)

        pending = service.unnotified(sample_member.id)
        assert len(pending) == 1
        assert pending[0]['badge']['slug'] == 'first-stay'

        assert service.mark_notified(sample_member.id) == 1
        assert service.unnotified(sample_member.id) == []
        assert len(service.member_badges(sample_member.id)) == 1
