"""
Tests for the ledger service.

Tests cover:
- Appending credits and debits with running balances
- Ordering by (occurred_at, id) and timestamp clamping
- History filters and totals
- Replay verification
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from questledger.extensions import db
from questledger.models import Member, RewardTier, TransactionKind, TransactionSource
from questledger.services import ledger_service, quest_catalog
from questledger.utils.exceptions import ValidationError


T0 = datetime(2026, 2, 1, 12, 0)


def append(member, kind, source, points, occurred_at=None):
    transaction, previous_tier = ledger_service.append(
        member, kind, source, points, occurred_at=occurred_at
    )
    db.session.commit()
    return transaction, previous_tier


class TestAppend:
    """Tests for append."""

    def test_credit_moves_balance_and_tier(self, sample_member):
        """A credit raises the cached balance and recomputes the tier."""
        transaction, previous_tier = append(
            sample_member, TransactionKind.CREDIT, TransactionSource.MEMBERSHIP, 3200, T0
        )
        assert transaction.balance_after == 3200
        assert previous_tier == 'BRONZE'
        assert sample_member.loyalty_points == 3200
        assert sample_member.loyalty_tier == 'GOLD'

    def test_debit_is_signed(self, sample_member):
        """Debits store a positive magnitude and subtract from the balance."""
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 500, T0)
        transaction, _ = append(sample_member, 'DEBIT', 'REDEMPTION', 200, T0 + timedelta(minutes=1))
        assert transaction.points == 200
        assert transaction.signed_points == -200
        assert transaction.balance_after == 300

    @pytest.mark.parametrize('points', [0, -5, 2.5, None])
    def test_rejects_non_positive_points(self, sample_member, points):
        """points must be a positive integer."""
        with pytest.raises(ValidationError):
            ledger_service.append(sample_member, 'CREDIT', 'ADJUSTMENT', points)

    def test_occurred_at_never_goes_backwards(self, sample_member):
        """An earlier timestamp is clamped to the member's latest entry."""
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 100, T0)
        transaction, _ = append(sample_member, 'CREDIT', 'BOOKING', 50, T0 - timedelta(days=2))
        assert transaction.occurred_at == T0

        rows, _ = ledger_service.history(sample_member.id)
        assert [r.balance_after for r in rows] == [150, 100]

    def test_latest_balance(self, sample_member, other_member):
        """latest_balance reads the newest entry, 0 for an empty ledger."""
        assert ledger_service.latest_balance(sample_member.id) == 0
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 100, T0)
        append(sample_member, 'CREDIT', 'BOOKING', 25, T0 + timedelta(hours=1))
        append(other_member, 'CREDIT', 'BOOKING', 999, T0 + timedelta(hours=2))
        assert ledger_service.latest_balance(sample_member.id) == 125


class TestHistory:
    """Tests for history and totals."""

    @pytest.fixture
    def activity(self, sample_member):
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 500, T0)
        append(sample_member, 'CREDIT', 'BOOKING', 120, T0 + timedelta(days=1))
        append(sample_member, 'DEBIT', 'REDEMPTION', 300, T0 + timedelta(days=2))
        append(sample_member, 'CREDIT', 'ADJUSTMENT', 10, T0 + timedelta(days=3))
        return sample_member

    def test_newest_first(self, activity):
        """History is ordered by (occurred_at, id) descending."""
        rows, total = ledger_service.history(activity.id)
        assert total == 4
        assert [r.balance_after for r in rows] == [330, 320, 620, 500]

    def test_pagination(self, activity):
        """limit and offset page through the ledger."""
        rows, total = ledger_service.history(activity.id, limit=2, offset=2)
        assert total == 4
        assert [r.balance_after for r in rows] == [620, 500]

    def test_filters(self, activity):
        """kind, source and date bounds narrow the result."""
        debits, total = ledger_service.history(activity.id, kind='DEBIT')
        assert total == 1
        assert debits[0].source == 'REDEMPTION'

        bookings, _ = ledger_service.history(activity.id, source='BOOKING')
        assert [r.points for r in bookings] == [120]

        window, total = ledger_service.history(
            activity.id,
            start=T0 + timedelta(hours=12),
            end=T0 + timedelta(days=2)
        )
        assert total == 2

    def test_totals(self, activity):
        """Lifetime credited and debited points."""
        assert ledger_service.totals(activity.id) == {
            'lifetime_earned': 630,
            'lifetime_spent': 300,
        }


class TestVerify:
    """Tests for ledger replay verification."""

    def test_consistent_ledger(self, sample_member):
        """A ledger written through append verifies."""
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 1500, T0)
        append(sample_member, 'DEBIT', 'REDEMPTION', 700, T0 + timedelta(hours=1))
        report = ledger_service.verify_member(sample_member.id)
        assert report['ok'] is True
        assert report['replayed_balance'] == 800
        assert report['cached_balance'] == 800
        assert report['expected_tier'] == 'BRONZE'

    def test_new_member_starts_in_lowest_configured_tier(self, app):
        """A fresh member verifies against a tier table without BRONZE."""
        RewardTier.query.delete()
        db.session.add(RewardTier(tier='MEMBER', name='Member', min_points=0))
        db.session.add(RewardTier(tier='VIP', name='VIP', min_points=1000))
        db.session.commit()
        quest_catalog.invalidate()

        member = Member(email='fresh@example.com', name='Fresh Guest', status='active')
        db.session.add(member)
        db.session.commit()

        assert member.loyalty_tier == 'MEMBER'
        report = ledger_service.verify_member(member.id)
        assert report['ok'] is True
        assert report['transaction_count'] == 0
        assert report['expected_tier'] == 'MEMBER'

    def test_detects_bad_balance_after(self, sample_member):
        """A tampered balance_after is reported with its transaction id."""
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 100, T0)
        second, _ = append(sample_member, 'CREDIT', 'BOOKING', 100, T0 + timedelta(hours=1))
        db.session.execute(
            text('UPDATE reward_transactions SET balance_after = 999 WHERE id = :id'),
            {'id': second.id}
        )
        db.session.commit()

        report = ledger_service.verify_member(sample_member.id)
        assert report['ok'] is False
        assert report['first_mismatch_id'] == second.id

    def test_detects_stale_cache(self, sample_member):
        """A cached balance that drifted from the ledger is reported."""
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 100, T0)
        db.session.execute(
            text('UPDATE members SET loyalty_points = 5000 WHERE id = :id'),
            {'id': sample_member.id}
        )
        db.session.commit()

        report = ledger_service.verify_member(sample_member.id)
        assert report['ok'] is False
        assert report['cached_balance'] == 5000
        assert report['replayed_balance'] == 100

    def test_verify_all(self, sample_member, other_member):
        """verify_all covers every member with ledger activity."""
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 100, T0)
        append(other_member, 'CREDIT', 'MEMBERSHIP', 200, T0)
        reports = ledger_service.verify_all()
        assert {r['member_id'] for r in reports} == {sample_member.id, other_member.id}
        assert all(r['ok'] for r in reports)


class TestOptimisticVersioning:
    """The member row's version column guards against lost updates."""

    def test_version_increments(self, sample_member):
        """Every update bumps version_id."""
        version = sample_member.version_id
        append(sample_member, 'CREDIT', 'MEMBERSHIP', 10, T0)
        assert sample_member.version_id == version + 1

    def test_stale_write_rejected(self, sample_member):
        """Writing over a newer version raises StaleDataError."""
        member = db.session.get(Member, sample_member.id)
        db.session.execute(
            text('UPDATE members SET version_id = version_id + 1 WHERE id = :id'),
            {'id': member.id}
        )
        member.loyalty_points = 42
        with pytest.raises(StaleDataError):
            db.session.flush()
        db.session.rollback()
        assert db.session.get(Member, sample_member.id).loyalty_points == 0
