"""
Tests for the loyalty CLI commands.
"""
from sqlalchemy import text

from questledger.extensions import db
from questledger.models import Quest
from questledger.services.reward_coordinator import reward_coordinator


class TestSeedCommand:
    """flask loyalty seed"""

    def test_seed(self, app):
        """Seeds the default catalog."""
        result = app.test_cli_runner().invoke(args=['loyalty', 'seed'])
        assert result.exit_code == 0
        assert '6 quests' in result.output
        assert Quest.query.count() == 6


class TestValidateCatalogCommand:
    """flask loyalty validate-catalog"""

    def test_valid(self, app, make_quest):
        """A consistent catalog exits 0."""
        make_quest()
        result = app.test_cli_runner().invoke(args=['loyalty', 'validate-catalog'])
        assert result.exit_code == 0
        assert 'Catalog OK: 1 active quests' in result.output

    def test_invalid(self, app, make_quest, sample_badge):
        """A disabled badge fails the check."""
        make_quest(reward_badge_id=sample_badge.id)
        sample_badge.is_active = False
        db.session.commit()

        result = app.test_cli_runner().invoke(args=['loyalty', 'validate-catalog'])
        assert result.exit_code == 1


class TestVerifyLedgerCommand:
    """flask loyalty verify-ledger"""

    def test_all_ok(self, app, sample_member):
        """Consistent ledgers exit 0."""
        reward_coordinator.activate_membership_bonus(sample_member.id, 100)
        result = app.test_cli_runner().invoke(args=['loyalty', 'verify-ledger'])
        assert result.exit_code == 0
        assert 'Verified 1 members, 0 failed' in result.output

    def test_mismatch(self, app, sample_member):
        """A drifted cache exits 1 and names the member."""
        reward_coordinator.activate_membership_bonus(sample_member.id, 100)
        db.session.execute(
            text('UPDATE members SET loyalty_points = 7 WHERE id = :id'),
            {'id': sample_member.id}
        )
        db.session.commit()

        result = app.test_cli_runner().invoke(
            args=['loyalty', 'verify-ledger', '--member-id', str(sample_member.id)]
        )
        assert result.exit_code == 1
        assert f'Member {sample_member.id}' in result.output

    def test_unknown_member(self, app):
        """Unknown member ids exit 1."""
        result = app.test_cli_runner().invoke(args=['loyalty', 'verify-ledger', '--member-id', '9999'])
        assert result.exit_code == 1
