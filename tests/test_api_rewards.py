"""
Tests for the Rewards and Membership API endpoints.
"""
import json

from questledger.extensions import db
from questledger.models import Member


def post_bonus(client, payload):
    return client.post(
        '/api/membership/bonus',
        data=json.dumps(payload),
        headers={'Content-Type': 'application/json'}
    )


class TestMembershipBonus:
    """Tests for POST /api/membership/bonus."""

    def test_bonus(self, client, sample_member):
        """A bonus credits the ledger and returns the new balance."""
        response = post_bonus(client, {
            'member_id': sample_member.id,
            'points': 1000,
            'description': 'Annual plan welcome bonus',
        })
        assert response.status_code == 201
        data = response.get_json()
        assert data['balance'] == 1000
        assert data['tier'] == 'SILVER'
        assert data['transaction']['description'] == 'Annual plan welcome bonus'
        assert db.session.get(Member, sample_member.id).loyalty_points == 1000

    def test_redemption(self, client, sample_member):
        """Negative points are accepted for redemptions."""
        post_bonus(client, {'member_id': sample_member.id, 'points': 300})
        response = post_bonus(client, {
            'member_id': sample_member.id,
            'points': -100,
            'source': 'REDEMPTION',
        })
        assert response.status_code == 201
        assert response.get_json()['transaction']['kind'] == 'DEBIT'

    def test_negative_membership_rejected(self, client, sample_member):
        """Membership bonuses cannot remove points."""
        response = post_bonus(client, {'member_id': sample_member.id, 'points': -100})
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_POINTS'

    def test_non_integer_points(self, client, sample_member):
        """points must be an integer."""
        response = post_bonus(client, {'member_id': sample_member.id, 'points': '100'})
        assert response.status_code == 400

    def test_missing_member_id(self, client):
        """member_id is required."""
        response = post_bonus(client, {'points': 100})
        assert response.status_code == 400

    def test_unknown_member(self, client):
        """Unknown members 404."""
        response = post_bonus(client, {'member_id': 9999, 'points': 100})
        assert response.status_code == 404


class TestSummary:
    """Tests for GET /api/rewards/summary/{member_id}."""

    def test_summary(self, client, sample_member):
        """Summary reflects the ledger."""
        post_bonus(client, {'member_id': sample_member.id, 'points': 3100})
        response = client.get(f'/api/rewards/summary/{sample_member.id}')
        assert response.status_code == 200
        data = response.get_json()
        assert data['balance'] == 3100
        assert data['tier']['tier'] == 'GOLD'
        assert data['progress_to_next']['points_remaining'] == 1900
        assert len(data['recent_transactions']) == 1

    def test_summary_unknown_member(self, client):
        """Unknown members 404."""
        response = client.get('/api/rewards/summary/9999')
        assert response.status_code == 404


class TestHistory:
    """Tests for GET /api/rewards/history/{member_id}."""

    def test_history(self, client, sample_member):
        """Paginated and filterable."""
        for points in (100, 200, 300):
            post_bonus(client, {'member_id': sample_member.id, 'points': points})

        response = client.get(f'/api/rewards/history/{sample_member.id}?per_page=2')
        assert response.status_code == 200
        data = response.get_json()
        assert [t['points'] for t in data['transactions']] == [300, 200]
        assert data['pagination']['total'] == 3
        assert data['pagination']['has_next'] is True

    def test_invalid_source(self, client, sample_member):
        """Unknown sources are a 400."""
        response = client.get(f'/api/rewards/history/{sample_member.id}?source=LOTTERY')
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_SOURCE'

    def test_invalid_date(self, client, sample_member):
        """Dates must be ISO 8601."""
        response = client.get(f'/api/rewards/history/{sample_member.id}?start_date=yesterday')
        assert response.status_code == 400

    def test_date_range(self, client, sample_member):
        """A future window returns nothing."""
        post_bonus(client, {'member_id': sample_member.id, 'points': 100})
        response = client.get(
            f'/api/rewards/history/{sample_member.id}?start_date=2999-01-01T00:00:00'
        )
        assert response.get_json()['transactions'] == []


class TestTiersAndVerify:
    """Tests for the tier table and verification endpoints."""

    def test_tiers(self, client):
        """The seeded tier table."""
        response = client.get('/api/rewards/tiers')
        assert response.status_code == 200
        assert [t['min_points'] for t in response.get_json()['tiers']] == [0, 1000, 3000, 5000]

    def test_verify(self, client, sample_member):
        """Verification passes for API-written ledgers."""
        post_bonus(client, {'member_id': sample_member.id, 'points': 100})
        response = client.get(f'/api/rewards/verify/{sample_member.id}')
        assert response.status_code == 200
        assert response.get_json()['verification']['ok'] is True

    def test_verify_unknown_member(self, client):
        """Unknown members 404."""
        response = client.get('/api/rewards/verify/9999')
        assert response.status_code == 404


class TestHealth:
    """Tests for /health."""

    def test_health(self, client):
        """The service and database are up."""
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_unknown_route(self, client):
        """Unknown routes use the error envelope."""
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'
