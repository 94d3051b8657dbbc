"""
Shared pytest fixtures for Quest Ledger tests.

The app fixture pushes one application context for the whole test, so every
fixture and test shares a single session. Tests should not push nested
contexts (each context gets its own session).
"""
import itertools
import pytest

from questledger import create_app
from questledger.extensions import db
from questledger.models import Member, Badge, Quest, seed_reward_tiers
from questledger.services import quest_catalog
from questledger.services.notification_service import notification_service

_slug_counter = itertools.count(1)


@pytest.fixture
def app():
    """Create test application with an in-memory database and default tiers."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        seed_reward_tiers()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Test client for API requests."""
    return app.test_client()


@pytest.fixture
def tiers(app):
    """The cached tier table."""
    return quest_catalog.tier_table()


@pytest.fixture
def sample_member(app):
    """An active member with an empty ledger."""
    member = Member(
        email='guest@example.com',
        name='Test Guest',
        external_id='usr_001',
        status='active',
    )
    db.session.add(member)
    db.session.commit()
    return member


@pytest.fixture
def other_member(app):
    """A second member, for isolation checks."""
    member = Member(
        email='other@example.com',
        name='Other Guest',
        external_id='usr_002',
        status='active',
    )
    db.session.add(member)
    db.session.commit()
    return member


@pytest.fixture
def sample_badge(app):
    """An active badge."""
    badge = Badge(
        slug='first-stay',
        name='First Stay',
        description='Completed your first booking',
        icon='home',
        is_active=True,
    )
    db.session.add(badge)
    db.session.commit()
    return badge


@pytest.fixture
def make_quest(app):
    """Factory for quests; keyword arguments override the defaults."""
    def _make_quest(**overrides):
        n = next(_slug_counter)
        data = {
            'slug': f'quest-{n}',
            'title': f'Quest {n}',
            'trigger_category': 'BOOKING',
            'target_count': 1,
            'reward_points': 100,
            'recurrence': 'NONE',
            'is_active': True,
            'display_order': n,
        }
        data.update(overrides)
        quest = Quest(**data)
        db.session.add(quest)
        db.session.commit()
        return quest

    return _make_quest


@pytest.fixture
def events():
    """Record every emitted notification as (event_type, member_id, payload)."""
    received = []

    def recorder(event_type, member_id, payload):
        received.append((event_type, member_id, payload))

    notification_service.subscribe(recorder)
    yield received
    notification_service.unsubscribe(recorder)
