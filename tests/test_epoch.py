"""
Tests for epoch resolution.

Tests cover:
- One-shot quests never reset
- Rolling 24h and 168h windows
- Next reset time for read views
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

from questledger.services.epoch import should_reset, epoch_length, next_reset_at


T0 = datetime(2026, 3, 6, 18, 30)


def quest(recurrence):
    return SimpleNamespace(recurrence=recurrence)


def progress(last_reset_at=T0):
    return SimpleNamespace(last_reset_at=last_reset_at)


class TestShouldReset:
    """Tests for should_reset."""

    def test_one_shot_never_resets(self):
        """A NONE quest stays put no matter how much time passes."""
        assert should_reset(quest('NONE'), progress(), T0 + timedelta(days=3650)) is False

    def test_daily_before_window(self):
        """A DAILY quest does not reset inside the 24h window."""
        assert should_reset(quest('DAILY'), progress(), T0 + timedelta(hours=23, minutes=59)) is False

    def test_daily_at_window_boundary(self):
        """A DAILY quest resets exactly 24h after the last reset."""
        assert should_reset(quest('DAILY'), progress(), T0 + timedelta(hours=24)) is True

    def test_weekly_is_rolling(self):
        """WEEKLY is a 168h rolling window, not a calendar week."""
        assert should_reset(quest('WEEKLY'), progress(), T0 + timedelta(hours=167)) is False
        assert should_reset(quest('WEEKLY'), progress(), T0 + timedelta(hours=168)) is True

    def test_missing_reset_time_is_due(self):
        """A recurring row without last_reset_at starts a fresh epoch."""
        assert should_reset(quest('DAILY'), progress(None), T0) is True

    def test_unknown_recurrence_never_resets(self):
        """Unrecognized recurrence values behave like one-shot quests."""
        assert should_reset(quest('MONTHLY'), progress(), T0 + timedelta(days=90)) is False


class TestEpochHelpers:
    """Tests for epoch_length and next_reset_at."""

    def test_epoch_lengths(self):
        """Each recurrence maps to its window."""
        assert epoch_length('NONE') is None
        assert epoch_length('DAILY') == timedelta(hours=24)
        assert epoch_length('WEEKLY') == timedelta(days=7)

    def test_next_reset_at(self):
        """The epoch ends one window after last_reset_at."""
        assert next_reset_at(quest('DAILY'), progress()) == T0 + timedelta(hours=24)
        assert next_reset_at(quest('NONE'), progress()) is None
        assert next_reset_at(quest('WEEKLY'), None) is None
