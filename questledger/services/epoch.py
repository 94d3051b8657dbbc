"""
Epoch resolution for recurring quests.

An epoch is the window in which a quest can be completed at most once.
Windows are rolling: they start at progress.last_reset_at, not at a calendar
boundary.
"""
from datetime import datetime, timedelta
from typing import Optional

from ..models.quest import Recurrence


EPOCH_LENGTHS = {
    Recurrence.NONE.value: None,
    Recurrence.DAILY.value: timedelta(hours=24),
    Recurrence.WEEKLY.value: timedelta(hours=168),
}


def epoch_length(recurrence) -> Optional[timedelta]:
    """Length of one epoch, or None for one-shot quests."""
    if isinstance(recurrence, Recurrence):
        recurrence = recurrence.value
    return EPOCH_LENGTHS.get(recurrence)


def should_reset(quest, progress, now: datetime) -> bool:
    """
    Whether the next trigger starts a fresh epoch for this progress row.

    NONE never resets. DAILY and WEEKLY reset once the rolling window since
    last_reset_at has fully elapsed.
    """
    length = epoch_length(quest.recurrence)
    if length is None:
        return False
    if progress is None or progress.last_reset_at is None:
        return True
    return now - progress.last_reset_at >= length


def next_reset_at(quest, progress) -> Optional[datetime]:
    """When the current epoch ends; None for one-shot quests or no progress yet."""
    length = epoch_length(quest.recurrence)
    if length is None or progress is None or progress.last_reset_at is None:
        return None
    return progress.last_reset_at + length
