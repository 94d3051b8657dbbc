"""
Tier Calculator

Maps a points balance onto the tier table. Works with anything that exposes
min_points (RewardTier rows or the catalog's cached TierLevel tuples).
"""
from typing import Any, Dict, Sequence

from ..utils.exceptions import ConfigurationError


def _ordered(tiers: Sequence[Any]) -> list:
    if not tiers:
        raise ConfigurationError('Tier table is empty; at least one reward tier must be configured')
    return sorted(tiers, key=lambda t: t.min_points)


def tier_for(points: int, tiers: Sequence[Any]):
    """
    Highest tier whose min_points <= points.

    A balance below every threshold (a negative balance after a debit) maps
    to the lowest tier.
    """
    ordered = _ordered(tiers)
    current = ordered[0]
    for tier in ordered:
        if tier.min_points <= points:
            current = tier
        else:
            break
    return current


def progress_to_next(points: int, tiers: Sequence[Any]) -> Dict[str, Any]:
    """
    Progress from the current tier towards the next one.

    Returns:
        Dict with next_tier (None at the top), points_remaining (None at the
        top, otherwise max(0, next.min_points - points)) and progress_ratio
        in [0, 1].
    """
    ordered = _ordered(tiers)
    current = tier_for(points, ordered)
    index = ordered.index(current)

    if index + 1 >= len(ordered):
        return {
            'current_tier': current,
            'next_tier': None,
            'points_remaining': None,
            'progress_ratio': 1.0,
        }

    next_tier = ordered[index + 1]
    span = next_tier.min_points - current.min_points
    gained = points - current.min_points
    ratio = gained / span if span > 0 else 1.0

    return {
        'current_tier': current,
        'next_tier': next_tier,
        'points_remaining': max(0, next_tier.min_points - points),
        'progress_ratio': round(min(1.0, max(0.0, ratio)), 4),
    }
