"""
Ledger Service

The only code that writes RewardTransaction rows or the member's cached
balance. append() works on the caller's session; committing is the caller's
job so the entry, the balance and the tier always land in one transaction.

Ordering:
    Entries are ordered per member by (occurred_at, id). occurred_at is never
    allowed to go backwards for a member, so replaying in that order always
    matches the order entries were appended in.
"""
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models.member import Member
from ..models.ledger import RewardTransaction, TransactionKind, TransactionSource
from ..utils.exceptions import ValidationError
from . import quest_catalog
from .tier_calculator import tier_for


def _latest_entry(member_id: int) -> Optional[RewardTransaction]:
    return RewardTransaction.query.filter_by(
        member_id=member_id
    ).order_by(
        RewardTransaction.occurred_at.desc(),
        RewardTransaction.id.desc()
    ).first()


def append(
    member: Member,
    kind: TransactionKind,
    source: TransactionSource,
    points: int,
    description: Optional[str] = None,
    extra_data: Optional[Dict[str, Any]] = None,
    quest_id: Optional[int] = None,
    occurred_at: Optional[datetime] = None,
) -> Tuple[RewardTransaction, str]:
    """
    Append one entry and move the member's cached balance and tier with it.

    Args:
        member: Member row loaded in the current transaction
        kind: CREDIT or DEBIT
        source: What moved the points
        points: Positive magnitude
        occurred_at: Defaults to now; clamped to the member's latest entry

    Returns:
        (transaction, previous_tier)

    Raises:
        ValidationError: points is not a positive integer
        ConfigurationError: the tier table is empty
    """
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise ValidationError('Ledger points must be a positive integer', 'points')

    kind = TransactionKind(kind)
    source = TransactionSource(source)

    # Resolve the tier table before touching the session so a config error
    # leaves nothing half-written
    tiers = quest_catalog.tier_table()

    previous_balance = member.loyalty_points or 0
    previous_tier = member.loyalty_tier
    signed = points if kind == TransactionKind.CREDIT else -points
    new_balance = previous_balance + signed

    occurred_at = occurred_at or datetime.utcnow()
    latest = _latest_entry(member.id)
    if latest is not None and latest.occurred_at > occurred_at:
        occurred_at = latest.occurred_at

    transaction = RewardTransaction(
        member_id=member.id,
        kind=kind.value,
        source=source.value,
        points=points,
        balance_after=new_balance,
        occurred_at=occurred_at,
        description=description,
        quest_id=quest_id,
        extra_data=extra_data or {},
    )
    db.session.add(transaction)

    member.loyalty_points = new_balance
    member.loyalty_tier = tier_for(new_balance, tiers).tier

    current_app.logger.info(
        f"[QuestLedger] {kind.value} {points} pts ({source.value}) for member {member.id}: "
        f"{previous_balance} -> {new_balance}"
    )
    return transaction, previous_tier


def latest_balance(member_id: int) -> int:
    """balance_after of the newest entry, or 0 for an empty ledger."""
    latest = _latest_entry(member_id)
    return latest.balance_after if latest else 0


def _filtered(member_id: int, kind=None, source=None,
              start: Optional[datetime] = None, end: Optional[datetime] = None):
    query = RewardTransaction.query.filter(RewardTransaction.member_id == member_id)
    if kind:
        query = query.filter(RewardTransaction.kind == TransactionKind(kind).value)
    if source:
        query = query.filter(RewardTransaction.source == TransactionSource(source).value)
    if start:
        query = query.filter(RewardTransaction.occurred_at >= start)
    if end:
        query = query.filter(RewardTransaction.occurred_at <= end)
    return query


def history(
    member_id: int,
    limit: int = 20,
    offset: int = 0,
    kind=None,
    source=None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Tuple[List[RewardTransaction], int]:
    """Newest-first page of entries and the total matching count."""
    query = _filtered(member_id, kind, source, start, end)
    total = query.count()
    rows = query.order_by(
        RewardTransaction.occurred_at.desc(),
        RewardTransaction.id.desc()
    ).offset(offset).limit(limit).all()
    return rows, total


def totals(member_id: int) -> Dict[str, int]:
    """Lifetime points credited and debited."""
    rows = db.session.query(
        RewardTransaction.kind,
        func.coalesce(func.sum(RewardTransaction.points), 0)
    ).filter(
        RewardTransaction.member_id == member_id
    ).group_by(RewardTransaction.kind).all()

    sums = {kind: int(total) for kind, total in rows}
    return {
        'lifetime_earned': sums.get(TransactionKind.CREDIT.value, 0),
        'lifetime_spent': sums.get(TransactionKind.DEBIT.value, 0),
    }


def verify_member(member_id: int) -> Dict[str, Any]:
    """
    Replay a member's ledger and compare it with the stored balances.

    Checks every balance_after against the running sum, then the cached
    balance and tier on the member row.
    """
    member = db.session.get(Member, member_id)
    entries = RewardTransaction.query.filter_by(
        member_id=member_id
    ).order_by(
        RewardTransaction.occurred_at.asc(),
        RewardTransaction.id.asc()
    ).all()

    running = 0
    first_mismatch_id = None
    for entry in entries:
        running += entry.signed_points
        if first_mismatch_id is None and entry.balance_after != running:
            first_mismatch_id = entry.id

    cached_balance = member.loyalty_points if member else None
    expected_tier = None
    tier_ok = True
    if member is not None:
        expected_tier = tier_for(running, quest_catalog.tier_table()).tier
        tier_ok = member.loyalty_tier == expected_tier

    ok = (
        member is not None
        and first_mismatch_id is None
        and cached_balance == running
        and tier_ok
    )
    if not ok:
        current_app.logger.error(
            f"[QuestLedger] Ledger verification failed for member {member_id}: "
            f"replayed={running} cached={cached_balance} first_mismatch={first_mismatch_id}"
        )

    return {
        'member_id': member_id,
        'ok': ok,
        'transaction_count': len(entries),
        'replayed_balance': running,
        'cached_balance': cached_balance,
        'cached_tier': member.loyalty_tier if member else None,
        'expected_tier': expected_tier,
        'first_mismatch_id': first_mismatch_id,
    }


def verify_all() -> List[Dict[str, Any]]:
    """Verify every member that has a ledger or a non-zero cached balance."""
    member_ids = {
        row[0] for row in db.session.query(RewardTransaction.member_id).distinct()
    }
    member_ids.update(
        row[0] for row in db.session.query(Member.id).filter(Member.loyalty_points != 0)
    )
    return [verify_member(member_id) for member_id in sorted(member_ids)]
