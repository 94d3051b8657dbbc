"""
CLI Commands for the loyalty catalog and ledger.

# Install default tiers, badges and quests
flask loyalty seed

# Check the active catalog (run after catalog edits / in deploy checks)
flask loyalty validate-catalog

# Replay ledgers and compare with cached balances (nightly)
0 3 * * * cd /app && flask loyalty verify-ledger
"""

import sys

import click
from flask.cli import with_appcontext

from ..extensions import db
from ..models.member import Member
from ..services import ledger_service, quest_catalog
from ..utils.exceptions import ConfigurationError


@click.group('loyalty')
def loyalty_cli():
    """Quest catalog and reward ledger commands."""
    pass


@loyalty_cli.command('seed')
@with_appcontext
def seed():
    """Install the default tiers, badges and quests (idempotent)."""
    created = quest_catalog.seed_defaults()
    click.echo(
        f"Seeded {created['tiers']} tiers, {created['badges']} badges, "
        f"{created['quests']} quests"
    )


@loyalty_cli.command('validate-catalog')
@with_appcontext
def validate_catalog():
    """Fail if the tier table is empty or a quest rewards a disabled badge."""
    try:
        quests = quest_catalog.validate()
    except ConfigurationError as e:
        click.echo(f"Catalog invalid: {e.message}", err=True)
        sys.exit(1)

    click.echo(f"Catalog OK: {len(quests)} active quests")


@loyalty_cli.command('verify-ledger')
@click.option('--member-id', type=int, help='Specific member ID (or all if not specified)')
@with_appcontext
def verify_ledger(member_id):
    """
    Replay reward ledgers and compare with cached balances and tiers.

    Exits non-zero when any member fails.
    """
    if member_id:
        if not db.session.get(Member, member_id):
            click.echo(f"Member {member_id} not found", err=True)
            sys.exit(1)
        reports = [ledger_service.verify_member(member_id)]
    else:
        reports = ledger_service.verify_all()

    failed = [r for r in reports if not r['ok']]
    for report in failed:
        click.echo(
            f"  Member {report['member_id']}: replayed {report['replayed_balance']}, "
            f"cached {report['cached_balance']}, tier {report['cached_tier']} "
            f"(expected {report['expected_tier']}), first mismatch {report['first_mismatch_id']}"
        )

    click.echo(f"Verified {len(reports)} members, {len(failed)} failed")
    if failed:
        sys.exit(1)


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(loyalty_cli)
