"""
CLI Commands for Quest Ledger.

Usage:
    flask loyalty seed                          # Install default tiers, badges, quests
    flask loyalty validate-catalog              # Check the active quest catalog
    flask loyalty verify-ledger --member-id 1   # Replay and check reward ledgers
"""
from .loyalty import init_app as init_loyalty_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_loyalty_commands(app)
