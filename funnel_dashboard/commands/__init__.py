"""
CLI Commands for the funnel dashboard.

Usage:
    flask funnel summary                                  # Funnel over all data
    flask funnel summary --from 2024-01-01 --to 2024-01-31 --code SPRING
    flask funnel analytics                                # Code totals and conversions
"""
from .funnel import init_app as init_funnel_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_funnel_commands(app)
