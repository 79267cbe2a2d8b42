"""
CLI Commands for funnel reporting.

Handy from cron or a shell when the dashboard is not reachable:

# Daily funnel digest for yesterday
0 7 * * * cd /app && flask funnel summary --from=$(date -d yesterday +%F) --to=$(date -d yesterday +%F)
"""

import click
from flask import current_app
from flask.cli import with_appcontext

from ..services import datasets
from ..services.dashboard_service import DashboardFilters, DashboardService, load_snapshot
from ..services.funnel_metrics import code_analytics, resolve_timezone
from ..utils.exceptions import DatastoreError, ValidationError


@click.group('funnel')
def funnel_cli():
    """Funnel reporting commands."""
    pass


@funnel_cli.command('summary')
@click.option('--from', 'date_from', default='', help='Start date (YYYY-MM-DD, inclusive)')
@click.option('--to', 'date_to', default='', help='End date (YYYY-MM-DD, inclusive)')
@click.option('--code', default='', help='Only codes containing this text')
@with_appcontext
def funnel_summary(date_from, date_to, code):
    """
    Print funnel totals, conversion rates and the most active codes.
    """
    filters = DashboardFilters(date_from=date_from, date_to=date_to, code_query=code)
    try:
        service = DashboardService(
            load_snapshot(),
            filters,
            tz=resolve_timezone(current_app.config.get('DASHBOARD_TIMEZONE', 'UTC')),
            top_n=current_app.config.get('DASHBOARD_TOP_CODES', 5),
        )
    except ValidationError as e:
        raise click.BadParameter(e.message, param_hint=f'--{e.field}')

    for dataset, message in service.snapshot.errors.items():
        click.echo(f"WARNING: {dataset}: {message}", err=True)

    metrics = service.metrics()
    completion = service.per_code_completion()

    click.echo("\nFunnel")
    click.echo(f"  Opens: {metrics['total_opens']} ({metrics['unique_codes']} codes, {metrics['recent_opens']} in last 24h)")
    click.echo(f"  Fields filled: {metrics['total_fields_filled']} ({metrics['open_to_filled_rate']}% of opens)")
    click.echo(f"  Submissions: {metrics['total_submissions']} ({metrics['filled_to_submit_rate']}% of filled)")
    click.echo(f"  Open -> submit (events): {metrics['open_to_submit_rate']}%")
    click.echo(
        f"  Completion rate: {completion['rate_percent']}% "
        f"({completion['success_codes_count']}/{completion['opened_codes_count']} codes)"
    )

    if metrics['top_codes']:
        click.echo("\nMost active codes")
        for idx, item in enumerate(metrics['top_codes'], start=1):
            click.echo(f"  {idx}. {item['code']}: {item['count']} input events")


@funnel_cli.command('analytics')
@with_appcontext
def analytics():
    """
    Print code totals and open conversion per source.
    """
    try:
        result = code_analytics(
            datasets.list_discount_codes(),
            datasets.list_referral_codes(),
            datasets.list_code_opens()
        )
    except DatastoreError as e:
        raise click.ClickException(e.message)

    totals = result['totals']
    conversions = result['conversions']
    click.echo(f"Generated codes: {totals['totalGeneratedCodes']} "
               f"({totals['totalDiscountCodes']} discount, {totals['totalReferralCodes']} referral)")
    click.echo(f"Opened codes: {totals['totalUniqueOpens']} ({totals['totalOpensCount']} opens, "
               f"{conversions['opensPerCode']} per code)")
    click.echo(f"Discount conversion: {conversions['discountConversionRate']} ({conversions['discountOpens']} opened)")
    click.echo(f"Referral conversion: {conversions['referralConversionRate']} ({conversions['referralOpens']} opened)")
    click.echo(f"Overall conversion: {conversions['overallConversionRate']}")


def init_app(app):
    """Register funnel commands with the Flask app."""
    app.cli.add_command(funnel_cli)
