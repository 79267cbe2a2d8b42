"""
Dashboard endpoints.

Serves the derived dashboard as JSON, as CSV exports of the filtered
tables, and as the server-rendered dashboard page.
"""
import csv
import io
import logging
from datetime import datetime, timezone
from flask import Blueprint, Response, current_app, jsonify, render_template, request

from ..services.dashboard_service import (
    DashboardFilters, DashboardService, DashboardSnapshot, load_snapshot
)
from ..services.funnel_metrics import resolve_timezone
from ..utils.charts import line_chart
from ..utils.errors import bad_request, database_error, ErrorCode
from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)

# Leading characters that make spreadsheets treat a cell as a formula
FORMULA_PREFIXES = ('=', '+', '-', '@', '\t', '\r')

# Dataset -> (CSV header, row -> CSV values)
EXPORT_COLUMNS = {
    'opens': (
        ['Code', 'Opened At', 'Name', 'Email', 'Phone', 'Source'],
        lambda r: [r['code'], r['opened_at'], r['name'], r['email'], r['phone'], r['source']],
    ),
    'input_events': (
        ['ID', 'Code', 'Field', 'Value', 'Changed At', 'Name', 'Email', 'Phone', 'Source'],
        lambda r: [r['id'], r['code'], r['field_name'], r['input_value'], r['changed_at'],
                   r['name'], r['email'], r['phone'], r['source']],
    ),
    'fields_filled': (
        ['ID', 'Code', 'Filled At', 'Name', 'Email', 'Phone', 'Source'],
        lambda r: [r['id'], r['code'], r['filled_at'], r['name'], r['email'], r['phone'], r['source']],
    ),
    'submissions': (
        ['ID', 'Code', 'Submitted At', 'Name', 'Email', 'Phone', 'Source'],
        lambda r: [r['id'], r['code'], r['submitted_at'], r['name'], r['email'], r['phone'], r['source']],
    ),
    'discounts': (
        ['Code', 'Name', 'Email', 'Phone'],
        lambda r: [r['code'], r['name'], r['email'], r['phone']],
    ),
    'referrals': (
        ['Code', 'Name', 'Email', 'Phone'],
        lambda r: [r['code'], r['name'], r['email'], r['phone']],
    ),
}


def csv_safe(value):
    """Neutralize cells a spreadsheet would evaluate as a formula."""
    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def build_dashboard_service(args, snapshot: DashboardSnapshot = None) -> DashboardService:
    """Wrap a snapshot (fresh unless given) with the request's filters."""
    config = current_app.config
    return DashboardService(
        snapshot if snapshot is not None else load_snapshot(),
        DashboardFilters.from_args(args),
        tz=resolve_timezone(config.get('DASHBOARD_TIMEZONE', 'UTC')),
        top_n=config.get('DASHBOARD_TOP_CODES', 5),
        table_limit=config.get('DASHBOARD_TABLE_LIMIT', 50),
    )


# ==================== JSON ====================

@dashboard_bp.route('', methods=['GET'])
def get_dashboard():
    """
    Derived dashboard data.

    Query params:
        from, to: YYYY-MM-DD, inclusive
        code: case-insensitive code substring
        opens_q, events_q, subs_q, discount_q, referral_q: per-table quick filters

    Returns:
        filters, metrics, per_code_completion, series, tables, errors
    """
    try:
        service = build_dashboard_service(request.args)
    except ValidationError as e:
        return bad_request(e.message, e.code)
    return jsonify(service.summary())


# ==================== EXPORT ====================

@dashboard_bp.route('/export', methods=['GET'])
def export_dataset():
    """
    Export a filtered, enriched dataset as CSV.

    Query params:
        dataset: 'opens', 'input_events', 'fields_filled', 'submissions',
                 'discounts', 'referrals'
        from, to, code: global filters
    """
    dataset = request.args.get('dataset', '')
    if dataset not in EXPORT_COLUMNS:
        return bad_request(
            f"Unknown dataset '{dataset}'. Expected one of: {', '.join(EXPORT_COLUMNS)}",
            ErrorCode.INVALID_FIELD
        )

    try:
        service = build_dashboard_service(request.args)
    except ValidationError as e:
        return bad_request(e.message, e.code)

    if dataset in service.snapshot.errors:
        return database_error(service.snapshot.errors[dataset])

    header, to_row = EXPORT_COLUMNS[dataset]
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(header)
    for row in service.filtered[dataset]:
        writer.writerow([csv_safe(value) for value in to_row(row)])

    filename = f'{dataset}_export_{datetime.now(timezone.utc).strftime("%Y%m%d")}.csv'
    return Response(
        output.getvalue(),
        mimetype='text/csv',
        headers={
            'Content-Disposition': f'attachment; filename={filename}',
            'Content-Type': 'text/csv; charset=utf-8'
        }
    )


# ==================== PAGE ====================

def render_dashboard_page():
    """Render the dashboard HTML for the current request's filters."""
    snapshot = load_snapshot()
    try:
        service = build_dashboard_service(request.args, snapshot)
    except ValidationError as e:
        logger.warning('Ignoring invalid dashboard filter: %s', e.message)
        args = request.args.to_dict()
        args.pop('from', None)
        args.pop('to', None)
        service = build_dashboard_service(args, snapshot)
        service.snapshot.errors['filters'] = e.message

    summary = service.summary()
    series = summary['series']
    return render_template(
        'dashboard.html',
        summary=summary,
        filters=summary['filters'],
        metrics=summary['metrics'],
        completion=summary['per_code_completion'],
        tables=summary['tables'],
        errors=summary['errors'],
        opens_chart=line_chart(series['opens']),
        submissions_chart=line_chart(series['submissions']),
    )
