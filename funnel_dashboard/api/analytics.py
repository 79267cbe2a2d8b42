"""
Analytics API endpoint.

Aggregate code totals and open conversion across the discount, referral
and code_opens tables.
"""
import logging
from flask import Blueprint, jsonify

from ..services import datasets
from ..services.funnel_metrics import code_analytics
from ..utils.errors import internal_error
from ..utils.exceptions import DatastoreError

logger = logging.getLogger(__name__)

analytics_bp = Blueprint('analytics', __name__)


@analytics_bp.route('/analytics', methods=['GET'])
def get_analytics():
    """
    Code totals and conversions.

    Returns:
        - totals: generated/discount/referral codes, unique opens, open events
        - conversions: opens per source, conversion rates ("x.x%"), opens per code
    """
    try:
        discounts = datasets.list_discount_codes()
        referrals = datasets.list_referral_codes()
        opens = datasets.list_code_opens()
        return jsonify(code_analytics(discounts, referrals, opens))
    except DatastoreError as e:
        return internal_error('Failed to fetch analytics', details={'table': e.table})
