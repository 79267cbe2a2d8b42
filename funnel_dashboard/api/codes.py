"""
Discount and referral code listing endpoints.
"""
import logging
from flask import Blueprint, jsonify

from ..services import datasets
from ..utils.errors import database_error
from ..utils.exceptions import DatastoreError

logger = logging.getLogger(__name__)

codes_bp = Blueprint('codes', __name__)


@codes_bp.route('/discount', methods=['GET'])
def list_discount_codes():
    """
    List discount codes.

    Returns:
        Array of {code, name, email, phone}
    """
    try:
        return jsonify(datasets.list_discount_codes())
    except DatastoreError as e:
        return database_error(e.message)


@codes_bp.route('/referral', methods=['GET'])
def list_referral_codes():
    """
    List referral codes.

    Returns:
        Array of {code, name, email, phone}
    """
    try:
        return jsonify(datasets.list_referral_codes())
    except DatastoreError as e:
        return database_error(e.message)
