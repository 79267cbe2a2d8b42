"""
Funnel event endpoints.

Each route reads its primary table (newest first) and left-joins the
code -> contact lookup built from the discount and referral tables.
Only a failed primary read fails the request.
"""
import logging
from flask import Blueprint, jsonify

from ..services import datasets
from ..utils.errors import database_error
from ..utils.exceptions import DatastoreError

logger = logging.getLogger(__name__)

events_bp = Blueprint('events', __name__)


@events_bp.route('/code_opens', methods=['GET'])
def get_code_opens():
    """Landing-page opens with name/email/phone/source."""
    try:
        return jsonify(datasets.enriched_code_opens())
    except DatastoreError as e:
        return database_error(e.message)


@events_bp.route('/code_input_events', methods=['GET'])
def get_code_input_events():
    """Per-field input events with name/email/phone/source."""
    try:
        return jsonify(datasets.enriched_input_events())
    except DatastoreError as e:
        return database_error(e.message)


@events_bp.route('/code_all_fields_filled', methods=['GET'])
def get_code_all_fields_filled():
    """All-fields-filled snapshots with name/email/phone/source."""
    try:
        return jsonify(datasets.enriched_fields_filled())
    except DatastoreError as e:
        return database_error(e.message)


@events_bp.route('/form_submissions', methods=['GET'])
def get_form_submissions():
    """
    Form submissions.

    Returns:
        Array of {id, code, submitted_at, submission_data, name, email, phone, source}
        where submission_data is the stored blob merged with the direct columns.
        Codes without a discount/referral match report source 'submission'.
    """
    try:
        return jsonify(datasets.enriched_form_submissions())
    except DatastoreError as e:
        return database_error(e.message)
