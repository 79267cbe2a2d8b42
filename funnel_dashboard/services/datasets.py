"""
Datastore reads for the funnel dashboard.

One function per table. Each read is independent: a failure rolls back the
session and raises DatastoreError so the caller can decide whether the
request fails or degrades.
"""
import logging
from typing import Dict, Any, List, Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    DiscountCode, ReferralCode, CodeOpen, CodeInputEvent,
    CodeAllFieldsFilled, FormSubmission
)
from ..utils.exceptions import DatastoreError
from .enrichment import (
    CodeContact, build_code_lookup, enrich_rows, normalize_submissions
)

logger = logging.getLogger(__name__)


def _read(table: str, query) -> List[Dict[str, Any]]:
    try:
        return [row.to_dict() for row in query.all()]
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception('Query against %s failed', table)
        raise DatastoreError(table, e) from e


# ==================== REFERENCE TABLES ====================

def list_discount_codes() -> List[Dict[str, Any]]:
    return _read('discount', db.session.query(DiscountCode))


def list_referral_codes() -> List[Dict[str, Any]]:
    return _read('referral', db.session.query(ReferralCode))


def load_code_lookup() -> Mapping[str, CodeContact]:
    """
    Build the code -> contact map for one request.

    A failed reference read contributes no entries instead of failing the
    request; affected rows fall back to Unknown.
    """
    sources = {}
    for table, reader in (('discount', list_discount_codes), ('referral', list_referral_codes)):
        try:
            sources[table] = reader()
        except DatastoreError:
            logger.warning('Continuing without %s contacts', table)
            sources[table] = []
    return build_code_lookup(sources['discount'], sources['referral'])


# ==================== EVENT TABLES ====================

def list_code_opens() -> List[Dict[str, Any]]:
    return _read(
        'code_opens',
        db.session.query(CodeOpen).order_by(CodeOpen.opened_at.desc())
    )


def list_input_events() -> List[Dict[str, Any]]:
    return _read(
        'code_input_events',
        db.session.query(CodeInputEvent).order_by(CodeInputEvent.changed_at.desc())
    )


def list_fields_filled() -> List[Dict[str, Any]]:
    return _read(
        'code_all_fields_filled',
        db.session.query(CodeAllFieldsFilled).order_by(CodeAllFieldsFilled.filled_at.desc())
    )


def list_form_submissions() -> List[Dict[str, Any]]:
    return _read(
        'form_submissions',
        db.session.query(FormSubmission).order_by(FormSubmission.submitted_at.desc())
    )


# ==================== ENRICHED READS ====================

def enriched_code_opens() -> List[Dict[str, Any]]:
    opens = list_code_opens()
    return enrich_rows(opens, load_code_lookup())


def enriched_input_events() -> List[Dict[str, Any]]:
    events = list_input_events()
    return enrich_rows(events, load_code_lookup())


def enriched_fields_filled() -> List[Dict[str, Any]]:
    filled = list_fields_filled()
    return enrich_rows(filled, load_code_lookup())


def enriched_form_submissions() -> List[Dict[str, Any]]:
    submissions = list_form_submissions()
    return normalize_submissions(submissions, load_code_lookup())
