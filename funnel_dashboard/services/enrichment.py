"""
Code -> contact enrichment.

Every event table only carries a `code`. The contact behind a code lives in
the discount and referral tables, so each response merges both into one
lookup and left-joins it onto the primary rows.
"""
import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Any, Iterable, List, Mapping, Optional

from ..models.events import FormSubmission

logger = logging.getLogger(__name__)

UNKNOWN = 'Unknown'

SOURCE_DISCOUNT = 'discount'
SOURCE_REFERRAL = 'referral'
SOURCE_SUBMISSION = 'submission'


@dataclass(frozen=True)
class CodeContact:
    """Contact details for a code and the table they came from."""
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    source: str


def build_code_lookup(
    discounts: Iterable[Mapping[str, Any]],
    referrals: Iterable[Mapping[str, Any]]
) -> Mapping[str, CodeContact]:
    """
    Merge discount and referral rows into a read-only code -> contact map.

    Referral rows are applied after discount rows, so a code present in
    both tables reports the referral contact and source.
    """
    lookup: Dict[str, CodeContact] = {}

    for source, rows in ((SOURCE_DISCOUNT, discounts), (SOURCE_REFERRAL, referrals)):
        for row in rows:
            lookup[row['code']] = CodeContact(
                name=row.get('name'),
                email=row.get('email'),
                phone=row.get('phone'),
                source=source,
            )

    return MappingProxyType(lookup)


def enrich_rows(
    rows: Iterable[Mapping[str, Any]],
    lookup: Mapping[str, CodeContact],
    default_source: str = UNKNOWN
) -> List[Dict[str, Any]]:
    """Attach name/email/phone/source to each row, defaulting to Unknown."""
    enriched = []
    for row in rows:
        contact = lookup.get(row.get('code'))
        enriched.append({
            **row,
            'name': (contact and contact.name) or UNKNOWN,
            'email': (contact and contact.email) or UNKNOWN,
            'phone': (contact and contact.phone) or UNKNOWN,
            'source': contact.source if contact else default_source,
        })
    return enriched


def parse_submission_snapshot(raw: Any) -> Dict[str, Any]:
    """
    Decode a submission blob that may be JSON text or an already-decoded object.

    Malformed JSON is logged and treated as an empty blob.
    """
    if not raw:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, (str, bytes)):
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.error('Error parsing submission_snapshot: %s', e)
            return {}
        if isinstance(parsed, dict):
            return parsed
        logger.error('submission_snapshot is not a JSON object: %r', type(parsed).__name__)
    return {}


def normalize_submission(
    row: Mapping[str, Any],
    lookup: Mapping[str, CodeContact]
) -> Dict[str, Any]:
    """
    Shape a raw form_submissions row for the API.

    submission_data is the decoded blob overlaid with the direct columns.
    Contact fields prefer the code lookup, then the direct columns.
    """
    submission_data = parse_submission_snapshot(row.get('submission_snapshot'))
    for field in FormSubmission.DIRECT_FIELDS:
        submission_data[field] = row.get(field)

    contact = lookup.get(row.get('code'))
    return {
        'id': row.get('id'),
        'code': row.get('code'),
        'submitted_at': row.get('submitted_at'),
        'submission_data': submission_data,
        'name': (contact and contact.name) or row.get('name') or UNKNOWN,
        'email': (contact and contact.email) or row.get('email') or UNKNOWN,
        'phone': (contact and contact.phone) or row.get('phone') or UNKNOWN,
        'source': contact.source if contact else SOURCE_SUBMISSION,
    }


def normalize_submissions(
    rows: Iterable[Mapping[str, Any]],
    lookup: Mapping[str, CodeContact]
) -> List[Dict[str, Any]]:
    return [normalize_submission(row, lookup) for row in rows]
