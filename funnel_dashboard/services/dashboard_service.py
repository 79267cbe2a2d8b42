"""
Dashboard Service for the funnel dashboard.

Provides the data behind the dashboard page and its JSON endpoint:
- Snapshot loading with per-dataset error capture
- Global filters (date range + code query)
- Contact resolution per code
- Funnel metrics, per-code completion, day series, top codes
- Per-table quick filters

The service never mutates its snapshot; every property is derived from it.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Dict, Any, List, Optional, Tuple

from . import datasets
from .enrichment import (
    SOURCE_DISCOUNT, SOURCE_REFERRAL, SOURCE_SUBMISSION,
    build_code_lookup, enrich_rows, normalize_submissions
)
from .funnel_metrics import (
    DateRange, funnel_rates, matches_code, per_code_completion,
    recent_count, series_by_day, text_matches, top_active_codes
)
from ..utils.exceptions import DatastoreError

logger = logging.getLogger(__name__)

# Dataset name -> (reader in the datasets module, timestamp field used by the date filter)
DATASETS: Dict[str, Tuple[str, Optional[str]]] = {
    'discounts': ('list_discount_codes', None),
    'referrals': ('list_referral_codes', None),
    'opens': ('list_code_opens', 'opened_at'),
    'input_events': ('list_input_events', 'changed_at'),
    'fields_filled': ('list_fields_filled', 'filled_at'),
    'submissions': ('list_form_submissions', 'submitted_at'),
}

# Event datasets and how they are joined with the code lookup
ENRICHERS = {
    'opens': enrich_rows,
    'input_events': enrich_rows,
    'fields_filled': enrich_rows,
    'submissions': normalize_submissions,
}

CONTACT_FIELDS = ('name', 'email', 'phone')


@dataclass
class DashboardFilters:
    """Global filters plus the per-table quick filters."""
    date_from: str = ''
    date_to: str = ''
    code_query: str = ''
    opens_query: str = ''
    events_query: str = ''
    submissions_query: str = ''
    discounts_query: str = ''
    referrals_query: str = ''

    @classmethod
    def from_args(cls, args) -> 'DashboardFilters':
        """Build filters from request query parameters."""
        return cls(
            date_from=args.get('from', '').strip(),
            date_to=args.get('to', '').strip(),
            code_query=args.get('code', '').strip(),
            opens_query=args.get('opens_q', ''),
            events_query=args.get('events_q', ''),
            submissions_query=args.get('subs_q', ''),
            discounts_query=args.get('discount_q', ''),
            referrals_query=args.get('referral_q', ''),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            'from': self.date_from,
            'to': self.date_to,
            'code': self.code_query,
            'opens_q': self.opens_query,
            'events_q': self.events_query,
            'subs_q': self.submissions_query,
            'discount_q': self.discounts_query,
            'referral_q': self.referrals_query,
        }


@dataclass
class DashboardSnapshot:
    """Complete, unfiltered result sets as fetched for one page view."""
    opens: List[Dict[str, Any]] = field(default_factory=list)
    input_events: List[Dict[str, Any]] = field(default_factory=list)
    fields_filled: List[Dict[str, Any]] = field(default_factory=list)
    submissions: List[Dict[str, Any]] = field(default_factory=list)
    discounts: List[Dict[str, Any]] = field(default_factory=list)
    referrals: List[Dict[str, Any]] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)


def load_snapshot() -> DashboardSnapshot:
    """
    Fetch every dataset independently.

    A failing dataset is left empty with its error recorded; the others
    still load. The code lookup is built once from the reference rows read
    here, so each table is queried exactly once.
    """
    snapshot = DashboardSnapshot()
    for name, (reader, _) in DATASETS.items():
        try:
            setattr(snapshot, name, getattr(datasets, reader)())
        except DatastoreError as e:
            logger.warning('Dashboard dataset %s unavailable: %s', name, e.message)
            snapshot.errors[name] = e.message

    lookup = build_code_lookup(snapshot.discounts, snapshot.referrals)
    for name, enrich in ENRICHERS.items():
        setattr(snapshot, name, enrich(getattr(snapshot, name), lookup))
    return snapshot


class DashboardService:
    """
    Derived dashboard data for one snapshot and one set of filters.

    Usage:
        service = DashboardService(load_snapshot(), filters, tz=timezone.utc)
        service.metrics()
        service.series()
    """

    def __init__(
        self,
        snapshot: DashboardSnapshot,
        filters: DashboardFilters = None,
        tz: tzinfo = timezone.utc,
        now: datetime = None,
        top_n: int = 5,
        table_limit: int = 50
    ):
        self.snapshot = snapshot
        self.filters = filters or DashboardFilters()
        self.tz = tz
        self.now = now or datetime.now(timezone.utc)
        self.top_n = top_n
        self.table_limit = table_limit
        # Raises ValidationError on malformed dates
        self.date_range = DateRange.from_strings(self.filters.date_from, self.filters.date_to, tz)
        self._filtered = None
        self._contacts = None

    # ==================== CONTACTS ====================

    @property
    def contact_by_code(self) -> Dict[str, Dict[str, str]]:
        """
        Contact per code.

        Discount and referral rows are authoritative (referral applied last).
        Submission data only fills fields that are still missing.
        """
        if self._contacts is not None:
            return self._contacts

        contacts: Dict[str, Dict[str, str]] = {}

        def put(code, contact, overwrite):
            current = contacts.setdefault(code, {})
            for key, value in contact.items():
                if value and (overwrite or not current.get(key)):
                    current[key] = value

        for source, rows in ((SOURCE_DISCOUNT, self.snapshot.discounts), (SOURCE_REFERRAL, self.snapshot.referrals)):
            for row in rows:
                put(row['code'], {f: row.get(f) for f in CONTACT_FIELDS}, overwrite=True)
                contacts[row['code']]['source'] = source

        for row in self.snapshot.submissions:
            data = row.get('submission_data') or {}
            put(row['code'], {
                'name': data.get('name') or data.get('full_name'),
                'email': data.get('email'),
                'phone': data.get('phone') or data.get('phone_number'),
            }, overwrite=False)
            contacts[row['code']].setdefault('source', SOURCE_SUBMISSION)

        self._contacts = contacts
        return contacts

    def contact(self, code: str) -> Dict[str, str]:
        return self.contact_by_code.get(code, {})

    # ==================== FILTERING ====================

    @property
    def filtered(self) -> Dict[str, List[Dict[str, Any]]]:
        """Datasets after the global date range and code query."""
        if self._filtered is not None:
            return self._filtered

        result = {}
        for name, (_, time_field) in DATASETS.items():
            rows = getattr(self.snapshot, name)
            result[name] = [
                row for row in rows
                if matches_code(row.get('code'), self.filters.code_query)
                and (time_field is None or self.date_range.contains(row.get(time_field)))
            ]
        self._filtered = result
        return result

    # ==================== METRICS ====================

    def per_code_completion(self) -> Dict[str, Any]:
        return per_code_completion(self.filtered['opens'], self.filtered['submissions'])

    def metrics(self) -> Dict[str, Any]:
        filtered = self.filtered
        total_opens = len(filtered['opens'])
        total_fields_filled = len(filtered['fields_filled'])
        total_submissions = len(filtered['submissions'])

        return {
            'unique_codes': len({row['code'] for row in filtered['opens']}),
            'total_opens': total_opens,
            'total_input_events': len(filtered['input_events']),
            'total_fields_filled': total_fields_filled,
            'total_submissions': total_submissions,
            'total_discounts': len(filtered['discounts']),
            'total_referrals': len(filtered['referrals']),
            **funnel_rates(total_opens, total_fields_filled, total_submissions),
            # Last 24h regardless of the date filter
            'recent_opens': recent_count(self.snapshot.opens, 'opened_at', self.now),
            'top_codes': top_active_codes(filtered['input_events'], self.top_n),
        }

    def series(self) -> Dict[str, Any]:
        return series_by_day(self.filtered['opens'], self.filtered['submissions'], self.tz)

    # ==================== TABLES ====================

    def _contact_values(self, code: str) -> List[str]:
        contact = self.contact(code)
        return [contact.get(f) for f in CONTACT_FIELDS]

    def opens_table(self) -> List[Dict[str, Any]]:
        query = self.filters.opens_query
        return self._limit(
            self._with_contact(row) for row in self.filtered['opens']
            if text_matches(query, row['code'], *self._contact_values(row['code']))
        )

    def input_events_table(self) -> List[Dict[str, Any]]:
        query = self.filters.events_query
        return self._limit(
            self._with_contact(row) for row in self.filtered['input_events']
            if text_matches(
                query, row['code'], row.get('field_name'), row.get('input_value'),
                *self._contact_values(row['code'])
            )
        )

    def submissions_table(self) -> List[Dict[str, Any]]:
        query = self.filters.submissions_query
        rows = []
        for row in self.filtered['submissions']:
            data = row.get('submission_data') or {}
            contact = self.contact(row['code'])
            name = contact.get('name') or data.get('name') or data.get('full_name')
            email = contact.get('email') or data.get('email')
            phone = contact.get('phone') or data.get('phone') or data.get('phone_number')
            if text_matches(query, row['code'], name, email, phone):
                rows.append({
                    **row,
                    'contact_name': name or '',
                    'contact_email': email or '',
                    'contact_phone': phone or '',
                })
        return self._limit(rows)

    def code_table(self, dataset: str) -> List[Dict[str, Any]]:
        """Discount or referral codes after the quick filter."""
        query = self.filters.discounts_query if dataset == 'discounts' else self.filters.referrals_query
        return self._limit(
            row for row in self.filtered[dataset]
            if text_matches(query, row['code'], row.get('name'), row.get('email'), row.get('phone'))
        )

    def _with_contact(self, row: Dict[str, Any]) -> Dict[str, Any]:
        contact = self.contact(row['code'])
        return {
            **row,
            'contact_name': contact.get('name', ''),
            'contact_email': contact.get('email', ''),
            'contact_phone': contact.get('phone', ''),
        }

    def _limit(self, rows) -> List[Dict[str, Any]]:
        limited = []
        for row in rows:
            if len(limited) >= self.table_limit:
                break
            limited.append(row)
        return limited

    # ==================== SUMMARY ====================

    def summary(self) -> Dict[str, Any]:
        """Everything the dashboard renders, as plain JSON-able data."""
        return {
            'filters': self.filters.to_dict(),
            'metrics': self.metrics(),
            'per_code_completion': self.per_code_completion(),
            'series': self.series(),
            'tables': {
                'opens': self.opens_table(),
                'input_events': self.input_events_table(),
                'submissions': self.submissions_table(),
                'discounts': self.code_table('discounts'),
                'referrals': self.code_table('referrals'),
            },
            'errors': dict(self.snapshot.errors),
        }
