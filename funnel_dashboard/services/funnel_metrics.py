"""
Funnel metric derivations.

Everything here is a pure function of already-fetched rows. Filters and
metrics are recomputed from the full snapshot on every call, so changing a
filter never has to undo earlier results.

Funnel: Open -> Fields Filled -> Submission
"""
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Any, Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo

from ..utils.exceptions import ValidationError

RECENT_WINDOW = timedelta(hours=24)


# ==================== TIME HELPERS ====================

def resolve_timezone(name: str) -> tzinfo:
    """Map a zone name to a tzinfo; UTC needs no tz database."""
    if not name or name.upper() == 'UTC':
        return timezone.utc
    return ZoneInfo(name)


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (or pass a datetime through) as an aware datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        # The datastore stores UTC
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def day_key(value: Any, tz: tzinfo = timezone.utc) -> str:
    """Calendar day of a timestamp in `tz`, as zero-padded YYYY-MM-DD."""
    return to_datetime(value).astimezone(tz).strftime('%Y-%m-%d')


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range: 00:00 of the first day to 23:59:59.999 of the last."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_strings(cls, date_from: str = '', date_to: str = '', tz: tzinfo = timezone.utc) -> 'DateRange':
        start = end = None
        if date_from:
            start = datetime.combine(_parse_day(date_from, 'from'), time.min, tzinfo=tz)
        if date_to:
            next_day = _parse_day(date_to, 'to') + timedelta(days=1)
            end = datetime.combine(next_day, time.min, tzinfo=tz) - timedelta(milliseconds=1)
        return cls(start=start, end=end)

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, value: Any) -> bool:
        if self.is_open:
            return True
        moment = to_datetime(value)
        if moment is None:
            return False
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True


def _parse_day(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"'{value}' is not a valid date (expected YYYY-MM-DD)", field)


# ==================== FILTERS ====================

def matches_code(code: Optional[str], query: str) -> bool:
    """Case-insensitive code substring match; an empty query matches everything."""
    if not query:
        return True
    return query.lower() in (code or '').lower()


def text_matches(query: str, *values: Any) -> bool:
    """Per-table quick filter over any of the given columns."""
    needle = (query or '').strip().lower()
    if not needle:
        return True
    return any(needle in str(value).lower() for value in values if value is not None)


# ==================== RATES ====================

def percent(numerator: float, denominator: float) -> str:
    """Ratio as a one-decimal percentage string; a zero denominator gives '0.0'."""
    if not denominator:
        return '0.0'
    return f'{numerator / denominator * 100:.1f}'


def funnel_rates(open_count: int, filled_count: int, submit_count: int) -> Dict[str, str]:
    """Step-to-step conversion of the funnel, by event count."""
    return {
        'open_to_filled_rate': percent(filled_count, open_count),
        'filled_to_submit_rate': percent(submit_count, filled_count),
        # Event-level ratio; not the same thing as the per-code completion rate
        'open_to_submit_rate': percent(submit_count, open_count),
    }


def per_code_completion(
    opens: Iterable[Mapping[str, Any]],
    submissions: Iterable[Mapping[str, Any]]
) -> Dict[str, Any]:
    """
    Share of distinct opened codes that also submitted.

    Counts codes, not events: a code opened five times and submitted once
    is one success out of one.
    """
    opened_codes = {row['code'] for row in opens}
    submitted_codes = {row['code'] for row in submissions}
    success = len(opened_codes & submitted_codes)
    return {
        'opened_codes_count': len(opened_codes),
        'success_codes_count': success,
        'rate_percent': percent(success, len(opened_codes)),
    }


def code_analytics(
    discounts: List[Mapping[str, Any]],
    referrals: List[Mapping[str, Any]],
    opens: List[Mapping[str, Any]]
) -> Dict[str, Any]:
    """Totals and open conversion per code source for the analytics endpoint."""
    total_discount_codes = len(discounts)
    total_referral_codes = len(referrals)
    total_generated_codes = total_discount_codes + total_referral_codes

    discount_codes = {row['code'] for row in discounts}
    referral_codes = {row['code'] for row in referrals}
    opened_codes = {row['code'] for row in opens}

    discount_opens = len(discount_codes & opened_codes)
    referral_opens = len(referral_codes & opened_codes)
    total_unique_opens = len(opened_codes)
    total_opens_count = len(opens)

    return {
        'totals': {
            'totalGeneratedCodes': total_generated_codes,
            'totalDiscountCodes': total_discount_codes,
            'totalReferralCodes': total_referral_codes,
            'totalUniqueOpens': total_unique_opens,
            'totalOpensCount': total_opens_count,
        },
        'conversions': {
            'discountOpens': discount_opens,
            'referralOpens': referral_opens,
            'discountConversionRate': f'{percent(discount_opens, total_discount_codes)}%',
            'referralConversionRate': f'{percent(referral_opens, total_referral_codes)}%',
            'overallConversionRate': f'{percent(total_unique_opens, total_generated_codes)}%',
            'opensPerCode': (
                f'{total_opens_count / total_unique_opens:.1f}' if total_unique_opens else '0.0'
            ),
        },
    }


# ==================== ACTIVITY ====================

def top_active_codes(events: Iterable[Mapping[str, Any]], n: int = 5) -> List[Dict[str, Any]]:
    """
    Codes with the most input events.

    Ties keep the order in which codes first appear in `events`.
    """
    counts = Counter(row['code'] for row in events)
    # sorted() is stable, reverse included
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{'code': code, 'count': count} for code, count in ranked[:n]]


def recent_count(
    rows: Iterable[Mapping[str, Any]],
    field: str,
    now: datetime,
    window: timedelta = RECENT_WINDOW
) -> int:
    """Rows whose timestamp lies within `window` before `now`."""
    now = to_datetime(now)
    return sum(1 for row in rows if now - to_datetime(row[field]) < window)


def series_by_day(
    opens: Iterable[Mapping[str, Any]],
    submissions: Iterable[Mapping[str, Any]],
    tz: tzinfo = timezone.utc
) -> Dict[str, Any]:
    """
    Opens and submissions per calendar day.

    Both series cover the union of days present in either input, sorted,
    with zero for days a series has no events.
    """
    opens_by_day = Counter(day_key(row['opened_at'], tz) for row in opens)
    subs_by_day = Counter(day_key(row['submitted_at'], tz) for row in submissions)

    days = sorted(set(opens_by_day) | set(subs_by_day))
    return {
        'days': days,
        'opens': [{'day': day, 'value': opens_by_day.get(day, 0)} for day in days],
        'submissions': [{'day': day, 'value': subs_by_day.get(day, 0)} for day in days],
    }
