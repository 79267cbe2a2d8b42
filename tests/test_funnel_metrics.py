"""
Tests for funnel metric derivations.

Tests cover:
- Percentages with zero denominators
- Per-code completion on distinct code sets
- Code analytics totals and conversions
- Top active codes and tie order
- Day buckets and zero-filled series
- Date range inclusivity, code and text filters
- Trailing 24h recency
"""
import pytest
from datetime import datetime, timedelta, timezone

from funnel_dashboard.services.funnel_metrics import (
    DateRange,
    code_analytics,
    day_key,
    funnel_rates,
    matches_code,
    per_code_completion,
    percent,
    recent_count,
    resolve_timezone,
    series_by_day,
    text_matches,
    to_datetime,
    top_active_codes,
)
from funnel_dashboard.utils.exceptions import ValidationError


class TestPercent:
    """Tests for percent and funnel_rates."""

    def test_basic_ratio(self):
        assert percent(1, 4) == '25.0'
        assert percent(2, 3) == '66.7'

    def test_zero_denominator(self):
        assert percent(5, 0) == '0.0'
        assert percent(0, 0) == '0.0'

    def test_funnel_rates(self):
        rates = funnel_rates(open_count=10, filled_count=4, submit_count=1)
        assert rates['open_to_filled_rate'] == '40.0'
        assert rates['filled_to_submit_rate'] == '25.0'
        assert rates['open_to_submit_rate'] == '10.0'

    def test_funnel_rates_with_no_events(self):
        rates = funnel_rates(0, 0, 0)
        assert rates == {
            'open_to_filled_rate': '0.0',
            'filled_to_submit_rate': '0.0',
            'open_to_submit_rate': '0.0',
        }


class TestPerCodeCompletion:
    """Tests for per_code_completion."""

    def test_distinct_code_sets(self):
        """Opens {A, A, B} and submissions {A, C}: one of two opened codes completed."""
        opens = [{'code': 'A'}, {'code': 'A'}, {'code': 'B'}]
        submissions = [{'code': 'A'}, {'code': 'C'}]
        assert per_code_completion(opens, submissions) == {
            'opened_codes_count': 2,
            'success_codes_count': 1,
            'rate_percent': '50.0',
        }

    def test_repeat_submissions_count_once(self):
        opens = [{'code': 'A'}]
        submissions = [{'code': 'A'}, {'code': 'A'}, {'code': 'A'}]
        assert per_code_completion(opens, submissions)['rate_percent'] == '100.0'

    def test_no_opens(self):
        result = per_code_completion([], [{'code': 'A'}])
        assert result['opened_codes_count'] == 0
        assert result['rate_percent'] == '0.0'

    def test_differs_from_event_ratio(self):
        opens = [{'code': 'A'}] * 4
        submissions = [{'code': 'A'}]
        assert per_code_completion(opens, submissions)['rate_percent'] == '100.0'
        assert funnel_rates(len(opens), 1, len(submissions))['open_to_submit_rate'] == '25.0'


class TestCodeAnalytics:
    """Tests for code_analytics."""

    def test_totals_and_conversions(self):
        discounts = [{'code': 'D1'}, {'code': 'D2'}, {'code': 'D3'}, {'code': 'D4'}]
        referrals = [{'code': 'R1'}]
        opens = [{'code': 'D1'}, {'code': 'D1'}, {'code': 'R1'}, {'code': 'X'}]

        result = code_analytics(discounts, referrals, opens)

        assert result['totals'] == {
            'totalGeneratedCodes': 5,
            'totalDiscountCodes': 4,
            'totalReferralCodes': 1,
            'totalUniqueOpens': 3,
            'totalOpensCount': 4,
        }
        assert result['conversions'] == {
            'discountOpens': 1,
            'referralOpens': 1,
            'discountConversionRate': '25.0%',
            'referralConversionRate': '100.0%',
            'overallConversionRate': '60.0%',
            'opensPerCode': '1.3',
        }

    def test_empty_tables(self):
        result = code_analytics([], [], [])
        assert result['totals']['totalGeneratedCodes'] == 0
        assert result['conversions']['discountConversionRate'] == '0.0%'
        assert result['conversions']['referralConversionRate'] == '0.0%'
        assert result['conversions']['overallConversionRate'] == '0.0%'
        assert result['conversions']['opensPerCode'] == '0.0'


class TestTopActiveCodes:
    """Tests for top_active_codes."""

    def _events(self, *codes):
        return [{'code': code} for code in codes]

    def test_sorted_by_count(self):
        events = self._events('C', 'A', 'A', 'C', 'B', 'A')
        assert top_active_codes(events) == [
            {'code': 'A', 'count': 3},
            {'code': 'C', 'count': 2},
            {'code': 'B', 'count': 1},
        ]

    def test_ties_keep_first_occurrence_order(self):
        """Counts {A: 5, B: 5, C: 3}: A and B lead, in the order they first appear."""
        events = self._events(*('A' * 5 + 'B' * 5 + 'C' * 3))
        assert [item['code'] for item in top_active_codes(events)] == ['A', 'B', 'C']

        events = self._events(*('C' * 3 + 'B' * 5 + 'A' * 5))
        assert [item['code'] for item in top_active_codes(events)] == ['B', 'A', 'C']

    def test_repeatable(self):
        events = self._events(*'ABABCDDEEFF')
        assert top_active_codes(events) == top_active_codes(list(events))

    def test_limit(self):
        events = self._events(*'ABCDEFG')
        assert len(top_active_codes(events)) == 5
        assert len(top_active_codes(events, n=2)) == 2


class TestDayBuckets:
    """Tests for day_key and series_by_day."""

    def test_midnight_boundary_splits_days(self):
        assert day_key('2024-01-01T23:59:00Z') == '2024-01-01'
        assert day_key('2024-01-02T00:01:00Z') == '2024-01-02'

    def test_zero_padded(self):
        assert day_key(datetime(2024, 3, 5, 12, 0)) == '2024-03-05'

    def test_local_timezone(self):
        eastern = timezone(timedelta(hours=-5))
        assert day_key('2024-01-02T03:00:00Z', eastern) == '2024-01-01'

    def test_series_union_and_zero_fill(self):
        opens = [
            {'opened_at': '2024-01-02T10:00:00Z'},
            {'opened_at': '2024-01-01T10:00:00Z'},
            {'opened_at': '2024-01-01T11:00:00Z'},
        ]
        submissions = [{'submitted_at': '2024-01-03T09:00:00Z'}]

        series = series_by_day(opens, submissions)

        assert series['days'] == ['2024-01-01', '2024-01-02', '2024-01-03']
        assert series['opens'] == [
            {'day': '2024-01-01', 'value': 2},
            {'day': '2024-01-02', 'value': 1},
            {'day': '2024-01-03', 'value': 0},
        ]
        assert series['submissions'] == [
            {'day': '2024-01-01', 'value': 0},
            {'day': '2024-01-02', 'value': 0},
            {'day': '2024-01-03', 'value': 1},
        ]

    def test_empty_series(self):
        assert series_by_day([], []) == {'days': [], 'opens': [], 'submissions': []}


class TestDateRange:
    """Tests for DateRange."""

    def test_end_of_day_is_inclusive(self):
        date_range = DateRange.from_strings('', '2024-01-01')
        assert date_range.contains('2024-01-01T23:59:59.999+00:00')
        assert not date_range.contains('2024-01-02T00:00:00.000+00:00')

    def test_start_of_day_is_inclusive(self):
        date_range = DateRange.from_strings('2024-01-02', '')
        assert date_range.contains('2024-01-02T00:00:00Z')
        assert not date_range.contains('2024-01-01T23:59:59.999Z')

    def test_open_range_matches_everything(self):
        date_range = DateRange.from_strings('', '')
        assert date_range.is_open
        assert date_range.contains('1999-12-31T00:00:00Z')

    def test_naive_timestamps_are_utc(self):
        date_range = DateRange.from_strings('2024-01-01', '2024-01-01')
        assert date_range.contains(datetime(2024, 1, 1, 23, 59, 59))
        assert not date_range.contains(datetime(2024, 1, 2, 0, 0, 0))

    def test_invalid_date(self):
        with pytest.raises(ValidationError) as exc_info:
            DateRange.from_strings('2024-13-45', '')
        assert exc_info.value.field == 'from'

    def test_bounds_follow_timezone(self):
        eastern = timezone(timedelta(hours=-5))
        date_range = DateRange.from_strings('2024-01-01', '2024-01-01', eastern)
        assert date_range.contains('2024-01-02T04:59:00Z')
        assert not date_range.contains('2024-01-02T05:00:00Z')


class TestFilters:
    """Tests for matches_code and text_matches."""

    def test_code_query_is_case_insensitive_substring(self):
        assert matches_code('SPRING-24', 'ring')
        assert matches_code('SPRING-24', '')
        assert not matches_code('SPRING-24', 'fall')

    def test_text_matches_any_column(self):
        assert text_matches('ALICE', 'D1', 'alice@example.com', None)
        assert text_matches('  d1 ', 'D1', 'x')
        assert not text_matches('bob', 'D1', 'alice')

    def test_blank_text_matches_all(self):
        assert text_matches('   ', 'anything')


class TestRecentCount:
    """Tests for recent_count."""

    def test_trailing_window(self):
        now = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
        rows = [
            {'opened_at': '2024-01-10T11:00:00Z'},
            {'opened_at': '2024-01-09T12:00:01Z'},
            {'opened_at': '2024-01-09T12:00:00Z'},
            {'opened_at': '2024-01-01T00:00:00Z'},
        ]
        assert recent_count(rows, 'opened_at', now) == 2


class TestTimeHelpers:
    """Tests for to_datetime and resolve_timezone."""

    def test_parses_zulu_suffix(self):
        assert to_datetime('2024-01-01T10:00:00Z') == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)

    def test_empty(self):
        assert to_datetime(None) is None
        assert to_datetime('') is None

    def test_utc_needs_no_tz_database(self):
        assert resolve_timezone('UTC') is timezone.utc
        assert resolve_timezone('') is timezone.utc
