"""
Read-side services for the funnel dashboard.
"""
from .dashboard_service import DashboardService, DashboardFilters, DashboardSnapshot, load_snapshot
from .enrichment import CodeContact, build_code_lookup, enrich_rows, normalize_submission

__all__ = [
    'DashboardService',
    'DashboardFilters',
    'DashboardSnapshot',
    'load_snapshot',
    'CodeContact',
    'build_code_lookup',
    'enrich_rows',
    'normalize_submission',
]
