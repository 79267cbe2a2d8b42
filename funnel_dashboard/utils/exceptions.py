"""
Custom exceptions for the funnel dashboard.

These exceptions provide more specific error handling than generic Exception,
allowing for better error messages and appropriate HTTP status codes.
"""


class FunnelDashboardError(Exception):
    """Base exception for all funnel dashboard errors."""

    def __init__(self, message: str, code: str = "FUNNEL_DASHBOARD_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class DatastoreError(FunnelDashboardError):
    """A read against the analytics datastore failed."""

    def __init__(self, table: str, original_error: Exception = None):
        self.table = table
        self.original_error = original_error
        message = f"Failed to fetch {table}"
        super().__init__(message, "DATABASE_ERROR")


class ValidationError(FunnelDashboardError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message, "INVALID_FIELD")
