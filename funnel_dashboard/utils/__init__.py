"""
Utility modules for the funnel dashboard.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    database_error,
    internal_error
)
from .exceptions import (
    FunnelDashboardError,
    DatastoreError,
    ValidationError
)
