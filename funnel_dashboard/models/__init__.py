"""
Database models for the funnel dashboard.
Read-only mappings of the externally owned analytics tables.
"""
from .codes import DiscountCode, ReferralCode
from .events import CodeOpen, CodeInputEvent, CodeAllFieldsFilled, FormSubmission

__all__ = [
    # Contact sources
    'DiscountCode',
    'ReferralCode',
    # Funnel events
    'CodeOpen',
    'CodeInputEvent',
    'CodeAllFieldsFilled',
    'FormSubmission',
]
