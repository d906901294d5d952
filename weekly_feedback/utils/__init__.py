"""Utility modules for Weekly Feedback."""

from .datetime_utils import (
    Period,
    get_local_tz,
    get_local_now,
    to_naive_local,
    to_aware_utc,
    period_of,
    current_period,
    previous_period,
    is_valid_period,
    get_week_start_date,
    get_week_end_date,
)

from .validation import (
    ValidationResult,
    normalize_email,
    validate_email,
    email_domain,
    is_domain_allowed,
    first_name_of,
)

__all__ = [
    # Datetime utilities
    "Period",
    "get_local_tz",
    "get_local_now",
    "to_naive_local",
    "to_aware_utc",
    "period_of",
    "current_period",
    "previous_period",
    "is_valid_period",
    "get_week_start_date",
    "get_week_end_date",
    # Validation utilities
    "ValidationResult",
    "normalize_email",
    "validate_email",
    "email_domain",
    "is_domain_allowed",
    "first_name_of",
]
