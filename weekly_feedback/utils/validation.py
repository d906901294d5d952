"""
Input validation helpers shared by the registry, the settings store and the API.

Validates emails, domains, days and times before anything is written.
"""

import re
import logging
from typing import Iterable, List, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
DOMAIN_PATTERN = re.compile(r'^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)+$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')

VALID_DAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)
VALID_ROLES = ("member", "admin")
VALID_STATUSES = ("active", "inactive")
REPORT_FORMATS = ("markdown", "html", "plain")


@dataclass
class ValidationResult:
    """Result of a validation check."""
    is_valid: bool
    errors: List[str]

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(is_valid=True, errors=[])

    @classmethod
    def failure(cls, errors: List[str]) -> "ValidationResult":
        return cls(is_valid=False, errors=errors)


def normalize_email(email: Optional[str]) -> str:
    """Trim and lower-case an email address."""
    return (email or "").strip().lower()


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def email_domain(email: Optional[str]) -> str:
    """Domain part of an email, lower-cased; empty string if there is none."""
    email = normalize_email(email)
    if "@" not in email:
        return ""
    return email.rsplit("@", 1)[1]


def is_domain_allowed(email: Optional[str], allowed_domains: Iterable[str]) -> bool:
    """Check an email's domain against an allow-list (case-insensitive)."""
    domain = email_domain(email)
    if not domain:
        return False
    return domain in {d.strip().lower() for d in allowed_domains if d}


def normalize_domains(domains: Iterable[str]) -> List[str]:
    """Lower-case, strip and de-duplicate domains while keeping their order."""
    seen = []
    for domain in domains:
        cleaned = (domain or "").strip().lower().lstrip("@")
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def validate_domain(domain: str) -> bool:
    if not domain:
        return False
    return bool(DOMAIN_PATTERN.match(domain.strip().lower()))


def validate_day(day: str) -> bool:
    """Day names are full English weekday names, any case."""
    return bool(day) and day.strip().lower() in VALID_DAYS


def validate_time(value: str) -> bool:
    """Times are 24h HH:MM strings."""
    return bool(value) and bool(TIME_PATTERN.match(value.strip()))


def validate_role(role: str) -> bool:
    return role in VALID_ROLES


def first_name_of(name: Optional[str], first_name: Optional[str] = None) -> str:
    """Explicit first name if set, else the first word of the display name."""
    if first_name and first_name.strip():
        return first_name.strip()
    parts = (name or "").split()
    return parts[0] if parts else "there"
