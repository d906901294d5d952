"""Weekly Feedback: multi-tenant weekly status collection, reporting and reminders."""

__version__ = "1.0.0"
