"""
Plain-text templates for the weekly emails.

Overridden subjects and bodies may use $first_name and $form_url
placeholders; anything else is left as written.
"""

from dataclasses import dataclass
from string import Template
from typing import Optional


@dataclass
class EmailTemplate:
    subject: str
    body: str


def prompt_email(first_name: str, form_url: str, sender_name: str = "Weekly Feedback") -> EmailTemplate:
    """Start-of-cycle prompt sent to every active member."""
    return EmailTemplate(
        subject="Weekly Feedback Time",
        body=f"""Hi {first_name},

It's time for your weekly feedback! Please take a few minutes to share your accomplishments, blockers, and priorities.

Submit here: {form_url}

Please submit by Thursday to be included in the weekly report.

Thanks,
{sender_name}""",
    )


def reminder_email(first_name: str, form_url: str, sender_name: str = "Weekly Feedback") -> EmailTemplate:
    """Follow-up sent only to members who have not submitted."""
    return EmailTemplate(
        subject="Reminder: Weekly Feedback Due Today",
        body=f"""Hi {first_name},

This is a gentle reminder that we haven't received your weekly feedback yet. The report will be generated soon, and we'd love to include your updates!

Submit here: {form_url}

Takes only 5 minutes. Your input helps keep the team connected.

Thanks,
{sender_name}""",
    )


TEMPLATES = {
    "prompt": prompt_email,
    "reminder": reminder_email,
}


def render_email(
    template_type: str,
    first_name: str,
    form_url: str,
    sender_name: str = "Weekly Feedback",
    subject: Optional[str] = None,
    body: Optional[str] = None,
) -> EmailTemplate:
    """
    Build a message from a standard template, applying per-call overrides.

    Raises:
        KeyError: unknown template type
    """
    standard = TEMPLATES[template_type](first_name, form_url, sender_name)
    values = {"first_name": first_name, "form_url": form_url, "sender_name": sender_name}
    return EmailTemplate(
        subject=Template(subject).safe_substitute(values) if subject else standard.subject,
        body=Template(body).safe_substitute(values) if body else standard.body,
    )
