"""
Admin detection - email allow-list lookup.

Admins are never stored; status is derived per request.
"""

from calculator_api.config import settings


def is_admin(email: str | None, allow_list: list[str] | None = None) -> bool:
    """
    Check whether an email is on the admin allow-list.

    Comparison is case-insensitive and ignores surrounding whitespace.

    Args:
        email: User email from the users service
        allow_list: Normalized admin emails (defaults to ADMIN_EMAILS)
    """
    if not email:
        return False
    admins = settings.admin_email_list if allow_list is None else allow_list
    return email.strip().lower() in admins
