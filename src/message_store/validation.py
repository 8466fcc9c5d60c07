"""Email address syntax checks."""

from __future__ import annotations

from collections.abc import Callable

from email_validator import EmailNotValidError, validate_email

EmailValidator = Callable[[str | None], bool]


def is_valid_email_syntax(email: str | None) -> bool:
    """Return True if ``email`` is a syntactically valid address.

    Only the shape ``local-part@domain`` is checked; no DNS lookups are made
    and single-label or reserved domains such as ``mail`` are accepted.
    Empty and missing values are never valid.
    """

    if not email:
        return False
    try:
        validate_email(
            email,
            check_deliverability=False,
            globally_deliverable=False,
            test_environment=True,
        )
    except EmailNotValidError:
        return False
    return True
