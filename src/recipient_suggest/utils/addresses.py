"""Email address helpers shared by extraction, ranking and the client."""

from __future__ import annotations

import re

# One-or-more non-space/non-@, "@", one-or-more non-space/non-@, ".", one-or-more.
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_PASTE_SEPARATORS = re.compile(r"[,;\s]+")


def is_valid_email(value: str | None) -> bool:
    """Return True if ``value`` looks like a deliverable address."""

    if not value:
        return False
    return _EMAIL_RE.match(value) is not None


def normalize_email(value: str) -> str:
    """Canonical key for an address: stripped and lower-cased."""

    return value.strip().lower()


def split_address_list(text: str) -> list[str]:
    """Split pasted text into candidate addresses.

    Separators are commas, semicolons and any whitespace. Empty fragments are
    dropped; no validation happens here.
    """

    return [part.strip() for part in _PASTE_SEPARATORS.split(text or "") if part.strip()]
