"""Matching and ordering rules shared by every suggestion path."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar

from recipient_suggest.models import ContactEntry, RecipientSuggestion
from recipient_suggest.utils import normalize_email


class _Addressable(Protocol):
    email: str
    name: str | None


T = TypeVar("T", bound=_Addressable)


def _starts_with(item: _Addressable, needle: str) -> bool:
    if item.email.lower().startswith(needle):
        return True
    return bool(item.name) and item.name.lower().startswith(needle)  # type: ignore[union-attr]


def _contains(item: _Addressable, needle: str) -> bool:
    if needle in item.email.lower():
        return True
    return bool(item.name) and needle in item.name.lower()  # type: ignore[union-attr]


def filter_by_query(items: Sequence[T], query: str) -> list[T]:
    """Keep items whose email or name matches ``query``.

    Prefix matches win; a substring match is only used when no item matches
    by prefix. An empty query matches everything. Input order is preserved.
    """

    needle = (query or "").strip().lower()
    if not needle:
        return list(items)

    prefixed = [item for item in items if _starts_with(item, needle)]
    if prefixed:
        return prefixed
    return [item for item in items if _contains(item, needle)]


def exclude_addresses(items: Iterable[T], exclude: Iterable[str]) -> list[T]:
    """Drop items whose address is already in ``exclude`` (case-insensitive)."""

    excluded = {normalize_email(e) for e in exclude if e}
    if not excluded:
        return list(items)
    return [item for item in items if normalize_email(item.email) not in excluded]


def rank_entries(entries: Iterable[ContactEntry]) -> list[ContactEntry]:
    """Sort by frequency desc, last interaction desc, then email asc."""

    return sorted(
        entries,
        key=lambda e: (-e.frequency, -e.last_interaction_at.timestamp(), e.email.lower()),
    )


def to_suggestion(item: _Addressable) -> RecipientSuggestion:
    return RecipientSuggestion(email=item.email, name=item.name or None)
