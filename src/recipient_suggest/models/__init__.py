"""Data models for Recipient Suggest.

This module contains Pydantic models for data validation and serialization.
Provider payloads are normalised into these shapes at the adapter boundary.
"""

from recipient_suggest.models.contact import (
    AccountIdentity,
    ContactEntry,
    ContactObservation,
    RecipientSuggestion,
)
from recipient_suggest.models.thread import (
    EmailAlias,
    MailAddress,
    ThreadDetail,
    ThreadMessage,
    ThreadPage,
    ThreadSummary,
)

__all__ = [
    "AccountIdentity",
    "ContactEntry",
    "ContactObservation",
    "EmailAlias",
    "MailAddress",
    "RecipientSuggestion",
    "ThreadDetail",
    "ThreadMessage",
    "ThreadPage",
    "ThreadSummary",
]
