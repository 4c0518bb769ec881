"""Turn thread messages into weighted contact observations.

Weights are fixed. Addresses we wrote to from the sent folder count for more
than people who merely wrote to us.
"""

from __future__ import annotations

from collections.abc import Iterable

from recipient_suggest.models import ContactObservation, MailAddress, ThreadMessage
from recipient_suggest.provider import FOLDER_SENT
from recipient_suggest.utils import is_valid_email, normalize_email

# Full index run.
WEIGHT_SENDER = 1
WEIGHT_SENT_TO = 3
WEIGHT_SENT_CC = 2
WEIGHT_SENT_BCC = 2

# Live fallback scan of recent threads.
WEIGHT_FALLBACK_SENT_TO = 2
WEIGHT_FALLBACK_SENT_CC = 1
WEIGHT_FALLBACK_INBOX_SENDER = 1

# Live fallback seeding.
WEIGHT_IDENTITY = 10
WEIGHT_PRIMARY_ALIAS = 9
WEIGHT_ALIAS = 8


def _observe(address: MailAddress | None, weight: int) -> ContactObservation | None:
    if address is None:
        return None
    email = (address.email or "").strip()
    if not is_valid_email(email):
        return None
    return ContactObservation(email=email, name=address.name or None, weight=weight)


def _observe_all(addresses: Iterable[MailAddress], weight: int) -> list[ContactObservation]:
    observations = []
    for address in addresses:
        obs = _observe(address, weight)
        if obs is not None:
            observations.append(obs)
    return observations


def extract_observations(messages: Iterable[ThreadMessage], folder: str) -> list[ContactObservation]:
    """Extract observations from one thread read out of ``folder``.

    Recipients only count when the thread came from the sent folder; the
    sender of every message counts everywhere.

    Args:
        messages: The thread's messages.
        folder: Folder the thread was listed from.

    Returns:
        One observation per valid address role, in message order.
    """

    from_sent = folder.lower() == FOLDER_SENT
    observations: list[ContactObservation] = []

    for message in messages:
        if from_sent:
            observations.extend(_observe_all(message.to, WEIGHT_SENT_TO))
            observations.extend(_observe_all(message.cc, WEIGHT_SENT_CC))
            observations.extend(_observe_all(message.bcc, WEIGHT_SENT_BCC))
        sender = _observe(message.sender, WEIGHT_SENDER)
        if sender is not None:
            observations.append(sender)

    return observations


def extract_sent_recipients(messages: Iterable[ThreadMessage]) -> list[ContactObservation]:
    """Observations for the live fallback's sent scan (to and cc only)."""

    observations: list[ContactObservation] = []
    for message in messages:
        observations.extend(_observe_all(message.to, WEIGHT_FALLBACK_SENT_TO))
        observations.extend(_observe_all(message.cc, WEIGHT_FALLBACK_SENT_CC))
    return observations


def extract_inbox_senders(messages: Iterable[ThreadMessage]) -> list[ContactObservation]:
    """Observations for the live fallback's inbox scan (senders only)."""

    observations: list[ContactObservation] = []
    for message in messages:
        sender = _observe(message.sender, WEIGHT_FALLBACK_INBOX_SENDER)
        if sender is not None:
            observations.append(sender)
    return observations


def accumulate_observations(
    accumulator: dict[str, ContactObservation],
    observations: Iterable[ContactObservation],
) -> dict[str, ContactObservation]:
    """Fold observations into ``accumulator`` keyed by lower-cased email.

    Weights add up. The first casing seen for an address is kept, and a name
    only fills in when none was recorded yet.

    Returns:
        The same ``accumulator`` for chaining.
    """

    for obs in observations:
        key = normalize_email(obs.email)
        existing = accumulator.get(key)
        if existing is None:
            accumulator[key] = obs.model_copy()
            continue
        existing.weight += obs.weight
        if existing.name is None and obs.name:
            existing.name = obs.name
    return accumulator
