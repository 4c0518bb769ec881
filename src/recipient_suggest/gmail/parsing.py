"""Helpers for parsing Gmail thread metadata into provider-neutral models."""

from __future__ import annotations

from datetime import datetime
from email.utils import getaddresses, parsedate_to_datetime
from typing import Any

from recipient_suggest.models import (
    EmailAlias,
    MailAddress,
    ThreadDetail,
    ThreadMessage,
    ThreadPage,
    ThreadSummary,
)


def _header_map(message: dict[str, Any]) -> dict[str, str]:
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    result: dict[str, str] = {}
    for h in headers:
        name = h.get("name")
        value = h.get("value")
        if isinstance(name, str) and isinstance(value, str):
            # Gmail can include duplicates; keep the first for now.
            result.setdefault(name.lower(), value)
    return result


def _parse_address_list(value: str | None) -> list[MailAddress]:
    if not value:
        return []
    # getaddresses returns list[(name, addr)]
    return [
        MailAddress(email=addr, name=name or None)
        for name, addr in getaddresses([value])
        if addr
    ]


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, OverflowError):
        return None


def message_to_thread_message(message: dict[str, Any]) -> ThreadMessage:
    """Convert a Gmail API message (format=metadata) to ThreadMessage.

    Args:
        message: Gmail API message dict.

    Returns:
        ThreadMessage: Addressing metadata only.
    """

    hm = _header_map(message)
    senders = _parse_address_list(hm.get("from"))

    return ThreadMessage(
        sender=senders[0] if senders else None,
        to=_parse_address_list(hm.get("to")),
        cc=_parse_address_list(hm.get("cc")),
        bcc=_parse_address_list(hm.get("bcc")),
        date=_parse_date(hm.get("date")),
    )


def thread_to_detail(thread: dict[str, Any]) -> ThreadDetail:
    """Convert a Gmail users.threads.get response into ThreadDetail."""

    messages = thread.get("messages") or []
    return ThreadDetail(
        id=str(thread.get("id") or ""),
        messages=[message_to_thread_message(m) for m in messages if isinstance(m, dict)],
    )


def list_response_to_page(response: dict[str, Any]) -> ThreadPage:
    """Convert a Gmail users.threads.list response into ThreadPage."""

    threads = response.get("threads") or []
    return ThreadPage(
        threads=[
            ThreadSummary(id=str(t["id"]), history_id=t.get("historyId"))
            for t in threads
            if isinstance(t, dict) and t.get("id")
        ],
        next_page_token=response.get("nextPageToken") or None,
    )


def send_as_to_aliases(response: dict[str, Any]) -> list[EmailAlias]:
    """Convert a Gmail users.settings.sendAs.list response into aliases."""

    aliases: list[EmailAlias] = []
    for entry in response.get("sendAs") or []:
        address = entry.get("sendAsEmail")
        if not isinstance(address, str) or not address:
            continue
        aliases.append(
            EmailAlias(
                email=address,
                name=entry.get("displayName") or None,
                primary=bool(entry.get("isPrimary")),
            )
        )
    return aliases
