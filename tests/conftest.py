"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from recipient_suggest.exceptions import MailProviderError
from recipient_suggest.models import (
    EmailAlias,
    MailAddress,
    ThreadDetail,
    ThreadMessage,
    ThreadPage,
    ThreadSummary,
)


def _addresses(values: Iterable[str | tuple[str, str]]) -> list[MailAddress]:
    result = []
    for value in values:
        if isinstance(value, tuple):
            result.append(MailAddress(email=value[0], name=value[1]))
        else:
            result.append(MailAddress(email=value))
    return result


def make_message(
    sender: str | tuple[str, str] | None = None,
    to: Iterable[str | tuple[str, str]] = (),
    cc: Iterable[str | tuple[str, str]] = (),
    bcc: Iterable[str | tuple[str, str]] = (),
) -> ThreadMessage:
    """Build a ThreadMessage; addresses may be "a@x.com" or ("a@x.com", "Name")."""

    senders = _addresses([sender]) if sender else []
    return ThreadMessage(
        sender=senders[0] if senders else None,
        to=_addresses(to),
        cc=_addresses(cc),
        bcc=_addresses(bcc),
    )


class FakeMailProvider:
    """In-memory mail provider with call recording and failure injection."""

    def __init__(self) -> None:
        self.folders: dict[str, list[str]] = {}
        self.threads: dict[str, ThreadDetail] = {}
        self.aliases: list[EmailAlias] = []
        self.failing_threads: set[str] = set()
        self.failing_folders: set[str] = set()
        self.endless_folders: set[str] = set()
        self.aliases_fail = False
        self.list_calls: list[tuple[str, str | None, int]] = []
        self.detail_calls: list[str] = []

    def add_thread(self, folder: str, thread_id: str, *messages: ThreadMessage) -> None:
        self.folders.setdefault(folder, []).append(thread_id)
        self.threads[thread_id] = ThreadDetail(id=thread_id, messages=list(messages))

    async def list_folder(
        self,
        folder: str,
        query: str = "",
        max_results: int = 100,
        page_token: str | None = None,
    ) -> ThreadPage:
        self.list_calls.append((folder, page_token, max_results))
        if folder in self.failing_folders:
            raise MailProviderError(f"listing {folder} failed")

        start = int(page_token) if page_token else 0
        if folder in self.endless_folders:
            return ThreadPage(
                threads=[ThreadSummary(id=f"{folder}-{start}")],
                next_page_token=str(start + 1),
            )

        ids = self.folders.get(folder, [])
        chunk = ids[start : start + max_results]
        end = start + max_results
        return ThreadPage(
            threads=[ThreadSummary(id=i) for i in chunk],
            next_page_token=str(end) if end < len(ids) else None,
        )

    async def get_thread_detail(self, thread_id: str) -> ThreadDetail:
        self.detail_calls.append(thread_id)
        if thread_id in self.failing_threads:
            raise MailProviderError(f"thread {thread_id} failed")
        return self.threads.get(thread_id) or ThreadDetail(id=thread_id)

    async def get_email_aliases(self) -> list[EmailAlias]:
        if self.aliases_fail:
            raise MailProviderError("aliases unavailable")
        return list(self.aliases)

    def calls_for(self, folder: str) -> int:
        return sum(1 for call in self.list_calls if call[0] == folder)


@pytest.fixture
def settings(tmp_path):
    """Provide settings tuned for fast tests."""
    from recipient_suggest.config import Settings

    return Settings(
        contacts_db_path=tmp_path / "contacts.sqlite3",
        account_id="acct-1",
        fetch_concurrency=4,
        debounce_seconds=0.01,
        max_retries=0,
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def store(settings):
    """Provide an initialized contact store in a temp directory."""
    from recipient_suggest.contacts import ContactStore

    contact_store = ContactStore(settings.contacts_db_path)
    contact_store.initialize()
    return contact_store


@pytest.fixture
def provider() -> FakeMailProvider:
    """Provide an empty in-memory mail provider."""
    return FakeMailProvider()


@pytest.fixture
def message():
    """Provide the ThreadMessage factory."""
    return make_message


@pytest.fixture
def sample_thread_data() -> dict:
    """Provide a Gmail users.threads.get(format=metadata) response."""
    return {
        "id": "thread789",
        "historyId": "4242",
        "messages": [
            {
                "id": "msg1",
                "threadId": "thread789",
                "labelIds": ["SENT"],
                "payload": {
                    "headers": [
                        {"name": "From", "value": "Me Myself <me@example.com>"},
                        {"name": "To", "value": "Alice <alice@example.com>, bob@example.com"},
                        {"name": "Cc", "value": "carol@example.com"},
                        {"name": "Date", "value": "Mon, 06 Jan 2025 10:00:00 +0000"},
                    ]
                },
            },
            {
                "id": "msg2",
                "threadId": "thread789",
                "labelIds": ["INBOX", "UNREAD"],
                "payload": {
                    "headers": [
                        {"name": "From", "value": "Alice <alice@example.com>"},
                        {"name": "To", "value": "me@example.com"},
                        {"name": "Bcc", "value": "archive@example.com"},
                        {"name": "Date", "value": "not a date"},
                    ]
                },
            },
        ],
    }
