"""Protocol implemented by mail provider adapters."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from recipient_suggest.models import EmailAlias, ThreadDetail, ThreadPage

FOLDER_INBOX = "inbox"
FOLDER_SENT = "sent"
FOLDER_DRAFT = "draft"
FOLDER_TRASH = "trash"
FOLDER_SPAM = "spam"


@runtime_checkable
class MailProvider(Protocol):
    """Read-only view of a mailbox used for contact discovery."""

    async def list_folder(
        self,
        folder: str,
        query: str = "",
        max_results: int = 100,
        page_token: str | None = None,
    ) -> ThreadPage:
        """List one page of threads in ``folder``.

        A ``None`` or empty ``next_page_token`` on the returned page means the
        listing is exhausted. Calling again with the same token must return the
        same page.
        """
        ...

    async def get_thread_detail(self, thread_id: str) -> ThreadDetail:
        """Fetch the addressing metadata of every message in a thread."""
        ...

    async def get_email_aliases(self) -> list[EmailAlias]:
        """Return the send-as identities configured on the account."""
        ...
