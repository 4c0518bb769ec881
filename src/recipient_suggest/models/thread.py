"""Provider-neutral thread and address models.

Only the fields contact extraction needs are kept. Bodies, labels and other
provider-specific metadata never make it past the adapter.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MailAddress(BaseModel):
    """A single mailbox address with an optional display name."""

    email: str = Field(description="Email address as it appeared in the header")
    name: str | None = Field(default=None, description="Display name, if any")


class ThreadMessage(BaseModel):
    """Addressing metadata for one message in a thread."""

    sender: MailAddress | None = Field(default=None, description="Parsed From address")
    to: list[MailAddress] = Field(default_factory=list, description="To recipients")
    cc: list[MailAddress] = Field(default_factory=list, description="Cc recipients")
    bcc: list[MailAddress] = Field(default_factory=list, description="Bcc recipients")
    date: datetime | None = Field(default=None, description="Parsed Date header")


class ThreadDetail(BaseModel):
    """A fetched thread with its messages."""

    id: str = Field(description="Provider thread ID")
    messages: list[ThreadMessage] = Field(default_factory=list)


class ThreadSummary(BaseModel):
    """A thread reference as returned by a folder listing."""

    id: str = Field(description="Provider thread ID")
    history_id: str | None = Field(default=None, description="Provider history marker")


class ThreadPage(BaseModel):
    """One page of a cursor-based folder listing."""

    threads: list[ThreadSummary] = Field(default_factory=list)
    next_page_token: str | None = Field(
        default=None, description="Cursor for the next page; None when exhausted"
    )


class EmailAlias(BaseModel):
    """A send-as identity configured on the account."""

    email: str
    name: str | None = None
    primary: bool = False
