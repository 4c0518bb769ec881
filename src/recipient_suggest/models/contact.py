"""Contact models shared by the extractor, store and resolver."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, computed_field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactObservation(BaseModel):
    """A single weighted sighting of an address."""

    email: str = Field(description="Address as observed (casing preserved)")
    name: str | None = Field(default=None, description="Display name, if observed")
    weight: int = Field(default=1, ge=0, description="Score contributed by this sighting")


class ContactEntry(BaseModel):
    """A ranked contact in an account's contact set.

    Keyed case-insensitively by ``email``; the stored casing is the one first
    seen and is what gets displayed.
    """

    email: str = Field(description="Contact address")
    name: str | None = Field(default=None, description="Display name")
    frequency: int = Field(default=0, ge=0, description="Accumulated interaction score")
    last_interaction_at: datetime = Field(
        default_factory=_utcnow, description="Most recent merge timestamp (UTC)"
    )

    @property
    def key(self) -> str:
        return self.email.lower()


class RecipientSuggestion(BaseModel):
    """A suggestion returned to the autosuggest client."""

    email: str
    name: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_text(self) -> str:
        return f"{self.name} <{self.email}>" if self.name else self.email


class AccountIdentity(BaseModel):
    """The mailbox identity that owns a contact set."""

    account_id: str = Field(description="Account/connection identifier")
    email: str = Field(description="Primary address of the account")
    name: str | None = Field(default=None, description="Account display name")
