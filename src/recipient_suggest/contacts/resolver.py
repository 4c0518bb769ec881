"""Query-time recipient suggestions.

Resolution order:

1. A caller-supplied snapshot (the full contact list the client fetched
   earlier), filtered in memory.
2. The account's contact store. An empty result here schedules a background
   reindex.
3. A live scan: the account's own identity and aliases, plus the most recent
   sent and inbox threads, weighted and ranked on the spot.

Every path drops addresses the caller has already chosen.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

import structlog

from recipient_suggest.config import Settings
from recipient_suggest.contacts.extractor import (
    WEIGHT_ALIAS,
    WEIGHT_IDENTITY,
    WEIGHT_PRIMARY_ALIAS,
    accumulate_observations,
    extract_inbox_senders,
    extract_sent_recipients,
)
from recipient_suggest.contacts.fanout import fetch_thread_details
from recipient_suggest.contacts.indexer import ContactIndexer
from recipient_suggest.contacts.ranking import exclude_addresses, filter_by_query, to_suggestion
from recipient_suggest.contacts.store import ContactStore
from recipient_suggest.exceptions import ValidationError
from recipient_suggest.models import AccountIdentity, ContactObservation, RecipientSuggestion, ThreadMessage
from recipient_suggest.provider import FOLDER_INBOX, FOLDER_SENT, MailProvider
from recipient_suggest.utils import is_valid_email

logger = structlog.get_logger()


def _rank_observations(observations: Iterable[ContactObservation]) -> list[ContactObservation]:
    return sorted(observations, key=lambda o: (-o.weight, o.email.lower()))


class SuggestionResolver:
    """Resolves recipient suggestions for one account.

    Built per request with the account's identity, its mail provider and the
    shared store and indexer.
    """

    def __init__(
        self,
        identity: AccountIdentity,
        provider: MailProvider,
        store: ContactStore,
        indexer: ContactIndexer,
        settings: Settings | None = None,
    ) -> None:
        from recipient_suggest.config import get_settings

        self.settings = settings or get_settings()
        self.identity = identity
        self._provider = provider
        self._store = store
        self._indexer = indexer

    async def suggest_recipients(
        self,
        query: str = "",
        limit: int | None = None,
        exclude: Iterable[str] = (),
        snapshot: Sequence[RecipientSuggestion] | None = None,
    ) -> list[RecipientSuggestion]:
        """Return ranked suggestions for ``query``.

        Args:
            query: Typed text; empty asks for the top contacts.
            limit: Maximum suggestions; defaults to settings.suggestion_limit.
            exclude: Addresses already chosen by the caller.
            snapshot: Full contact list held by the client, if any.

        Returns:
            Up to ``limit`` suggestions.

        Raises:
            ContactStoreError: If the store cannot be read.
            ValidationError: If ``limit`` is negative.
        """

        resolved_limit = self.settings.suggestion_limit if limit is None else limit
        if resolved_limit < 0:
            raise ValidationError(f"Suggestion limit must not be negative: {limit}")
        if resolved_limit == 0:
            return []
        chosen = list(exclude)

        if snapshot:
            local = filter_by_query(exclude_addresses(snapshot, chosen), query)
            if local:
                logger.debug("suggestions_from_snapshot", query=query, count=len(local))
                return local[:resolved_limit]

        stored = await asyncio.to_thread(
            self._store.suggest,
            self.identity.account_id,
            query,
            resolved_limit,
            chosen,
        )
        if stored:
            return stored

        # Nothing cached for this query: refresh the index in the background.
        self._indexer.schedule(self.identity.account_id, self._provider)

        return await self.live_suggestions(query, resolved_limit, chosen)

    async def suggest_recipients_safe(
        self,
        query: str = "",
        limit: int | None = None,
        exclude: Iterable[str] = (),
        snapshot: Sequence[RecipientSuggestion] | None = None,
    ) -> list[RecipientSuggestion]:
        """Like suggest_recipients, but any failure yields no suggestions."""

        try:
            return await self.suggest_recipients(query, limit, exclude, snapshot)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "suggestions_unavailable",
                account_id=self.identity.account_id,
                query=query,
                error=str(exc),
            )
            return []

    async def live_suggestions(
        self,
        query: str,
        limit: int,
        exclude: Iterable[str] = (),
    ) -> list[RecipientSuggestion]:
        """Rank identity, aliases and recent correspondents without the store."""

        chosen = list(exclude)
        ranked: dict[str, ContactObservation] = {}

        seed = [self._identity_observation()] + await self._alias_observations()
        accumulate_observations(ranked, [obs for obs in seed if obs is not None])

        if query.strip():
            alias_matches = filter_by_query(exclude_addresses(ranked.values(), chosen), query)
            if len(alias_matches) >= limit:
                return [to_suggestion(o) for o in _rank_observations(alias_matches)[:limit]]

        sent = await self._scan_folder(FOLDER_SENT)
        accumulate_observations(ranked, extract_sent_recipients(m for t in sent for m in t))

        inbox = await self._scan_folder(FOLDER_INBOX)
        accumulate_observations(ranked, extract_inbox_senders(m for t in inbox for m in t))

        candidates = filter_by_query(exclude_addresses(ranked.values(), chosen), query)
        results = [to_suggestion(o) for o in _rank_observations(candidates)[: max(0, limit)]]
        logger.debug(
            "suggestions_from_live_scan",
            account_id=self.identity.account_id,
            query=query,
            candidates=len(ranked),
            count=len(results),
        )
        return results

    def _identity_observation(self) -> ContactObservation | None:
        if not is_valid_email(self.identity.email):
            return None
        return ContactObservation(
            email=self.identity.email,
            name=self.identity.name,
            weight=WEIGHT_IDENTITY,
        )

    async def _alias_observations(self) -> list[ContactObservation]:
        try:
            aliases = await self._provider.get_email_aliases()
        except Exception as exc:  # noqa: BLE001
            logger.warning("email_aliases_unavailable", error=str(exc))
            return []

        return [
            ContactObservation(
                email=alias.email,
                name=alias.name,
                weight=WEIGHT_PRIMARY_ALIAS if alias.primary else WEIGHT_ALIAS,
            )
            for alias in aliases
            if is_valid_email(alias.email)
        ]

    async def _scan_folder(self, folder: str) -> list[list[ThreadMessage]]:
        """Messages of the most recent threads in ``folder``, grouped by thread."""

        try:
            page = await self._provider.list_folder(
                folder, "", self.settings.fallback_list_size, None
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("live_scan_listing_failed", folder=folder, error=str(exc))
            return []

        recent = page.threads[: self.settings.fallback_thread_count]
        outcomes = await fetch_thread_details(self._provider, recent, self.settings.fetch_concurrency)
        return [outcome.detail.messages for outcome in outcomes if outcome.ok]  # type: ignore[union-attr]
