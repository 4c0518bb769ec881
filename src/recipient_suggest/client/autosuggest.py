"""Debounced, keyboard-driven recipient input.

``RecipientAutosuggest`` is the state machine behind a "To:" field: it holds
the typed text and the chosen recipient chips, debounces typing before asking
for suggestions, filters a locally held snapshot before going remote, and
applies the keyboard contract (Enter, arrows, Escape, Backspace, Tab/Space,
paste). It renders nothing; a UI binds to its attributes.

Everything runs on the event loop. Each keystroke makes the results of fetches
still in flight stale; those are dropped instead of shown.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import structlog

from recipient_suggest.contacts.ranking import exclude_addresses, filter_by_query
from recipient_suggest.models import RecipientSuggestion
from recipient_suggest.utils import is_valid_email, normalize_email, split_address_list

logger = structlog.get_logger()

FetchSuggestions = Callable[[str, int], Awaitable[list[RecipientSuggestion]]]

KEY_ENTER = "Enter"
KEY_ARROW_DOWN = "ArrowDown"
KEY_ARROW_UP = "ArrowUp"
KEY_ESCAPE = "Escape"
KEY_BACKSPACE = "Backspace"
KEY_TAB = "Tab"
KEY_SPACE = " "


class RecipientAutosuggest:
    """Recipient chips plus a debounced suggestion dropdown."""

    def __init__(
        self,
        fetch: FetchSuggestions,
        recipients: Sequence[str] = (),
        on_recipients_change: Callable[[list[str]], None] | None = None,
        debounce_seconds: float = 0.3,
        limit: int = 10,
    ) -> None:
        """Create the controller.

        Args:
            fetch: Remote resolver, called as ``fetch(query, limit)``.
            recipients: Initially chosen addresses.
            on_recipients_change: Called with the new list whenever chips change.
            debounce_seconds: Quiet period after the last keystroke.
            limit: Maximum suggestions shown.
        """

        self._fetch = fetch
        self._on_recipients_change = on_recipients_change
        self.debounce_seconds = debounce_seconds
        self.limit = limit

        self.recipients: list[str] = list(recipients)
        self.input_value = ""
        self.debounced_query = ""
        self.suggestions: list[RecipientSuggestion] = []
        self.is_open = False
        self.selected_index = -1
        self.is_loading = False
        self.is_composing = False
        self.snapshot: list[RecipientSuggestion] | None = None

        self._generation = 0
        self._debounce_task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()

    # Input

    def set_input(self, value: str) -> None:
        """Record a keystroke and restart the debounce timer."""

        self.input_value = value
        self.selected_index = -1
        self._restart_debounce()

    def composition_start(self) -> None:
        self.is_composing = True

    def composition_end(self) -> None:
        self.is_composing = False
        self._run_query()

    def handle_key(self, key: str) -> bool:
        """Apply the keyboard contract.

        Returns:
            True when the key was consumed and its default action should be
            suppressed.
        """

        if self.is_composing:
            return False

        typed = self.input_value.strip()

        if key == KEY_ENTER:
            if 0 <= self.selected_index < len(self.suggestions):
                self.add_recipient(self.suggestions[self.selected_index].email)
            elif typed and is_valid_email(typed):
                self.add_recipient(typed)
            return True

        if key == KEY_ARROW_DOWN:
            if self.suggestions:
                last = len(self.suggestions) - 1
                self.selected_index = self.selected_index + 1 if self.selected_index < last else 0
            return True

        if key == KEY_ARROW_UP:
            if self.suggestions:
                last = len(self.suggestions) - 1
                self.selected_index = self.selected_index - 1 if self.selected_index > 0 else last
            return True

        if key == KEY_ESCAPE:
            self.close()
            return True

        if key == KEY_BACKSPACE:
            if not self.input_value and self.recipients:
                self.remove_recipient(len(self.recipients) - 1)
                return True
            return False

        if key in (KEY_TAB, KEY_SPACE):
            if typed and is_valid_email(typed):
                self.add_recipient(typed)
                return True
            return False

        return False

    def paste(self, text: str) -> list[str]:
        """Add every valid, new address found in pasted text as chips.

        Returns:
            The addresses that were added.
        """

        present = {normalize_email(r) for r in self.recipients}
        added: list[str] = []
        for candidate in split_address_list(text):
            key = normalize_email(candidate)
            if not is_valid_email(candidate) or key in present:
                continue
            present.add(key)
            added.append(candidate)

        if added:
            self._set_recipients([*self.recipients, *added])
        return added

    # Recipients

    def add_recipient(self, email: str) -> bool:
        """Add a chip if the address is valid and not already present."""

        email = email.strip()
        if not is_valid_email(email) or self._has_recipient(email):
            return False

        self._set_recipients([*self.recipients, email])
        self.input_value = ""
        self.close()
        self._restart_debounce()
        return True

    def remove_recipient(self, index: int) -> None:
        if 0 <= index < len(self.recipients):
            self._set_recipients([r for i, r in enumerate(self.recipients) if i != index])

    def select_suggestion(self, suggestion: RecipientSuggestion) -> bool:
        return self.add_recipient(suggestion.email)

    def close(self) -> None:
        self.is_open = False
        self.selected_index = -1

    # Snapshot

    async def prime_snapshot(self, limit: int = 500) -> None:
        """Fetch the full contact list once for local filtering."""

        if self.snapshot is not None:
            return
        try:
            data = await self._fetch("", limit)
        except Exception as exc:  # noqa: BLE001
            logger.warning("suggestion_snapshot_failed", error=str(exc))
            return
        if data:
            self.snapshot = list(data)
            logger.debug("suggestion_snapshot_loaded", contacts=len(data))

    # Lifecycle

    async def settle(self) -> None:
        """Wait until the pending debounce and in-flight fetches are done."""

        while True:
            pending = [t for t in (self._debounce_task, *self._inflight) if t is not None and not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel the debounce timer and any in-flight fetch."""

        self._generation += 1
        tasks = [t for t in (self._debounce_task, *self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # Internals

    def _has_recipient(self, email: str) -> bool:
        key = normalize_email(email)
        return any(normalize_email(r) == key for r in self.recipients)

    def _set_recipients(self, recipients: list[str]) -> None:
        self.recipients = recipients
        if self._on_recipients_change is not None:
            self._on_recipients_change(list(recipients))

    def _restart_debounce(self) -> None:
        # A fetch still in flight answers a query the user has moved past.
        self._generation += 1
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self.debounced_query = self.input_value
        self._run_query()

    def _run_query(self) -> None:
        if self.is_composing:
            return

        # Any new cycle supersedes whatever is still in flight.
        self._generation += 1
        generation = self._generation
        query = self.debounced_query

        if not query.strip():
            self.suggestions = []
            self.is_loading = False
            self.close()
            return

        task = asyncio.get_running_loop().create_task(self._fetch_suggestions(query, generation))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _fetch_suggestions(self, query: str, generation: int) -> None:
        if generation != self._generation:
            return
        self.is_loading = True
        try:
            if self.snapshot:
                local = filter_by_query(exclude_addresses(self.snapshot, self.recipients), query)
                if local:
                    self._show(local[: self.limit])
                    return

            data = await self._fetch(query, self.limit)
            if generation != self._generation:
                logger.debug("suggestions_discarded_stale", query=query)
                return

            self._show(exclude_addresses(data, self.recipients))
        except Exception as exc:  # noqa: BLE001
            if generation == self._generation:
                logger.warning("suggestions_fetch_failed", query=query, error=str(exc))
                self.suggestions = []
                self.is_open = False
        finally:
            if generation == self._generation:
                self.is_loading = False

    def _show(self, suggestions: list[RecipientSuggestion]) -> None:
        self.suggestions = suggestions
        self.is_open = bool(suggestions)
        self.selected_index = -1
