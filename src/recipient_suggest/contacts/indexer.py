"""Full-mailbox contact indexing.

A run walks a fixed list of folders page by page, fetches every thread on a
page concurrently, scores the addresses it finds and merges them into the
contact store. Progress is checkpointed into the store while the run is in
flight and merged once more at the end.

Runs are not resumable: each run starts every folder from its first page.
Re-running is how a crashed run is recovered; checkpoints already written are
kept.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from recipient_suggest.config import Settings
from recipient_suggest.contacts.extractor import accumulate_observations, extract_observations
from recipient_suggest.contacts.fanout import fetch_thread_details
from recipient_suggest.contacts.store import ContactStore
from recipient_suggest.exceptions import ContactStoreError
from recipient_suggest.models import ContactObservation
from recipient_suggest.provider import MailProvider

logger = structlog.get_logger()


@dataclass
class _RunState:
    account_id: str
    # Everything discovered in this run.
    contacts: dict[str, ContactObservation] = field(default_factory=dict)
    # Weight accrued since the last store write.
    pending: dict[str, ContactObservation] = field(default_factory=dict)
    processed: int = 0
    since_checkpoint: int = 0
    failed_threads: int = 0
    store_writes: int = 0


class ContactIndexer:
    """Builds an account's contact set from its whole mailbox."""

    def __init__(self, store: ContactStore, settings: Settings | None = None) -> None:
        """Create an indexer.

        Args:
            store: Contact store receiving checkpoints and the final merge.
            settings: Application settings. If None, uses default settings.
        """
        from recipient_suggest.config import get_settings

        self.settings = settings or get_settings()
        self._store = store
        self._tasks: dict[str, asyncio.Task[int]] = {}

    async def run(self, account_id: str, provider: MailProvider) -> int:
        """Index every configured folder for one account.

        A failing folder is logged and skipped. Store failures are fatal.

        Returns:
            Number of distinct contacts discovered by this run.
        """

        state = _RunState(account_id=account_id)
        logger.info(
            "contacts_index_started",
            account_id=account_id,
            folders=self.settings.index_folders,
        )

        for folder in self.settings.index_folders:
            try:
                await self._index_folder(state, provider, folder)
            except ContactStoreError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "contacts_index_folder_failed",
                    account_id=account_id,
                    folder=folder,
                    error=str(exc),
                )

        await self._flush(state)

        logger.info(
            "contacts_index_completed",
            account_id=account_id,
            contacts=len(state.contacts),
            threads=state.processed,
            failed_threads=state.failed_threads,
            store_writes=state.store_writes,
        )
        return len(state.contacts)

    def schedule(self, account_id: str, provider: MailProvider) -> asyncio.Task[int]:
        """Start a background run without waiting for it.

        Failures are logged and never reach the caller. If a run for the
        account is already in flight, that run's task is returned instead.
        Must be called from within a running event loop.
        """

        existing = self._tasks.get(account_id)
        if existing is not None and not existing.done():
            logger.debug("contacts_index_already_running", account_id=account_id)
            return existing

        task = asyncio.create_task(
            self._run_logged(account_id, provider),
            name=f"contacts-index:{account_id}",
        )
        self._tasks[account_id] = task

        def _forget(done: asyncio.Task[int]) -> None:
            if self._tasks.get(account_id) is done:
                del self._tasks[account_id]

        task.add_done_callback(_forget)
        logger.info("contacts_index_scheduled", account_id=account_id)
        return task

    def is_running(self, account_id: str) -> bool:
        task = self._tasks.get(account_id)
        return task is not None and not task.done()

    async def drain(self) -> None:
        """Wait for every scheduled run to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
            # Let done-callbacks drop finished tasks.
            await asyncio.sleep(0)

    async def _run_logged(self, account_id: str, provider: MailProvider) -> int:
        try:
            return await self.run(account_id, provider)
        except Exception as exc:  # noqa: BLE001
            logger.exception("contacts_index_failed", account_id=account_id, error=str(exc))
            return 0

    async def _index_folder(self, state: _RunState, provider: MailProvider, folder: str) -> None:
        cursor = ""
        page_count = 0

        while True:
            page = await provider.list_folder(
                folder,
                "",
                self.settings.index_page_size,
                cursor or None,
            )
            if not page.threads:
                break

            outcomes = await fetch_thread_details(
                provider, page.threads, self.settings.fetch_concurrency
            )
            for outcome in outcomes:
                if not outcome.ok:
                    state.failed_threads += 1
                    continue
                observations = extract_observations(outcome.detail.messages, folder)  # type: ignore[union-attr]
                accumulate_observations(state.contacts, observations)
                accumulate_observations(state.pending, observations)

            state.processed += len(page.threads)
            state.since_checkpoint += len(page.threads)
            if state.since_checkpoint >= self.settings.index_checkpoint_interval:
                logger.info(
                    "contacts_index_checkpoint",
                    account_id=state.account_id,
                    folder=folder,
                    threads=state.processed,
                    contacts=len(state.contacts),
                )
                await self._flush(state)
                state.since_checkpoint = 0

            cursor = page.next_page_token or ""
            page_count += 1

            if not cursor:
                break
            if page_count > self.settings.index_max_pages:
                logger.info(
                    "contacts_index_page_cap_reached",
                    account_id=state.account_id,
                    folder=folder,
                    pages=page_count,
                )
                break

    async def _flush(self, state: _RunState) -> None:
        if not state.pending:
            return
        batch = list(state.pending.values())
        await asyncio.to_thread(self._store.merge, state.account_id, batch)
        state.pending.clear()
        state.store_writes += 1
