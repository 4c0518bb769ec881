"""Bounded concurrent thread fetching with per-item failure isolation."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from recipient_suggest.models import ThreadDetail, ThreadSummary
from recipient_suggest.provider import MailProvider

logger = structlog.get_logger()


@dataclass(frozen=True)
class FetchOutcome:
    """Result of fetching one thread: either a detail or the error raised."""

    thread_id: str
    detail: ThreadDetail | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.detail is not None


async def fetch_thread_details(
    provider: MailProvider,
    threads: Sequence[ThreadSummary],
    concurrency: int,
) -> list[FetchOutcome]:
    """Fetch every thread concurrently and wait for all of them.

    At most ``concurrency`` requests are in flight. A failing fetch is logged
    and reported in its outcome; it never cancels or delays its siblings.

    Returns:
        One outcome per input thread, in input order.
    """

    if not threads:
        return []

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def fetch_one(summary: ThreadSummary) -> ThreadDetail:
        async with semaphore:
            return await provider.get_thread_detail(summary.id)

    results = await asyncio.gather(
        *(fetch_one(summary) for summary in threads),
        return_exceptions=True,
    )

    outcomes: list[FetchOutcome] = []
    for summary, result in zip(threads, results):
        if isinstance(result, BaseException):
            logger.warning("thread_fetch_failed", thread_id=summary.id, error=str(result))
            outcomes.append(FetchOutcome(thread_id=summary.id, error=result))
        else:
            outcomes.append(FetchOutcome(thread_id=summary.id, detail=result))
    return outcomes
