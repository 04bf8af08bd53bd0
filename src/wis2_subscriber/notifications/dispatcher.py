"""
Fan-out dispatcher for notifications.

Each notification's canonical links are fetched concurrently, and
handle_message() returns only once every one of those fetches has
resolved, successfully or not. A shared asyncio.Semaphore bounds how many
fetches run at once so a notification carrying thousands of links cannot
exhaust sockets or file descriptors.

Failures are logged per link and never abort sibling fetches or later
notifications.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from wis2_subscriber.core.download.models import FetchOutcome
from wis2_subscriber.core.errors.exceptions import DecodeError, FetchError
from wis2_subscriber.core.logging.context import LogContext, generate_notification_id
from wis2_subscriber.core.security.url_validation import sanitize_error_message
from wis2_subscriber.notifications.decoder import canonical_links, decode_notification

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchOutcome: ...


@dataclass
class DispatchSummary:
    """What happened to one notification."""

    topic: str
    notification_id: str
    accepted: bool = True
    decoded: bool = True
    links_total: int = 0
    canonical: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    outcomes: list[FetchOutcome] = field(default_factory=list)
    errors: list[FetchError] = field(default_factory=list)


class NotificationDispatcher:
    """
    Decodes notifications and fans their canonical links out to a fetcher.

    Not thread-safe: handle_message() must run on the event loop that owns
    the dispatcher. Callers on other threads go through
    asyncio.run_coroutine_threadsafe.
    """

    def __init__(self, fetcher: Fetcher, max_concurrency: int = 10):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._fetcher = fetcher
        self._max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._in_flight: set[asyncio.Task] = set()
        self._closed = False

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop accepting notifications; in-flight fetches keep running."""
        self._closed = True

    async def handle_message(self, topic: str, payload: bytes | str) -> DispatchSummary:
        notification_id = generate_notification_id()
        with LogContext(topic=topic, notification_id=notification_id):
            if self._closed:
                logger.warning(
                    "Dispatcher closed, dropping message",
                    extra={"topic": topic},
                )
                return DispatchSummary(topic=topic, notification_id=notification_id, accepted=False)

            logger.info(
                f"Received message on topic: {topic}",
                extra={"topic": topic, "payload_size": len(payload)},
            )

            try:
                notification = decode_notification(payload)
            except DecodeError as e:
                logger.error(
                    "Error parsing notification, message dropped",
                    extra={
                        "topic": topic,
                        "error": str(e),
                        "error_category": e.category,
                        "payload_size": len(payload),
                    },
                )
                return DispatchSummary(topic=topic, notification_id=notification_id, decoded=False)

            links = list(canonical_links(notification))
            summary = DispatchSummary(
                topic=topic,
                notification_id=notification_id,
                links_total=len(notification.links),
                canonical=len(links),
            )

            if not links:
                logger.info(
                    "Notification has no canonical links",
                    extra={"links_total": summary.links_total},
                )
                return summary

            tasks = [self._spawn(link.href) for link in links]
            results = await asyncio.gather(*tasks, return_exceptions=True)

            for link, result in zip(links, results):
                self._record_result(summary, link.href, result)

            logger.info(
                "Notification processed",
                extra={
                    "links_total": summary.links_total,
                    "links_canonical": summary.canonical,
                    "fetches_succeeded": summary.succeeded,
                    "fetches_failed": summary.failed,
                    "fetches_cancelled": summary.cancelled,
                },
            )
            return summary

    def _spawn(self, url: str) -> asyncio.Task:
        task = asyncio.create_task(self._bounded_fetch(url), name=f"fetch:{url[-60:]}")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _bounded_fetch(self, url: str) -> FetchOutcome:
        async with self._semaphore:
            return await self._fetcher.fetch(url)

    @staticmethod
    def _record_result(summary: DispatchSummary, url: str, result: object) -> None:
        if isinstance(result, FetchOutcome):
            summary.succeeded += 1
            summary.outcomes.append(result)
        elif isinstance(result, asyncio.CancelledError):
            summary.cancelled += 1
            logger.warning("Download cancelled", extra={"download_url": url})
        elif isinstance(result, FetchError):
            summary.failed += 1
            summary.errors.append(result)
            logger.error(
                f"Error downloading file: {result}",
                extra={
                    "download_url": url,
                    "status_code": result.status_code,
                    "error_category": result.category,
                    "error": sanitize_error_message(str(result.cause or result.message)),
                },
            )
        else:
            summary.failed += 1
            logger.error(
                "Unexpected error downloading file",
                extra={"download_url": url, "error": str(result)},
                exc_info=result if isinstance(result, BaseException) else None,
            )

    async def drain(self, timeout: float) -> int:
        """
        Wait up to timeout seconds for in-flight fetches, then cancel the rest.

        Returns:
            Number of fetches that had to be cancelled
        """
        pending = set(self._in_flight)
        if not pending:
            return 0

        logger.info(
            "Waiting for in-flight downloads",
            extra={"in_flight": len(pending), "timeout_seconds": timeout},
        )
        _, still_running = await asyncio.wait(pending, timeout=timeout)

        if not still_running:
            logger.info("All in-flight downloads completed")
            return 0

        logger.warning(
            "Timeout waiting for in-flight downloads, cancelling",
            extra={"in_flight": len(still_running), "timeout_seconds": timeout},
        )
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
        return len(still_running)


__all__ = ["DispatchSummary", "Fetcher", "NotificationDispatcher"]
