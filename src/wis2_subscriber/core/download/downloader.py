"""
File fetcher for notification links.

Provides FileFetcher, which orchestrates:
- Download target resolution (path traversal prevention)
- Streaming HTTP download into a temporary file
- Atomic rename into the download directory
- Error classification and reporting

Interface: url -> FetchOutcome, or FetchError
"""

import asyncio
import logging
import time
from pathlib import Path

import aiohttp

from wis2_subscriber.core.download.http_client import create_session
from wis2_subscriber.core.download.models import FetchOutcome
from wis2_subscriber.core.download.streaming import CHUNK_SIZE, download_to_file
from wis2_subscriber.core.errors.exceptions import FetchError
from wis2_subscriber.core.security.exceptions import ValidationError
from wis2_subscriber.core.security.paths import resolve_download_target
from wis2_subscriber.core.security.url_validation import sanitize_url
from wis2_subscriber.core.types import ErrorCategory

logger = logging.getLogger(__name__)


class FileFetcher:
    """
    Fetches one link per call into the download directory.

    A single aiohttp session is shared by every fetch so connections are
    reused across notifications. The session is created lazily on first
    use unless one is passed in; only a session created here is closed by
    close(). No fetch is retried.
    """

    def __init__(
        self,
        download_dir: Path,
        session: aiohttp.ClientSession | None = None,
        timeout: int = 300,
        chunk_size: int = CHUNK_SIZE,
        max_connections: int = 100,
        max_connections_per_host: int = 10,
    ):
        self.download_dir = Path(download_dir)
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._max_connections = max_connections
        self._max_connections_per_host = max_connections_per_host

    async def __aenter__(self) -> "FileFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = create_session(
                max_connections=self._max_connections,
                max_connections_per_host=self._max_connections_per_host,
                timeout_total=self._timeout,
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            # Let the connector finish closing transports
            await asyncio.sleep(0)
        self._session = None

    async def fetch(self, url: str) -> FetchOutcome:
        """
        Download url into the download directory.

        Raises:
            FetchError: On unsafe target path, non-200 status, transport
                failure or local write failure. status_code is set for
                HTTP failures and cause holds the underlying exception.
        """
        try:
            target = resolve_download_target(url, self.download_dir)
        except ValidationError as e:
            raise FetchError(
                f"Unsafe download target: {e}",
                url=url,
                category=ErrorCategory.PERMANENT,
                cause=e,
            ) from e

        started = time.perf_counter()
        result, error = await download_to_file(
            url=url,
            output_path=target,
            session=self._get_session(),
            timeout=self._timeout,
            chunk_size=self._chunk_size,
        )
        duration_ms = (time.perf_counter() - started) * 1000

        if error:
            if error.error_category == ErrorCategory.TRANSIENT and "timeout" in error.error_message.lower():
                logger.warning(
                    "Download timeout",
                    extra={
                        "download_url": url,
                        "timeout_seconds": self._timeout,
                        "error_message": error.error_message,
                    },
                )
            raise FetchError(
                f"Failed to download {sanitize_url(url)}: {error.error_message}",
                url=url,
                status_code=error.status_code,
                category=error.error_category,
                cause=error.cause,
            )

        logger.info(
            f"File downloaded successfully: {target}",
            extra={
                "download_url": url,
                "destination_path": str(target),
                "bytes_downloaded": result.bytes_written,
                "content_type": result.content_type,
                "duration_ms": round(duration_ms, 1),
            },
        )

        return FetchOutcome(
            url=url,
            file_path=target,
            bytes_downloaded=result.bytes_written,
            content_type=result.content_type,
            status_code=result.status_code,
            duration_ms=duration_ms,
        )


__all__ = ["FileFetcher"]
