"""Subscriber execution: wiring, message bridge and graceful shutdown.

Provides the run loop used by the entry point with consistent:
- Shutdown handling (drain fetches, then disconnect)
- Error handling (fatal subscribe -> non-zero exit)
- Resource cleanup (HTTP session, MQTT network thread)
"""

import asyncio
import concurrent.futures
import logging
from pathlib import Path

from wis2_subscriber.broker.session import BrokerSession
from wis2_subscriber.config import SubscriberConfig
from wis2_subscriber.core.download import FileFetcher
from wis2_subscriber.core.errors.exceptions import ConfigError
from wis2_subscriber.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def prepare_download_dir(download_dir: str | Path) -> Path:
    path = Path(download_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Cannot create download directory: {path}", cause=e) from e
    if not path.is_dir():
        raise ConfigError(f"Download path is not a directory: {path}")
    return path


def make_message_bridge(
    dispatcher: NotificationDispatcher,
    loop: asyncio.AbstractEventLoop,
):
    """Return a blocking handler that runs dispatcher.handle_message on loop.

    Called on paho's network thread. Blocking until the notification's
    fetches have all resolved keeps delivery serialized per message.
    """

    def on_message(topic: str, payload: bytes) -> None:
        future = asyncio.run_coroutine_threadsafe(
            dispatcher.handle_message(topic, payload), loop
        )
        try:
            future.result()
        except concurrent.futures.CancelledError:
            logger.warning("Message handling cancelled", extra={"topic": topic})

    return on_message


async def shutdown(
    session: BrokerSession,
    dispatcher: NotificationDispatcher,
    config: SubscriberConfig,
) -> None:
    """Stop intake, drain in-flight fetches, then leave the broker."""
    logger.info("Shutting down subscriber", extra={"in_flight": dispatcher.in_flight})
    session.stop_accepting()
    dispatcher.close()
    try:
        cancelled = await dispatcher.drain(config.shutdown_grace_period)
        if cancelled:
            logger.warning(
                f"Cancelled {cancelled} in-flight downloads",
                extra={"fetches_cancelled": cancelled},
            )
    finally:
        await session.stop()


async def run_subscriber(config: SubscriberConfig, shutdown_event: asyncio.Event) -> int:
    """Run until shutdown_event is set or the subscription is rejected.

    Returns:
        Process exit code

    Raises:
        ConfigError: If the download directory or TLS material is unusable
    """
    loop = asyncio.get_running_loop()

    # Bound once the dispatcher exists; no message arrives before connect()
    def on_message(topic: str, payload: bytes) -> None:
        bridge(topic, payload)

    def on_fatal(error) -> None:
        loop.call_soon_threadsafe(shutdown_event.set)

    # Built first so TLS problems surface before the download directory exists
    session = BrokerSession(config, on_message=on_message, on_fatal=on_fatal)
    download_dir = prepare_download_dir(config.download_dir)

    async with FileFetcher(download_dir, timeout=config.fetch_timeout) as fetcher:
        dispatcher = NotificationDispatcher(fetcher, config.max_concurrent_fetches)
        bridge = make_message_bridge(dispatcher, loop)

        logger.info(
            "Starting subscriber",
            extra={
                "broker": str(config.broker_address()),
                "topic": config.topic,
                "client_id": config.client_id,
                "destination_path": str(download_dir),
            },
        )

        try:
            if await session.connect(shutdown_event):
                await shutdown_event.wait()
        finally:
            await shutdown(session, dispatcher, config)

    if session.fatal_error is not None:
        logger.error(
            "Exiting after fatal subscription error",
            extra={"error": str(session.fatal_error)},
        )
        return EXIT_FATAL
    return EXIT_OK


__all__ = [
    "EXIT_CONFIG",
    "EXIT_FATAL",
    "EXIT_OK",
    "make_message_bridge",
    "prepare_download_dir",
    "run_subscriber",
    "shutdown",
]
