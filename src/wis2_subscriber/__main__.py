"""WIS2 notification subscriber. Use --help for usage."""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from wis2_subscriber import __version__
from wis2_subscriber.config import SubscriberConfig, load_config
from wis2_subscriber.core.errors.exceptions import ConfigError
from wis2_subscriber.core.logging.setup import setup_logging
from wis2_subscriber.runner import EXIT_CONFIG, EXIT_OK, run_subscriber

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)

_DEFAULTS = SubscriberConfig(server="", topic="")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line flags.

    Unset flags stay None so environment and YAML values can fill them.
    """
    parser = argparse.ArgumentParser(
        prog="wis2-subscriber",
        description="Subscribe to WIS2 notifications over MQTT and download the canonical files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Global broker over TLS, no CA verification
    wis2-subscriber --server ssl://globalbroker.meteo.fr:8883 \\
        --topic 'cache/a/wis2/+/data/core/weather/#' \\
        --username everyone --password everyone

    # Settings from a YAML file, downloads into /data
    wis2-subscriber --config subscriber.yaml --download /data

Every setting can also come from a WIS2_* environment variable
(WIS2_SERVER, WIS2_TOPIC, WIS2_DOWNLOAD_DIR, ...).
        """,
    )

    broker = parser.add_argument_group("broker")
    broker.add_argument("--server", help="MQTT server address (e.g., ssl://example.com:8883)")
    broker.add_argument("--topic", help="MQTT topic to subscribe")
    broker.add_argument("--username", help="MQTT username")
    broker.add_argument("--password", help="MQTT password")
    broker.add_argument("--cafile", help="Path to CA certificate file")
    broker.add_argument("--cert", help="Path to client certificate file")
    broker.add_argument("--key", help="Path to client key file")
    broker.add_argument(
        "--clientid",
        help=f"MQTT client ID (default: {_DEFAULTS.client_id})",
    )
    broker.add_argument(
        "--qos",
        type=int,
        choices=[0, 1, 2],
        help=f"Subscription QoS (default: {_DEFAULTS.qos})",
    )

    downloads = parser.add_argument_group("downloads")
    downloads.add_argument(
        "--download",
        help=f"Directory to save downloaded files (default: {_DEFAULTS.download_dir})",
    )
    downloads.add_argument(
        "--max-concurrent-fetches",
        type=int,
        help=f"Maximum simultaneous downloads (default: {_DEFAULTS.max_concurrent_fetches})",
    )
    downloads.add_argument(
        "--shutdown-grace-period",
        type=float,
        help="Seconds to let in-flight downloads finish on shutdown "
        f"(default: {_DEFAULTS.shutdown_grace_period:g})",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML file with a 'subscriber:' section",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )

    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Send all log output to stdout only, skipping file handlers. "
        "Useful for containerized deployments where logs are captured from stdout. "
        "Can also be set via LOG_TO_STDOUT environment variable.",
    )

    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Write JSON lines to the log file (default: from JSON_LOGS env var or true)",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event):
    """Set up signal handlers for graceful shutdown.

    First CTRL+C: Sets shutdown event - stop intake, drain downloads, disconnect.
    Second CTRL+C: Forces immediate shutdown by cancelling all tasks.
    Note: Signal handlers not supported on Windows - KeyboardInterrupt used instead."""

    def handle_signal(sig):
        logger.info("Received signal, initiating graceful shutdown", extra={"signal": sig.name})
        if not shutdown_event.is_set():
            shutdown_event.set()
        else:
            logger.warning("Received second signal, forcing immediate shutdown...")
            for task in asyncio.all_tasks(loop):
                task.cancel()

    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


def _setup_logging(args: argparse.Namespace) -> None:
    log_level = getattr(logging, args.log_level)

    json_logs = args.json_logs if args.json_logs is not None else _env_flag("JSON_LOGS", "true")
    log_to_stdout = args.log_to_stdout or _env_flag("LOG_TO_STDOUT")
    log_dir = Path(args.log_dir or os.getenv("LOG_DIR") or "logs")

    setup_logging(
        name="wis2_subscriber",
        log_dir=log_dir,
        json_format=json_logs,
        console_level=log_level,
        client_id=args.clientid or os.getenv("WIS2_CLIENT_ID") or _DEFAULTS.client_id,
        log_to_stdout=log_to_stdout,
    )


def main(argv: list[str] | None = None) -> int:
    global logger

    load_dotenv()
    args = parse_args(argv)

    _setup_logging(args)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(args)
    except ConfigError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    shutdown_event = asyncio.Event()
    setup_signal_handlers(loop, shutdown_event)

    exit_code = EXIT_OK
    try:
        exit_code = loop.run_until_complete(run_subscriber(config, shutdown_event))
    except ConfigError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        print(f"Configuration error: {e}", file=sys.stderr)
        exit_code = EXIT_CONFIG
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    finally:
        loop.close()
        logger.info("Subscriber shutdown complete", extra={"exit_code": exit_code})

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
