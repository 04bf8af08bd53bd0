"""
MQTT broker session.

Owns one paho-mqtt client for the life of the process. Initial connect is
retried forever at a fixed interval; after that paho's network thread
handles reconnects with exponential backoff, and every successful connect
subscribes again. A rejected subscription is fatal.

paho invokes every callback on its network thread, so state is guarded by
a lock and the message handler must be a blocking callable.
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from enum import Enum

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from wis2_subscriber.config import SubscriberConfig
from wis2_subscriber.core.errors.exceptions import ConnectError, SubscribeError
from wis2_subscriber.core.security.tls import build_tls_context

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]
FatalHandler = Callable[[SubscribeError], None]


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


class BrokerSession:
    """
    Durable subscription to one topic.

    Usage:
        session = BrokerSession(config, on_message=handle)
        if await session.connect(stop_event):
            await stop_event.wait()
        await session.stop()
    """

    def __init__(
        self,
        config: SubscriberConfig,
        on_message: MessageHandler,
        on_fatal: FatalHandler | None = None,
    ):
        self._config = config
        self._address = config.broker_address()
        self._on_message = on_message
        self._on_fatal = on_fatal

        self._lock = threading.Lock()
        self._state = SessionState.DISCONNECTED
        self._stopping = False
        self._loop_started = False
        self._stop_started = False
        self._unsubscribed = threading.Event()
        self.fatal_error: SubscribeError | None = None

        self._client = self._build_client()

    def _build_client(self) -> mqtt.Client:
        config = self._config
        client = mqtt.Client(
            CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
            transport=self._address.transport,
        )
        client.enable_logger(logging.getLogger("paho.mqtt.client"))

        if self._address.transport == "websockets":
            client.ws_set_options(path=self._address.path)

        if config.username:
            client.username_pw_set(config.username, config.password)

        if self._address.use_tls or config.cafile or config.cert:
            client.tls_set_context(build_tls_context(config.cafile, config.cert, config.key))

        client.reconnect_delay_set(
            min_delay=config.reconnect_min_delay,
            max_delay=config.reconnect_max_delay,
        )

        client.on_connect = self._handle_connect
        client.on_disconnect = self._handle_disconnect
        client.on_subscribe = self._handle_subscribe
        client.on_unsubscribe = self._handle_unsubscribe
        client.on_message = self._handle_message
        return client

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_stopping(self) -> bool:
        return self._stopping

    def _set_state(self, state: SessionState) -> None:
        with self._lock:
            previous, self._state = self._state, state
        if previous != state:
            logger.debug(f"Session state {previous.value} -> {state.value}")

    async def connect(self, stop_event: asyncio.Event) -> bool:
        """
        Connect to the broker, retrying until it succeeds or stop_event is set.

        Returns:
            True once connected and paho's network loop is running,
            False if shutdown was requested first
        """
        host, port = self._address.host, self._address.port
        interval = self._config.connect_retry_interval
        attempt = 0

        while not stop_event.is_set() and not self._stopping:
            attempt += 1
            self._set_state(SessionState.CONNECTING)
            try:
                await asyncio.to_thread(
                    self._client.connect, host, port, self._config.keepalive
                )
            except (OSError, ValueError) as e:
                error = ConnectError(f"Failed to connect to MQTT broker at {self._address}", cause=e)
                self._set_state(SessionState.DISCONNECTED)
                logger.warning(
                    f"{error}. Retrying in {interval:g} seconds...",
                    extra={
                        "broker": str(self._address),
                        "attempt": attempt,
                        "delay_seconds": interval,
                        "error": str(e),
                        "error_category": error.category,
                    },
                )
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
                continue

            self._client.loop_start()
            self._loop_started = True
            logger.debug(
                "MQTT network loop started",
                extra={"broker": str(self._address), "attempt": attempt},
            )
            return True

        return False

    # =========================================================================
    # paho callbacks (network thread)
    # =========================================================================

    def _handle_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error(
                f"Connection refused by MQTT broker: {reason_code}",
                extra={"broker": str(self._address), "reason_code": str(reason_code)},
            )
            return

        self._set_state(SessionState.CONNECTED)
        logger.info(
            "Connected to MQTT broker",
            extra={"broker": str(self._address), "client_id": self._config.client_id},
        )

        result, _ = client.subscribe(self._config.topic, qos=self._config.qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self._fail(
                SubscribeError(
                    f"Error subscribing to topic {self._config.topic}: {mqtt.error_string(result)}",
                    context={"topic": self._config.topic, "reason_code": int(result)},
                )
            )

    def _handle_subscribe(self, client, userdata, mid, reason_code_list, properties) -> None:
        if reason_code_list and all(rc.is_failure for rc in reason_code_list):
            reasons = ", ".join(str(rc) for rc in reason_code_list)
            self._fail(
                SubscribeError(
                    f"Subscription to topic {self._config.topic} rejected: {reasons}",
                    context={"topic": self._config.topic, "reason_code": reasons},
                )
            )
            return

        self._set_state(SessionState.SUBSCRIBED)
        logger.info(
            f"Subscribed to topic: {self._config.topic}",
            extra={"topic": self._config.topic, "qos": self._config.qos},
        )

    def _handle_unsubscribe(self, client, userdata, mid, reason_code_list, properties) -> None:
        self._unsubscribed.set()

    def _handle_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if self._stopping:
            logger.debug("Broker connection closed", extra={"reason_code": str(reason_code)})
            return

        self._set_state(SessionState.RECONNECTING)
        logger.warning(
            f"Connection lost: {reason_code}",
            extra={"broker": str(self._address), "reason_code": str(reason_code)},
        )

    def _handle_message(self, client, userdata, message) -> None:
        if self._stopping:
            logger.debug("Shutting down, dropping message", extra={"topic": message.topic})
            return

        try:
            self._on_message(message.topic, message.payload)
        except Exception as e:
            logger.error(
                "Unhandled error processing message",
                extra={"topic": message.topic, "error": str(e)},
                exc_info=True,
            )

    def _fail(self, error: SubscribeError) -> None:
        self.fatal_error = error
        logger.error(
            str(error),
            extra={"topic": self._config.topic, "error_category": error.category},
        )
        if self._on_fatal is not None:
            self._on_fatal(error)

    # =========================================================================
    # Shutdown
    # =========================================================================

    def stop_accepting(self) -> None:
        """Drop any message delivered from now on."""
        self._stopping = True

    async def stop(self) -> None:
        """Unsubscribe, disconnect and stop the network loop. Idempotent."""
        with self._lock:
            if self._stop_started:
                return
            self._stop_started = True
            was_subscribed = self._state in (SessionState.CONNECTED, SessionState.SUBSCRIBED)
        self._stopping = True

        if was_subscribed:
            self._unsubscribed.clear()
            result, _ = self._client.unsubscribe(self._config.topic)
            if result == mqtt.MQTT_ERR_SUCCESS:
                acked = await asyncio.to_thread(
                    self._unsubscribed.wait, self._config.disconnect_timeout
                )
                if not acked:
                    logger.debug(
                        "No UNSUBACK before disconnect timeout",
                        extra={"timeout_seconds": self._config.disconnect_timeout},
                    )

        self._client.disconnect()
        if self._loop_started:
            await asyncio.to_thread(self._client.loop_stop)
            self._loop_started = False

        self._set_state(SessionState.STOPPED)
        logger.info("Disconnected", extra={"broker": str(self._address)})


__all__ = ["BrokerSession", "SessionState"]
