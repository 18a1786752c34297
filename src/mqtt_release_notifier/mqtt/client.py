"""Single publish attempt over paho-mqtt: connect, publish one message, disconnect."""

import logging
import math
import socket
import time
from typing import Any, Callable, Optional

import paho.mqtt.client as mqtt

from ..errors import (
    ConnectTimeoutError,
    PublishAcknowledgementError,
    PublishAttemptError,
    TransportError,
)
from ..models import Attempt, AttemptResult, PublisherConfig
from .settlement import Settlement


logger = logging.getLogger(__name__)

ClientFactory = Callable[[PublisherConfig], mqtt.Client]


def create_client(config: PublisherConfig) -> mqtt.Client:
    """
    Create a paho client for one attempt.

    Automatic reconnection is disabled: each attempt connects exactly once
    and retrying is left to the caller.

    Args:
        config: Publisher configuration

    Returns:
        Configured, unconnected paho client
    """
    broker = config.broker

    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=config.client_id,
        clean_session=True,
        protocol=mqtt.MQTTv311,
        transport=broker.transport,
        reconnect_on_failure=False,
    )
    client.connect_timeout = config.connect_timeout_ms / 1000.0
    client.enable_logger(logging.getLogger("paho.mqtt"))

    if broker.transport == "websockets":
        client.ws_set_options(path=broker.path, headers=config.websocket_headers())

    if broker.tls:
        client.tls_set()

    if config.username:
        client.username_pw_set(config.username, config.password)

    return client


def _is_failure(reason_code: Any) -> bool:
    """True if a paho reason code (or legacy integer code) reports a failure."""
    if hasattr(reason_code, "is_failure"):
        return reason_code.is_failure
    return reason_code != 0


class PublishAttempt:
    """
    Performs one connect -> publish -> disconnect cycle.

    The paho network loop is driven from the calling thread with
    ``Client.loop()``; no background thread is started. The connect deadline,
    the connection callbacks and the publish acknowledgement race to settle
    the attempt and only the first one counts.
    """

    def __init__(
        self,
        config: PublisherConfig,
        client_factory: Optional[ClientFactory] = None,
        clock: Callable[[], float] = time.monotonic,
        loop_interval: float = 0.1,
    ):
        """
        Initialize the publisher.

        Args:
            config: Publisher configuration
            client_factory: Builds the paho client, defaults to create_client
            clock: Monotonic clock used for the connect deadline
            loop_interval: Maximum time spent in a single network loop call
        """
        self.config = config
        self._client_factory = client_factory or create_client
        self._clock = clock
        self._loop_interval = loop_interval

        self._settlement = Settlement()
        self._connected = False
        self._published = False
        self._mid: Optional[int] = None

    def run(self, attempt: Attempt) -> AttemptResult:
        """
        Run the attempt until it succeeds, fails or its connect deadline passes.

        Args:
            attempt: Attempt with its connect deadline

        Returns:
            AttemptResult describing the outcome
        """
        started = self._clock()
        self._settlement = Settlement()
        self._connected = False
        self._published = False
        self._mid = None

        broker = self.config.broker
        client = self._client_factory(self.config)
        client.on_connect = self._on_connect
        client.on_publish = self._on_publish
        client.on_disconnect = self._on_disconnect

        logger.info(
            f"Connecting to {broker} "
            f"(connect_timeout={self.config.connect_timeout_ms}ms, reconnect disabled)"
        )

        try:
            self._connect(client, broker.host, broker.port, attempt)

            while not self._settlement.settled:
                now = self._clock()
                if not self._connected and now >= attempt.deadline:
                    logger.error(
                        f"Connect timed out after {self.config.connect_timeout_ms} ms"
                    )
                    self._fail(client, ConnectTimeoutError("connect timeout"))
                    break

                rc = client.loop(timeout=self._loop_timeout(attempt, now))
                if rc != mqtt.MQTT_ERR_SUCCESS and not self._settlement.settled:
                    if self._published:
                        # PUBACK already received, the connection is gone either way
                        self._settlement.succeed()
                    else:
                        self._fail(
                            client,
                            TransportError(f"connection lost: {mqtt.error_string(rc)}"),
                        )
        finally:
            self._close(client)

        elapsed = self._clock() - started
        if self._settlement.ok:
            return AttemptResult.success(elapsed)
        return AttemptResult.failure(self._settlement.error, elapsed)

    def _connect(self, client: mqtt.Client, host: str, port: int, attempt: Attempt) -> None:
        """
        Open the connection without overrunning the attempt deadline.

        paho runs the TLS and WebSocket handshakes inside connect() with the
        keepalive as socket timeout, so the keepalive is capped to the time
        left before the deadline.
        """
        remaining = attempt.deadline - self._clock()
        if remaining <= 0:
            self._fail(client, ConnectTimeoutError("connect timeout"))
            return
        keepalive = max(1, min(self.config.keepalive, math.ceil(remaining)))

        try:
            client.connect(host, port, keepalive=keepalive)
        except mqtt.WebsocketConnectionError as e:
            # The upgrade got an HTTP answer other than 101, e.g. from a proxy
            logger.warning(
                f"WebSocket upgrade rejected (HTTP status and headers unavailable from paho): {e}"
            )
            self._fail(client, TransportError(f"WebSocket handshake failed: {e}"))
        except socket.timeout as e:
            logger.error(
                f"Connect timed out after {self.config.connect_timeout_ms} ms: {e}"
            )
            self._fail(client, ConnectTimeoutError(f"connect timeout: {e}"))
        except (OSError, ValueError) as e:
            if self._clock() >= attempt.deadline:
                self._fail(client, ConnectTimeoutError(f"connect timeout: {e}"))
            else:
                self._fail(client, TransportError(f"connect failed: {e}"))

    def _loop_timeout(self, attempt: Attempt, now: float) -> float:
        if self._connected:
            return self._loop_interval
        return max(0.0, min(self._loop_interval, attempt.deadline - now))

    def _fail(self, client: mqtt.Client, error: PublishAttemptError) -> None:
        if self._settlement.fail(error):
            self._close(client)

    def _close(self, client: mqtt.Client) -> None:
        """Close the connection without waiting for in-flight messages."""
        try:
            client.disconnect()
        except Exception as e:
            logger.debug(f"Error during disconnect: {e}")

        sock = client.socket()
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug(f"Error closing socket: {e}")

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """
        Internal callback for CONNACK.

        Publishes the payload once the broker accepted the connection.
        """
        if self._settlement.settled:
            return

        if _is_failure(reason_code):
            logger.error(f"MQTT connection refused: {reason_code}")
            self._fail(client, TransportError(f"connection refused: {reason_code}"))
            return

        self._connected = True
        topic = self.config.topic
        logger.info(f"Connected, publishing to {topic}")

        if not topic:
            self._fail(client, PublishAcknowledgementError("no topic configured"))
            return

        try:
            info = client.publish(topic, self.config.payload, qos=self.config.qos)
        except ValueError as e:
            self._fail(client, PublishAcknowledgementError(f"publish rejected: {e}"))
            return

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(f"Publish error: {mqtt.error_string(info.rc)}")
            self._fail(
                client,
                PublishAcknowledgementError(
                    f"publish rejected: {mqtt.error_string(info.rc)}"
                ),
            )
            return

        self._mid = info.mid

    def _on_publish(self, client, userdata, mid, reason_code=None, properties=None):
        """Internal callback for PUBACK. Disconnects once the message is acknowledged."""
        if self._settlement.settled or mid != self._mid:
            return

        if reason_code is not None and _is_failure(reason_code):
            logger.error(f"Publish error: {reason_code}")
            self._fail(client, PublishAcknowledgementError(f"publish failed: {reason_code}"))
            return

        logger.info(f"Published {self.config.payload} to {self.config.topic}")
        self._published = True
        client.disconnect()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code=None, properties=None):
        """Internal callback for disconnection events."""
        if self._settlement.settled:
            return

        if self._published:
            logger.debug("Disconnected after publish")
            self._settlement.succeed()
        else:
            logger.error(f"Connection closed before publish completed: {reason_code}")
            self._settlement.fail(TransportError(f"connection closed: {reason_code}"))
