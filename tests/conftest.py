"""Pytest configuration and fixtures."""

import logging
import sys
from pathlib import Path
from types import SimpleNamespace

import paho.mqtt.client as mqtt
import pytest
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode

# Add the src directory to sys.path so the package imports without installing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from mqtt_release_notifier.config import ENV_KEYS  # noqa: E402


CONNACK_OK = ReasonCode(PacketTypes.CONNACK, "Success")
CONNACK_NOT_AUTHORIZED = ReasonCode(PacketTypes.CONNACK, "Not authorized")
PUBACK_OK = ReasonCode(PacketTypes.PUBACK, "Success")
PUBACK_NOT_AUTHORIZED = ReasonCode(PacketTypes.PUBACK, "Not authorized")


class FakeClock:
    """Monotonic clock advanced by hand or by FakeClient.loop()."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSocket:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeClient:
    """
    Stand-in for paho's Client driven by PublishAttempt.

    Broker responses are queued and delivered one per loop() call, the
    way paho delivers them from its network loop.
    """

    def __init__(self, clock=None):
        self.clock = clock
        self.on_connect = None
        self.on_publish = None
        self.on_disconnect = None

        # Behaviour knobs
        self.connect_error = None
        self.connect_delay = 0.0
        self.connack = CONNACK_OK
        self.send_connack = True
        self.publish_rc = mqtt.MQTT_ERR_SUCCESS
        self.puback = PUBACK_OK
        self.send_puback = True
        self.loop_rc = mqtt.MQTT_ERR_SUCCESS

        # Recorded interactions
        self.connect_calls = []
        self.published = []
        self.loop_timeouts = []
        self.disconnect_calls = 0

        self.sock = None
        self._pending = []
        self._mid = 0

    def connect(self, host, port=1883, keepalive=60):
        self.connect_calls.append((host, port, keepalive))
        if self.connect_delay and self.clock is not None:
            self.clock.advance(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.sock = FakeSocket()
        if self.send_connack:
            self._pending.append("connack")

    def socket(self):
        if self.sock is None or self.sock.closed:
            return None
        return self.sock

    def loop(self, timeout=1.0):
        self.loop_timeouts.append(timeout)
        if self.clock is not None:
            self.clock.advance(timeout)
        if self.loop_rc != mqtt.MQTT_ERR_SUCCESS:
            return self.loop_rc
        if self._pending:
            self._deliver(self._pending.pop(0))
        return mqtt.MQTT_ERR_SUCCESS

    def _deliver(self, event):
        if event == "connack":
            self.on_connect(self, None, {}, self.connack, None)
        elif event == "puback":
            self.on_publish(self, None, self._mid, self.puback, None)
        elif event == "disconnect":
            self.sock.closed = True
            self.on_disconnect(self, None, {}, 0, None)

    def publish(self, topic, payload=None, qos=0, retain=False):
        self._mid += 1
        self.published.append((topic, payload, qos))
        if self.publish_rc == mqtt.MQTT_ERR_SUCCESS and self.send_puback:
            self._pending.append("puback")
        return SimpleNamespace(mid=self._mid, rc=self.publish_rc)

    def disconnect(self):
        self.disconnect_calls += 1
        if self.socket() is None:
            return mqtt.MQTT_ERR_NO_CONN
        self._pending.append("disconnect")
        return mqtt.MQTT_ERR_SUCCESS


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_client(fake_clock):
    return FakeClient(clock=fake_clock)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the notifier reads from the environment."""
    for name in list(ENV_KEYS) + ["MQTT_CONFIG_FILE", "MQTT_LOG_LEVEL"]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def restore_logging():
    """Restore root logger handlers replaced by setup_logging()."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
