"""MQTT publishing built on paho-mqtt."""

from .client import PublishAttempt, create_client
from .settlement import Settlement

__all__ = ["PublishAttempt", "Settlement", "create_client"]
