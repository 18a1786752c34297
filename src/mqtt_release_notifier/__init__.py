"""MQTT Release Notifier.

Publishes a single release notification to an MQTT broker, typically over
secure WebSockets, retrying with exponential backoff.
"""

__version__ = "0.1.0"

from .config import Config, ConfigError, ConfigMissingError, load_config
from .errors import (
    ConnectTimeoutError,
    PublishAcknowledgementError,
    PublishAttemptError,
    TransportError,
)
from .models import Attempt, AttemptResult, BrokerAddress, PublisherConfig
from .retry import PublishOrchestrator, RetryPolicy

__all__ = [
    "PublisherConfig",
    "BrokerAddress",
    "Attempt",
    "AttemptResult",
    "Config",
    "ConfigError",
    "ConfigMissingError",
    "load_config",
    "PublishAttemptError",
    "ConnectTimeoutError",
    "TransportError",
    "PublishAcknowledgementError",
    "PublishOrchestrator",
    "RetryPolicy",
]
