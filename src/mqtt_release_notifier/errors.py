"""Errors raised while publishing a release notification."""


class PublishAttemptError(Exception):
    """Base exception for a failed publish attempt. Always retryable."""

    pass


class ConnectTimeoutError(PublishAttemptError):
    """Raised when the broker connection is not established before the deadline."""

    pass


class TransportError(PublishAttemptError):
    """Raised on DNS, TCP, TLS, WebSocket or MQTT connection failures."""

    pass


class PublishAcknowledgementError(PublishAttemptError):
    """Raised when the publish is rejected or not acknowledged."""

    pass
