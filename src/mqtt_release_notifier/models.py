"""Domain models for the MQTT release notifier."""

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import urlsplit

from .errors import PublishAttemptError

DEFAULT_PAYLOAD = "ci-test"
DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_RETRY_DELAY_MS = 3000
DEFAULT_CONNECT_TIMEOUT_MS = 15000
DEFAULT_USER_AGENT = "github-selfhosted-mqtt-publisher/1.0"

# Extra time granted on top of the connect timeout before an attempt is abandoned
CONNECT_GRACE_MS = 5000

ACCESS_CLIENT_ID_HEADER = "CF-Access-Client-Id"
ACCESS_CLIENT_SECRET_HEADER = "CF-Access-Client-Secret"

# scheme -> (transport, tls, default port)
_SCHEMES = {
    "mqtt": ("tcp", False, 1883),
    "tcp": ("tcp", False, 1883),
    "mqtts": ("tcp", True, 8883),
    "ssl": ("tcp", True, 8883),
    "ws": ("websockets", False, 80),
    "wss": ("websockets", True, 443),
}


@dataclass(frozen=True)
class BrokerAddress:
    """Broker endpoint parsed from a connection URL."""

    scheme: str
    host: str
    port: int
    path: str = "/mqtt"

    @classmethod
    def parse(cls, url: str) -> "BrokerAddress":
        """
        Parse a broker URL such as ``wss://broker.example.com/mqtt``.

        Args:
            url: Broker connection URL

        Returns:
            BrokerAddress instance

        Raises:
            ValueError: If the scheme is unsupported or the host is missing
        """
        parts = urlsplit(url.strip())
        scheme = parts.scheme.lower()
        if scheme not in _SCHEMES:
            supported = ", ".join(sorted(_SCHEMES))
            raise ValueError(
                f"Unsupported broker URL scheme '{parts.scheme}' (expected one of: {supported})"
            )

        try:
            port = parts.port
        except ValueError as e:
            raise ValueError(f"Invalid port in broker URL: {e}") from e

        if not parts.hostname:
            raise ValueError(f"Broker URL has no host: {url}")

        path = parts.path or "/mqtt"
        if parts.query:
            path = f"{path}?{parts.query}"

        return cls(
            scheme=scheme,
            host=parts.hostname,
            port=port or _SCHEMES[scheme][2],
            path=path,
        )

    @property
    def transport(self) -> str:
        """paho transport name: 'tcp' or 'websockets'."""
        return _SCHEMES[self.scheme][0]

    @property
    def tls(self) -> bool:
        """Whether the connection is wrapped in TLS."""
        return _SCHEMES[self.scheme][1]

    def __str__(self) -> str:
        if self.transport == "websockets":
            return f"{self.scheme}://{self.host}:{self.port}{self.path}"
        return f"{self.scheme}://{self.host}:{self.port}"


@dataclass(frozen=True)
class PublisherConfig:
    """Immutable configuration snapshot, built once at startup."""

    broker_url: str
    topic: Optional[str] = None
    payload: str = DEFAULT_PAYLOAD
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    access_client_id: Optional[str] = None
    access_client_secret: Optional[str] = field(default=None, repr=False)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS
    client_id: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    keepalive: int = 60
    qos: int = 1

    def __post_init__(self):
        """Validate the configuration."""
        if not self.broker_url:
            raise ValueError("Broker URL must not be empty")
        if self.max_attempts < 1:
            raise ValueError(f"Attempts must be at least 1, got {self.max_attempts}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"Retry delay must be non-negative, got {self.retry_delay_ms}")
        if self.connect_timeout_ms <= 0:
            raise ValueError(
                f"Connect timeout must be positive, got {self.connect_timeout_ms}"
            )
        if self.qos not in (0, 1, 2):
            raise ValueError(f"QoS must be 0, 1, or 2, got {self.qos}")

    @property
    def broker(self) -> BrokerAddress:
        """Parsed broker address."""
        return BrokerAddress.parse(self.broker_url)

    @property
    def deadline_seconds(self) -> float:
        """Time an attempt may take to connect before it is abandoned."""
        return (self.connect_timeout_ms + CONNECT_GRACE_MS) / 1000.0

    def access_headers(self) -> Dict[str, str]:
        """
        Access-control headers for the WebSocket upgrade request.

        Both the client id and the secret must be set; if only one of them
        is present neither header is sent.

        Returns:
            Header dictionary, possibly empty
        """
        if self.access_client_id and self.access_client_secret:
            return {
                ACCESS_CLIENT_ID_HEADER: self.access_client_id,
                ACCESS_CLIENT_SECRET_HEADER: self.access_client_secret,
            }
        return {}

    def websocket_headers(self) -> Dict[str, str]:
        """Headers sent with the WebSocket upgrade request."""
        headers = {"User-Agent": self.user_agent}
        headers.update(self.access_headers())
        return headers

    def describe(self) -> str:
        """Human-readable summary without secrets."""
        return (
            f"broker={self.broker_url}, topic={self.topic}, "
            f"attempts={self.max_attempts}, retry_delay={self.retry_delay_ms}ms, "
            f"connect_timeout={self.connect_timeout_ms}ms, "
            f"auth={'yes' if self.username else 'no'}, "
            f"access_headers={'yes' if self.access_headers() else 'no'}"
        )


@dataclass
class Attempt:
    """One connect-publish-disconnect cycle."""

    number: int  # 1-based
    total: int
    deadline: float  # monotonic clock seconds

    def __post_init__(self):
        """Validate the attempt ordinal."""
        if self.number < 1:
            raise ValueError(f"Attempt number must be 1-based, got {self.number}")

    @property
    def is_last(self) -> bool:
        """True when no attempts remain after this one."""
        return self.number >= self.total

    def __str__(self) -> str:
        return f"{self.number}/{self.total}"


@dataclass
class AttemptResult:
    """Terminal result of an attempt."""

    ok: bool
    error: Optional[PublishAttemptError] = None
    elapsed: float = 0.0

    @classmethod
    def success(cls, elapsed: float = 0.0) -> "AttemptResult":
        return cls(ok=True, elapsed=elapsed)

    @classmethod
    def failure(cls, error: PublishAttemptError, elapsed: float = 0.0) -> "AttemptResult":
        return cls(ok=False, error=error, elapsed=elapsed)

    def __str__(self) -> str:
        if self.ok:
            return f"AttemptResult(ok, elapsed={self.elapsed:.2f}s)"
        return f"AttemptResult(failed: {self.error}, elapsed={self.elapsed:.2f}s)"
