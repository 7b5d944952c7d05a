"""Error hierarchy for Hyperbolic GPU.

Every error carries an ErrorKind so the calling layer can decide
retryability without inspecting message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kinds of failure reported in tagged outcomes."""

    KEY_NOT_FOUND = "key_not_found"
    KEY_UNREADABLE = "key_unreadable"
    CONNECTION_TIMEOUT = "connection_timeout"
    CONNECTION_FAULT = "connection_fault"
    NOT_CONNECTED = "not_connected"
    COMMAND_FAULT = "command_fault"
    COMMAND_TIMEOUT = "command_timeout"
    CHANNEL_FAULT = "channel_fault"
    CANDIDATE_NOT_FOUND = "candidate_not_found"
    INSUFFICIENT_CAPACITY = "insufficient_capacity"
    INVALID_REQUEST = "invalid_request"
    MARKETPLACE_ERROR = "marketplace_error"
    CONFIG_ERROR = "config_error"

    @property
    def retryable(self) -> bool:
        """Whether retrying without caller action can plausibly succeed."""
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {
        ErrorKind.CONNECTION_TIMEOUT,
        ErrorKind.CONNECTION_FAULT,
        ErrorKind.CHANNEL_FAULT,
        ErrorKind.COMMAND_TIMEOUT,
        ErrorKind.MARKETPLACE_ERROR,
    }
)


class HyperbolicGPUError(Exception):
    """Base exception for all Hyperbolic GPU errors."""

    kind: ErrorKind = ErrorKind.MARKETPLACE_ERROR


class ConfigError(HyperbolicGPUError):
    """Raised when required configuration is missing or invalid."""

    kind = ErrorKind.CONFIG_ERROR


# Session errors


class SessionError(HyperbolicGPUError):
    """Base exception for remote session failures."""

    kind = ErrorKind.CONNECTION_FAULT

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        super().__init__(message)
        self.host = host
        self.port = port


class KeyNotFoundError(SessionError):
    """Raised when the private key file does not exist."""

    kind = ErrorKind.KEY_NOT_FOUND

    def __init__(self, path: str):
        super().__init__(f"SSH key file not found at {path}")
        self.path = path


class KeyReadError(SessionError):
    """Raised when the private key file exists but cannot be read."""

    kind = ErrorKind.KEY_UNREADABLE

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to read SSH key file {path}: {reason}")
        self.path = path
        self.reason = reason


class ConnectionTimeoutError(SessionError):
    """Raised when the transport neither succeeds nor fails in time."""

    kind = ErrorKind.CONNECTION_TIMEOUT

    def __init__(
        self,
        timeout: float,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        super().__init__(
            f"SSH connection timeout after {timeout:g}s", host=host, port=port
        )
        self.timeout = timeout


class ConnectionFaultError(SessionError):
    """Raised when the transport reports a failure while connecting."""

    kind = ErrorKind.CONNECTION_FAULT


class NotConnectedError(SessionError):
    """Raised when a command is issued without an active session."""

    kind = ErrorKind.NOT_CONNECTED

    def __init__(self, message: str = "No active SSH connection. Please connect first."):
        super().__init__(message)


class CommandFaultError(SessionError):
    """Raised when a remote command reports failure."""

    kind = ErrorKind.COMMAND_FAULT

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command


class CommandTimeoutError(SessionError):
    """Raised when a remote command exceeds its per-call timeout."""

    kind = ErrorKind.COMMAND_TIMEOUT

    def __init__(self, timeout: float, command: Optional[str] = None):
        super().__init__(f"Command timeout after {timeout:g}s")
        self.timeout = timeout
        self.command = command


class ChannelFaultError(SessionError):
    """Raised when the transport drops while a command channel is open."""

    kind = ErrorKind.CHANNEL_FAULT


# Marketplace errors


class MarketplaceError(HyperbolicGPUError):
    """Base exception for marketplace failures."""

    kind = ErrorKind.MARKETPLACE_ERROR


class MarketplaceAPIError(MarketplaceError):
    """Raised when the Hyperbolic API returns an error or is unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(MarketplaceAPIError):
    """Raised when the API token is rejected (HTTP 401/403)."""

    kind = ErrorKind.CONFIG_ERROR


class RateLimitError(MarketplaceAPIError):
    """Raised when rate limited by the Hyperbolic API (HTTP 429)."""

    def __init__(
        self,
        message: str = "Rate limited by Hyperbolic API",
        retry_after: Optional[int] = None,
        status_code: int = 429,
    ):
        super().__init__(message, status_code)
        self.retry_after = retry_after


class CandidateNotFoundError(MarketplaceError):
    """Raised when no marketplace node matches the requested cluster/node."""

    kind = ErrorKind.CANDIDATE_NOT_FOUND

    def __init__(self, cluster_name: str, node_name: Optional[str] = None):
        if node_name is None:
            message = f'Cluster "{cluster_name}" not found'
        else:
            message = f'Node "{node_name}" in cluster "{cluster_name}" not found'
        super().__init__(message)
        self.cluster_name = cluster_name
        self.node_name = node_name


class InsufficientCapacityError(MarketplaceError):
    """Raised when a rental asks for more GPUs than the node has free."""

    kind = ErrorKind.INSUFFICIENT_CAPACITY

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Requested {requested} GPU(s) but only {available} available"
        )
        self.requested = requested
        self.available = available


class InvalidRentalRequestError(MarketplaceError):
    """Raised when rental parameters are rejected before any API call."""

    kind = ErrorKind.INVALID_REQUEST
