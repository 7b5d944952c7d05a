"""Remote SSH session management."""

from .credentials import Credential, resolve_credential
from .manager import SessionManager
from .outcome import CommandResult, ConnectionInfo, Outcome, SessionState
from .transport import (
    AsyncSSHTransport,
    CommandChannel,
    TransportHandle,
    TransportProvider,
)

__all__ = [
    "Credential",
    "resolve_credential",
    "SessionManager",
    "CommandResult",
    "ConnectionInfo",
    "Outcome",
    "SessionState",
    "AsyncSSHTransport",
    "CommandChannel",
    "TransportHandle",
    "TransportProvider",
]
