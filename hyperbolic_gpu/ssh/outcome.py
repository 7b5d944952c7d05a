"""Result types returned by session operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from hyperbolic_gpu.utils.errors import ErrorKind, HyperbolicGPUError


class SessionState(str, Enum):
    """Session lifecycle states.

    Lifecycle: disconnected → connecting → connected → disconnected
                                  ↓
                             disconnected (attempt failed)
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class Outcome:
    """Tagged success/error result.

    Callers switch on ``kind`` rather than parsing ``message``.
    """

    ok: bool
    message: str
    kind: Optional[ErrorKind] = None
    data: Any = None

    @classmethod
    def success(cls, message: str, data: Any = None) -> "Outcome":
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, data: Any = None) -> "Outcome":
        return cls(ok=False, message=message, kind=kind, data=data)

    @classmethod
    def from_error(cls, error: HyperbolicGPUError, data: Any = None) -> "Outcome":
        """Build a failure outcome from a raised error."""
        return cls.failure(error.kind, str(error), data=data)

    @property
    def retryable(self) -> bool:
        return self.kind is not None and self.kind.retryable


@dataclass
class CommandResult:
    """Result of one remote command."""

    stdout: str
    stderr: str
    exit_status: Optional[int] = None

    @property
    def is_error(self) -> bool:
        """Any stderr output, or a non-zero exit status, marks an error."""
        if self.stderr:
            return True
        return self.exit_status not in (None, 0)

    @property
    def text(self) -> str:
        if not self.is_error:
            return self.stdout
        if self.stderr:
            return f"Error: {self.stderr}\nOutput: {self.stdout}"
        return f"Error: command exited with status {self.exit_status}\nOutput: {self.stdout}"


@dataclass(frozen=True)
class ConnectionInfo:
    """Snapshot of the session's connection details."""

    connected: bool
    host: Optional[str] = None
    username: Optional[str] = None
    port: Optional[int] = None

    def describe(self) -> str:
        if self.connected:
            return f"Connected to {self.host} as {self.username}"
        return "Not connected"
