"""SSH transport provider.

The session manager talks to the network only through these interfaces,
so tests can substitute a fake provider. AsyncSSHTransport is the real
implementation on top of asyncssh.
"""

import abc
import logging
from typing import Optional

import asyncssh

from hyperbolic_gpu.utils.errors import ConnectionFaultError
from .credentials import Credential

logger = logging.getLogger(__name__)


class CommandChannel(abc.ABC):
    """A per-command channel with separate stdout/stderr streams.

    ``stdout`` and ``stderr`` expose ``async read(n)`` returning decoded
    text, ``""`` at end of stream. Undecodable bytes are replaced, never
    raised.
    """

    stdout = None
    stderr = None

    @property
    @abc.abstractmethod
    def exit_status(self) -> Optional[int]:
        """Exit status reported on close, if the remote sent one."""

    @abc.abstractmethod
    def close(self) -> None:
        """Force the channel closed."""

    @abc.abstractmethod
    async def wait_closed(self) -> None:
        """Wait until the channel has fully closed."""


class TransportHandle(abc.ABC):
    """An established SSH connection."""

    @abc.abstractmethod
    async def open_channel(self, command: str) -> CommandChannel:
        """Open a channel executing ``command``."""

    @abc.abstractmethod
    def is_closed(self) -> bool:
        """True once the underlying connection has been lost or closed."""

    @abc.abstractmethod
    def close(self) -> None:
        """Start closing the connection."""

    @abc.abstractmethod
    async def wait_closed(self) -> None:
        """Wait until the connection has fully closed."""


class TransportProvider(abc.ABC):
    """Opens SSH connections."""

    @abc.abstractmethod
    async def connect(
        self,
        host: str,
        port: int,
        username: str,
        credential: Credential,
    ) -> TransportHandle:
        """Open a connection; returns once the session is ready.

        Raises on transport faults. Timeouts are enforced by the caller,
        which cancels this coroutine.
        """


class _ProcessChannel(CommandChannel):
    """CommandChannel backed by an asyncssh client process."""

    def __init__(self, process: asyncssh.SSHClientProcess):
        self._process = process
        self.stdout = process.stdout
        self.stderr = process.stderr

    @property
    def exit_status(self) -> Optional[int]:
        return self._process.exit_status

    def close(self) -> None:
        self._process.close()

    async def wait_closed(self) -> None:
        await self._process.wait_closed()


class _ConnectionWatcher(asyncssh.SSHClient):
    """Records when asyncssh reports the connection lost."""

    def __init__(self):
        self.lost = False

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.lost = True
        if exc:
            logger.warning(f"SSH connection lost: {exc}")


class AsyncSSHHandle(TransportHandle):
    """TransportHandle backed by an asyncssh connection."""

    def __init__(
        self,
        conn: asyncssh.SSHClientConnection,
        watcher: _ConnectionWatcher,
    ):
        self._conn = conn
        self._watcher = watcher

    async def open_channel(self, command: str) -> CommandChannel:
        process = await self._conn.create_process(command, errors="replace")
        return _ProcessChannel(process)

    def is_closed(self) -> bool:
        return self._watcher.lost

    def close(self) -> None:
        self._conn.close()

    async def wait_closed(self) -> None:
        await self._conn.wait_closed()


class AsyncSSHTransport(TransportProvider):
    """TransportProvider using asyncssh.

    Host keys are not verified unless ``known_hosts`` is given; rented
    nodes are ephemeral and their keys are not known in advance.
    """

    def __init__(self, known_hosts: Optional[str] = None):
        self.known_hosts = known_hosts

    async def connect(
        self,
        host: str,
        port: int,
        username: str,
        credential: Credential,
    ) -> TransportHandle:
        options = {
            "port": port,
            "username": username,
            "known_hosts": self.known_hosts,
        }

        if credential.is_password:
            options["password"] = credential.password
            options["client_keys"] = None
        else:
            try:
                key = asyncssh.import_private_key(credential.private_key)
            except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as e:
                # Passphrase-protected keys land here too; no prompting.
                raise ConnectionFaultError(
                    f"Unusable SSH key {credential.key_path}: {e}",
                    host=host,
                    port=port,
                ) from e
            options["client_keys"] = [key]

        watcher = _ConnectionWatcher()
        conn, _ = await asyncssh.create_connection(lambda: watcher, host, **options)
        return AsyncSSHHandle(conn, watcher)
