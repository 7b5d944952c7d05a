"""Remote session manager.

Owns at most one live SSH session and runs commands over it. Every
public operation returns an Outcome instead of raising, so the calling
layer can switch on ErrorKind.

Usage:
    manager = SessionManager(AsyncSSHTransport())
    outcome = await manager.connect("203.0.113.7", "ubuntu")
    if outcome.ok:
        result = await manager.execute("nvidia-smi")
        print(result.message)
    await manager.disconnect()
"""

import asyncio
import logging
from typing import Optional

from hyperbolic_gpu.utils.errors import (
    ChannelFaultError,
    CommandFaultError,
    CommandTimeoutError,
    ConnectionFaultError,
    ConnectionTimeoutError,
    NotConnectedError,
    SessionError,
)
from .credentials import resolve_credential
from .outcome import CommandResult, ConnectionInfo, Outcome, SessionState
from .transport import CommandChannel, TransportHandle, TransportProvider

logger = logging.getLogger(__name__)

DEFAULT_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 10.0  # seconds
READ_CHUNK_SIZE = 65536


class SessionManager:
    """Manages a single SSH session.

    Construct one per process and pass it to whatever needs it. A new
    connect always tears down the previous session first. Commands are
    serialized on an execution lock; disconnect cancels a running command.
    """

    def __init__(
        self,
        transport: TransportProvider,
        default_key_path: Optional[str] = None,
    ):
        """Initialize the manager.

        Args:
            transport: Provider used to open connections
            default_key_path: Key path used when connect() gets neither a
                password nor a key path (usually SSH_PRIVATE_KEY_PATH)
        """
        self.transport = transport
        self.default_key_path = default_key_path

        self._state = SessionState.DISCONNECTED
        self._handle: Optional[TransportHandle] = None
        self._host: Optional[str] = None
        self._username: Optional[str] = None
        self._port: Optional[int] = None

        self._connect_lock = asyncio.Lock()
        self._exec_lock = asyncio.Lock()
        self._exec_task: Optional[asyncio.Task] = None
        self._channel: Optional[CommandChannel] = None

    @property
    def state(self) -> SessionState:
        return self._state

    # Connection lifecycle

    async def connect(
        self,
        host: str,
        username: str,
        password: Optional[str] = None,
        key_path: Optional[str] = None,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> Outcome:
        """Open a new session, replacing any existing one.

        Args:
            host: Hostname or IP address
            username: SSH username
            password: Password; takes precedence over key_path
            key_path: Private key path (default: default_key_path,
                then ~/.ssh/id_rsa)
            port: SSH port
            timeout: Seconds to wait for the session to become ready

        Returns:
            Outcome; ok with ConnectionInfo as data on success
        """
        async with self._connect_lock:
            await self.disconnect()

            try:
                credential = resolve_credential(
                    password=password,
                    key_path=key_path,
                    default_key_path=self.default_key_path,
                )
            except SessionError as e:
                logger.error(f"SSH key error: {e}")
                return Outcome.from_error(e)

            logger.info(
                f"Attempting to connect to {host}:{port} as {username} "
                f"({credential.method})"
            )
            self._state = SessionState.CONNECTING

            try:
                handle = await asyncio.wait_for(
                    self.transport.connect(host, port, username, credential),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                self._state = SessionState.DISCONNECTED
                error = ConnectionTimeoutError(timeout, host=host, port=port)
                logger.error(f"SSH connection error: {error}")
                return Outcome.from_error(error)
            except asyncio.CancelledError:
                self._state = SessionState.DISCONNECTED
                raise
            except Exception as e:
                self._state = SessionState.DISCONNECTED
                message = str(e) or type(e).__name__
                error = ConnectionFaultError(message, host=host, port=port)
                logger.error(f"SSH connection error: {message}")
                return Outcome.from_error(error)

            self._handle = handle
            self._host = host
            self._username = username
            self._port = port
            self._state = SessionState.CONNECTED
            logger.info(f"SSH connection established to {host}")

            return Outcome.success(
                f"Successfully connected to {host} as {username}",
                data=self.get_connection_info(),
            )

    def is_connected(self) -> bool:
        """Check for a live session.

        A handle that reports itself closed drops the manager to
        DISCONNECTED without raising.
        """
        if self._state != SessionState.CONNECTED or self._handle is None:
            return False
        if self._handle.is_closed():
            logger.warning(f"SSH session to {self._host} was closed remotely")
            self._clear()
            return False
        return True

    async def disconnect(self) -> None:
        """Close the session. Safe to call when not connected."""
        if self._exec_task is not None and not self._exec_task.done():
            self._exec_task.cancel()
        if self._channel is not None:
            self._channel.close()

        handle = self._handle
        host = self._host
        self._clear()

        if handle is None:
            return

        try:
            handle.close()
            await handle.wait_closed()
            logger.info(f"SSH connection to {host} closed")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error while closing SSH connection to {host}: {e}")

    def get_connection_info(self) -> ConnectionInfo:
        """Get current connection details."""
        if not self.is_connected():
            return ConnectionInfo(connected=False)
        return ConnectionInfo(
            connected=True,
            host=self._host,
            username=self._username,
            port=self._port,
        )

    def describe(self) -> str:
        """Human-readable connection status."""
        return self.get_connection_info().describe()

    def _clear(self) -> None:
        self._handle = None
        self._host = None
        self._username = None
        self._port = None
        self._state = SessionState.DISCONNECTED

    # Command execution

    async def execute(
        self,
        command: str,
        timeout: Optional[float] = None,
    ) -> Outcome:
        """Run a command over the session.

        Concurrent calls queue behind one another.

        Args:
            command: Command line to execute remotely
            timeout: Optional seconds before the command is abandoned
                (default: wait indefinitely)

        Returns:
            Outcome with CommandResult as data when the command ran
        """
        async with self._exec_lock:
            if not self.is_connected():
                return Outcome.from_error(NotConnectedError())

            handle = self._handle
            logger.info(f"Executing command: {command}")

            try:
                channel = await handle.open_channel(command)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                return self._channel_fault(handle, f"SSH command error: {e}")

            self._channel = channel
            self._exec_task = asyncio.ensure_future(self._collect(channel))
            try:
                done, _ = await asyncio.wait({self._exec_task}, timeout=timeout)
            except asyncio.CancelledError:
                self._exec_task.cancel()
                channel.close()
                raise
            finally:
                self._channel = None

            task = self._exec_task
            self._exec_task = None

            if not done:
                task.cancel()
                channel.close()
                await asyncio.wait({task})
                error = CommandTimeoutError(timeout, command=command)
                logger.warning(f"{error}: {command}")
                return Outcome.from_error(error)

            if task.cancelled():
                error = ChannelFaultError("SSH session closed while command was running")
                logger.warning(str(error))
                return Outcome.from_error(error)

            exc = task.exception()
            if exc is not None:
                return self._channel_fault(handle, f"SSH execution error: {exc}")

            result = task.result()
            logger.info(f"Command completed with exit status: {result.exit_status}")
            if result.is_error:
                error = CommandFaultError(result.text, command=command)
                return Outcome.from_error(error, data=result)
            return Outcome.success(result.text, data=result)

    async def _collect(self, channel: CommandChannel) -> CommandResult:
        """Drain both streams and wait for the channel to close."""
        stdout, stderr = await asyncio.gather(
            _drain(channel.stdout, "stdout"),
            _drain(channel.stderr, "stderr"),
        )
        await channel.wait_closed()
        return CommandResult(
            stdout=stdout,
            stderr=stderr,
            exit_status=channel.exit_status,
        )

    def _channel_fault(self, handle: TransportHandle, message: str) -> Outcome:
        logger.error(message)
        if self._handle is handle:
            self._clear()
        try:
            handle.close()
        except Exception as e:
            logger.debug(f"Ignoring close failure after channel fault: {e}")
        return Outcome.from_error(ChannelFaultError(message))


async def _drain(stream, name: str) -> str:
    chunks = []
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        if chunk.strip():
            logger.debug(f"SSH {name}: {chunk.strip()}")
    return "".join(chunks)
