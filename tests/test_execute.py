"""Tests for command execution over a session."""

import asyncio

import pytest

from hyperbolic_gpu.ssh import CommandResult, SessionState
from hyperbolic_gpu.utils.errors import ErrorKind
from fakes import FakeChannel


async def wait_for_channel(handle, count: int = 1):
    for _ in range(100):
        if len(handle.open_calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError("channel was never opened")


class TestExecuteNotConnected:
    """execute() without a live session."""

    async def test_never_connected(self, manager, transport):
        """Should fail with NOT_CONNECTED."""
        outcome = await manager.execute("ls")

        assert not outcome.ok
        assert outcome.kind == ErrorKind.NOT_CONNECTED
        assert transport.connect_calls == []

    async def test_after_disconnect_opens_no_channel(self, connected, transport):
        """No channel should be opened once disconnected."""
        await connected.disconnect()

        outcome = await connected.execute("ls")

        assert outcome.kind == ErrorKind.NOT_CONNECTED
        assert transport.handles[0].open_calls == []


class TestExecuteResults:
    """Aggregation and classification of command output."""

    async def test_stdout_success(self, connected, transport):
        """Chunks should be joined and returned as the message."""
        transport.channels.append(FakeChannel(stdout=["hello ", "world\n"]))

        outcome = await connected.execute("echo hello world")

        assert outcome.ok
        assert outcome.message == "hello world\n"
        assert isinstance(outcome.data, CommandResult)
        assert outcome.data.exit_status == 0
        assert transport.handles[0].open_calls == ["echo hello world"]

    async def test_stderr_marks_error(self, connected, transport):
        """Any stderr output should classify as a command fault."""
        transport.channels.append(
            FakeChannel(stdout=["partial"], stderr=["boom"], exit_status=0)
        )

        outcome = await connected.execute("make")

        assert not outcome.ok
        assert outcome.kind == ErrorKind.COMMAND_FAULT
        assert outcome.message == "Error: boom\nOutput: partial"
        assert outcome.data.stdout == "partial"
        assert outcome.data.stderr == "boom"
        assert connected.is_connected()

    async def test_command_fault_is_not_retryable(self, connected, transport):
        transport.channels.append(FakeChannel(stderr=["denied"], exit_status=1))

        outcome = await connected.execute("rm /etc/passwd")

        assert outcome.kind == ErrorKind.COMMAND_FAULT
        assert not outcome.retryable

    async def test_nonzero_exit_marks_error(self, connected, transport):
        """A non-zero exit status without stderr is still an error."""
        transport.channels.append(FakeChannel(stdout=["out"], exit_status=2))

        outcome = await connected.execute("false")

        assert outcome.kind == ErrorKind.COMMAND_FAULT
        assert "status 2" in outcome.message
        assert "Output: out" in outcome.message

    async def test_chunks_joined_in_order(self, connected, transport):
        """Output arriving in several chunks should be concatenated."""
        transport.channels.append(FakeChannel(stdout=["caf", "é\n", "menu\n"]))

        outcome = await connected.execute("cat menu")

        assert outcome.message == "café\nmenu\n"

    async def test_channel_closed_after_result(self, connected, transport):
        """The result should only be returned after the channel closed."""
        channel = FakeChannel(stdout=["done"])
        transport.channels.append(channel)

        await connected.execute("true")

        assert channel.closed


class TestExecuteFaults:
    """Transport failures while a command runs."""

    async def test_open_failure_disconnects(self, connected, transport):
        """Failing to open a channel should drop the session."""
        transport.handles[0].open_error = OSError("channel open failed")

        outcome = await connected.execute("ls")

        assert outcome.kind == ErrorKind.CHANNEL_FAULT
        assert "channel open failed" in outcome.message
        assert connected.state == SessionState.DISCONNECTED

    async def test_read_failure_disconnects(self, connected, transport):
        """A transport drop mid-command should drop the session."""
        transport.channels.append(
            FakeChannel(stdout=["part"], error=ConnectionResetError("reset by peer"))
        )

        outcome = await connected.execute("tail -f log")

        assert not outcome.ok
        assert outcome.kind == ErrorKind.CHANNEL_FAULT
        assert "reset by peer" in outcome.message
        assert not connected.is_connected()

    async def test_disconnect_resolves_running_command(self, connected, transport):
        """Disconnecting mid-command should resolve execute, not hang."""
        channel = FakeChannel(hang=True)
        transport.channels.append(channel)

        task = asyncio.ensure_future(connected.execute("sleep 1000"))
        await wait_for_channel(transport.handles[0])
        await asyncio.sleep(0)

        await connected.disconnect()
        outcome = await asyncio.wait_for(task, timeout=1)

        assert outcome.kind == ErrorKind.CHANNEL_FAULT
        assert channel.closed
        assert connected.state == SessionState.DISCONNECTED

    async def test_command_timeout_keeps_session(self, connected, transport):
        """A per-call timeout should abandon the command, not the session."""
        channel = FakeChannel(hang=True)
        transport.channels.append(channel)

        outcome = await connected.execute("sleep 1000", timeout=0.05)

        assert outcome.kind == ErrorKind.COMMAND_TIMEOUT
        assert channel.closed
        assert connected.is_connected()


class TestExecuteSerialization:
    """Concurrent execute() calls."""

    async def test_concurrent_calls_serialize(self, connected, transport):
        """Only one channel should be open at a time."""
        for i in range(3):
            transport.channels.append(FakeChannel(stdout=[f"out{i}"], delay=0.01))

        outcomes = await asyncio.gather(
            connected.execute("a"),
            connected.execute("b"),
            connected.execute("c"),
        )

        handle = transport.handles[0]
        assert [o.message for o in outcomes] == ["out0", "out1", "out2"]
        assert handle.open_calls == ["a", "b", "c"]
        assert handle.max_active == 1

    async def test_queued_command_after_disconnect(self, connected, transport):
        """A command queued behind a disconnected one should not run."""
        transport.channels.append(FakeChannel(hang=True))

        first = asyncio.ensure_future(connected.execute("sleep 1000"))
        await wait_for_channel(transport.handles[0])
        second = asyncio.ensure_future(connected.execute("ls"))
        await asyncio.sleep(0)

        await connected.disconnect()
        results = await asyncio.wait_for(asyncio.gather(first, second), timeout=1)

        assert results[0].kind == ErrorKind.CHANNEL_FAULT
        assert results[1].kind == ErrorKind.NOT_CONNECTED
        assert transport.handles[0].open_calls == ["sleep 1000"]
