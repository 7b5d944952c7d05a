"""Tests for error hierarchy."""

import pytest

from hyperbolic_gpu.utils.errors import (
    ErrorKind,
    HyperbolicGPUError,
    ConfigError,
    SessionError,
    KeyNotFoundError,
    KeyReadError,
    ConnectionTimeoutError,
    ConnectionFaultError,
    NotConnectedError,
    CommandFaultError,
    CommandTimeoutError,
    ChannelFaultError,
    MarketplaceError,
    MarketplaceAPIError,
    AuthenticationError,
    RateLimitError,
    CandidateNotFoundError,
    InsufficientCapacityError,
    InvalidRentalRequestError,
)


class TestErrorHierarchy:
    """Tests for error class hierarchy."""

    def test_all_errors_inherit_from_base(self):
        """All errors should inherit from HyperbolicGPUError."""
        errors = [
            ConfigError("test"),
            KeyNotFoundError("/k"),
            KeyReadError("/k", "denied"),
            ConnectionTimeoutError(10),
            ConnectionFaultError("test"),
            NotConnectedError(),
            CommandFaultError("test"),
            CommandTimeoutError(5),
            ChannelFaultError("test"),
            MarketplaceAPIError("test"),
            RateLimitError(),
            CandidateNotFoundError("c"),
            InsufficientCapacityError(2, 1),
        ]
        for error in errors:
            assert isinstance(error, HyperbolicGPUError)
            assert isinstance(error.kind, ErrorKind)

    def test_session_errors(self):
        """Session errors should inherit from SessionError."""
        for error in [
            KeyNotFoundError("/k"),
            ConnectionTimeoutError(10),
            NotConnectedError(),
            ChannelFaultError("test"),
        ]:
            assert isinstance(error, SessionError)

    def test_marketplace_errors(self):
        """Marketplace errors should inherit from MarketplaceError."""
        for error in [
            MarketplaceAPIError("test"),
            AuthenticationError("test", 401),
            RateLimitError(),
            CandidateNotFoundError("c"),
            InsufficientCapacityError(2, 1),
            InvalidRentalRequestError("x"),
        ]:
            assert isinstance(error, MarketplaceError)


class TestErrorKinds:
    """Tests for kinds and retryability."""

    @pytest.mark.parametrize(
        "error,kind",
        [
            (KeyNotFoundError("/k"), ErrorKind.KEY_NOT_FOUND),
            (KeyReadError("/k", "x"), ErrorKind.KEY_UNREADABLE),
            (ConnectionTimeoutError(10), ErrorKind.CONNECTION_TIMEOUT),
            (ConnectionFaultError("x"), ErrorKind.CONNECTION_FAULT),
            (NotConnectedError(), ErrorKind.NOT_CONNECTED),
            (CommandFaultError("x"), ErrorKind.COMMAND_FAULT),
            (ChannelFaultError("x"), ErrorKind.CHANNEL_FAULT),
            (CandidateNotFoundError("c"), ErrorKind.CANDIDATE_NOT_FOUND),
            (InsufficientCapacityError(2, 1), ErrorKind.INSUFFICIENT_CAPACITY),
            (AuthenticationError("x", 401), ErrorKind.CONFIG_ERROR),
            (InvalidRentalRequestError("x"), ErrorKind.INVALID_REQUEST),
        ],
    )
    def test_kind(self, error, kind):
        assert error.kind == kind

    def test_retryable(self):
        """Timeouts are retryable, missing keys are not."""
        assert ErrorKind.CONNECTION_TIMEOUT.retryable
        assert ErrorKind.CHANNEL_FAULT.retryable
        assert not ErrorKind.KEY_NOT_FOUND.retryable
        assert not ErrorKind.INSUFFICIENT_CAPACITY.retryable
        assert not ErrorKind.NOT_CONNECTED.retryable


class TestKeyNotFoundError:
    def test_captures_path(self):
        error = KeyNotFoundError("/home/u/.ssh/id_rsa")
        assert error.path == "/home/u/.ssh/id_rsa"
        assert str(error) == "SSH key file not found at /home/u/.ssh/id_rsa"


class TestConnectionTimeoutError:
    def test_message_and_details(self):
        error = ConnectionTimeoutError(10.0, host="10.0.0.1", port=22)
        assert str(error) == "SSH connection timeout after 10s"
        assert error.host == "10.0.0.1"
        assert error.port == 22


class TestRateLimitError:
    """Tests for RateLimitError."""

    def test_default_values(self):
        error = RateLimitError()
        assert error.status_code == 429
        assert error.retry_after is None

    def test_with_retry_after(self):
        error = RateLimitError(retry_after=30)
        assert error.retry_after == 30


class TestCandidateNotFoundError:
    def test_cluster_only(self):
        error = CandidateNotFoundError("my-cluster")
        assert str(error) == 'Cluster "my-cluster" not found'

    def test_cluster_and_node(self):
        error = CandidateNotFoundError("my-cluster", "node-1")
        assert error.node_name == "node-1"
        assert "node-1" in str(error)


class TestInsufficientCapacityError:
    def test_captures_counts(self):
        error = InsufficientCapacityError(6, 5)
        assert error.requested == 6
        assert error.available == 5
        assert str(error) == "Requested 6 GPU(s) but only 5 available"
