"""Utility modules for Hyperbolic GPU."""

from .errors import (
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
from .formatting import format_ram, format_price

__all__ = [
    "ErrorKind",
    "HyperbolicGPUError",
    "ConfigError",
    "SessionError",
    "KeyNotFoundError",
    "KeyReadError",
    "ConnectionTimeoutError",
    "ConnectionFaultError",
    "NotConnectedError",
    "CommandFaultError",
    "CommandTimeoutError",
    "ChannelFaultError",
    "MarketplaceError",
    "MarketplaceAPIError",
    "AuthenticationError",
    "RateLimitError",
    "CandidateNotFoundError",
    "InsufficientCapacityError",
    "InvalidRentalRequestError",
    "format_ram",
    "format_price",
]
