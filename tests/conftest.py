"""Shared fixtures."""

import pytest

from hyperbolic_gpu.ssh import SessionManager
from fakes import FakeTransport


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def manager(transport) -> SessionManager:
    return SessionManager(transport)


@pytest.fixture
async def connected(manager) -> SessionManager:
    outcome = await manager.connect("10.0.0.5", "ubuntu", password="secret")
    assert outcome.ok
    return manager
