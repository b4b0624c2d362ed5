"""
Shared test fixtures for relay unit tests.
"""

import json

import pytest

from angle_relay.comm import SignedFrameCodec, SocketDownlink
from angle_relay.connection import Connection, Role
from angle_relay.control import PidEngine, PidGains, PidState
from angle_relay.params import Parameters
from angle_relay.relay import MessageRouter, ObserverRegistry
from angle_relay.session import Credentials, DeviceSession

DEVICE_NAME = "Sean"
DEVICE_PASSWORD = "bayar10rb"


class FakeConnection(Connection):
    """In-memory connection that records what was sent to it."""

    def __init__(self, role: Role, peer: str = "10.0.0.7", fail: bool = False):
        super().__init__(role, peer)
        self.sent = []
        self.fail = fail
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, text: str):
        if self._closed or self.fail:
            raise ConnectionResetError("peer gone")
        self.sent.append(text)

    async def close(self):
        self._closed = True


def auth_message(name=DEVICE_NAME, password=DEVICE_PASSWORD) -> str:
    return json.dumps({"name": name, "password": password})


@pytest.fixture
def credentials():
    """Credentials the test session accepts."""
    return Credentials(DEVICE_NAME, DEVICE_PASSWORD)


@pytest.fixture
def codec():
    """Frame codec with a test key."""
    return SignedFrameCodec("test-key")


@pytest.fixture
def engine():
    """PID engine with the stock gains."""
    return PidEngine(PidState(gains=PidGains(kp=1.7, ki=0.3, kd=0.4), min_pwm=10, max_pwm=50))


@pytest.fixture
def session(engine, credentials):
    """Fresh, unauthenticated device session."""
    return DeviceSession(engine, credentials)


@pytest.fixture
def make_router(session):
    """Factory for a socket-downlink router, plaintext unless a codec is given."""

    def _make(codec=None, **param_overrides):
        params = Parameters(downlink="socket", secure_framing=codec is not None)
        params.update(**param_overrides)
        return MessageRouter(session, ObserverRegistry(), SocketDownlink(codec), codec, params)

    return _make


@pytest.fixture
def controller():
    return FakeConnection(Role.CONTROLLER, "::ffff:10.0.0.7")


@pytest.fixture
def operator():
    return FakeConnection(Role.OPERATOR, "10.0.0.20")
