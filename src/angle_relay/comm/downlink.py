"""
Downlink dispatch - how PWM commands reach the controller.

Two transports, picked by deployment config:
- SocketDownlink: reply over the controller's own WebSocket
- DatagramDownlink: fire-and-forget UDP to <controller address>:<command port>

Payloads:
    socket:   <pwm>                   e.g. 25
    datagram: {"cmd": "<pwm>"}        e.g. {"cmd": "25"}
Both are wrapped by the frame codec when secure framing is enabled.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from angle_relay import config
from angle_relay.comm.framing import FrameCodec
from angle_relay.connection import Connection
from angle_relay.errors import EncodeError, TransportError

logger = logging.getLogger(__name__)


class Downlink(ABC):
    """Base class for command transports."""

    def __init__(self, codec: Optional[FrameCodec] = None):
        self.codec = codec

    @property
    @abstractmethod
    def ready(self) -> bool:
        """True when a command could be sent right now."""
        ...

    @abstractmethod
    def bind(self, conn: Connection) -> None:
        """Attach to the authenticated controller connection."""
        ...

    @abstractmethod
    def unbind(self, conn: Connection) -> None:
        """Detach when that controller connection closes."""
        ...

    @abstractmethod
    async def send_command(self, pwm: int) -> bool:
        """
        Send one PWM command.

        Returns:
            True if handed to the transport, False if not ready

        Raises:
            TransportError: the send failed
        """
        ...

    @abstractmethod
    async def send_control(self, word: str) -> bool:
        """Send a control word such as RESET."""
        ...

    async def start(self) -> None:
        """Open transport resources."""

    async def stop(self) -> None:
        """Release transport resources."""

    def frame(self, text: str) -> str:
        """Wrap text in a secure frame if a codec is configured."""
        if self.codec is None:
            return text
        return self.codec.encode(text)


class SocketDownlink(Downlink):
    """Commands go back over the controller's WebSocket."""

    def __init__(self, codec: Optional[FrameCodec] = None):
        super().__init__(codec)
        self._conn: Optional[Connection] = None

    @property
    def ready(self) -> bool:
        return self._conn is not None and not self._conn.closed

    def bind(self, conn: Connection):
        self._conn = conn

    def unbind(self, conn: Connection):
        if self._conn is conn:
            self._conn = None

    async def send_command(self, pwm: int) -> bool:
        return await self._send(self.frame(json.dumps(pwm)))

    async def send_control(self, word: str) -> bool:
        return await self._send(self.frame(word))

    async def _send(self, text: str) -> bool:
        if not self.ready:
            logger.debug("No controller connection, command not sent")
            return False
        try:
            await self._conn.send(text)
        except (ConnectionError, RuntimeError) as e:
            raise TransportError(f"Send to {self._conn.peer} failed: {e}") from e
        return True


class _CommandProtocol(asyncio.DatagramProtocol):
    """Receives asynchronous send errors for the command socket."""

    def error_received(self, exc):
        logger.error(f"UDP send error: {exc}")

    def connection_lost(self, exc):
        if exc:
            logger.warning(f"UDP command socket closed: {exc}")


class DatagramDownlink(Downlink):
    """
    Commands go to the controller over UDP.

    The controller's address comes from its WebSocket connection
    (authentication or feedback). Sends are never retried; the next
    feedback cycle produces a fresh command anyway.
    """

    def __init__(self, codec: Optional[FrameCodec] = None, port: int = config.COMMAND_PORT):
        super().__init__(codec)
        self.port = port
        self.address: Optional[str] = None
        self._transport: Optional[asyncio.DatagramTransport] = None

    @property
    def ready(self) -> bool:
        return self._transport is not None and self.address is not None

    async def start(self):
        loop = asyncio.get_running_loop()
        self._transport, _ = await loop.create_datagram_endpoint(
            _CommandProtocol, local_addr=("0.0.0.0", 0),
        )
        logger.info(f"UDP command downlink ready (port {self.port})")

    async def stop(self):
        if self._transport:
            self._transport.close()
            self._transport = None

    def bind(self, conn: Connection):
        if conn.peer and conn.peer != self.address:
            self.address = conn.peer
            logger.info(f"Command target set to {self.address}:{self.port}")

    def unbind(self, conn: Connection):
        # The address stays known; commands are gated on the target instead
        pass

    async def send_command(self, pwm: int) -> bool:
        text = json.dumps({"cmd": str(pwm)})
        try:
            data = self.frame(text)
        except EncodeError as e:
            logger.error(f"Framing failed, sending plaintext command: {e}")
            data = str(pwm)
        return self._sendto(data, pwm)

    async def send_control(self, word: str) -> bool:
        return self._sendto(self.frame(word), word)

    def _sendto(self, data: str, label) -> bool:
        if not self.ready:
            logger.debug("Cannot send command: device address unknown or downlink stopped")
            return False
        try:
            self._transport.sendto(data.encode(), (self.address, self.port))
        except (OSError, ValueError) as e:
            raise TransportError(f"UDP send to {self.address}:{self.port} failed: {e}") from e
        logger.debug(f"UDP command sent to {self.address}:{self.port}: {label}")
        return True
