"""
Message router - dispatches connection events to the session and downlink.

Operator connection:
    <degrees>                  new setpoint (optionally framed)

Controller connection:
    first message              credentials (framed when framing is on)
    <radians>                  measured angle (framed when framing is on)
    "Position Reset"           reset acknowledgement, ignored

All control state lives on the router instance. Handlers run on one
event loop and never await between reading and writing PID state, so
recomputations cannot interleave.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import Optional

from angle_relay import config
from angle_relay.comm import DatagramDownlink, Downlink, FrameCodec, SignedFrameCodec, SocketDownlink
from angle_relay.connection import Connection, Role
from angle_relay.control import PidEngine, PidGains, PidOutput, PidState, make_integral
from angle_relay.errors import AuthError, DecodeError, ParseError, RelayError
from angle_relay.params import Parameters
from angle_relay.relay.observers import ObserverRegistry
from angle_relay.session import DeviceSession

logger = logging.getLogger(__name__)


def parse_number(text: str) -> float:
    """
    Parse a bare numeric payload ("12.5", "-3", "1e-2").

    Raises:
        ParseError: not a finite number
    """
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        try:
            value = float(text)
        except ValueError:
            raise ParseError(f"Not a number: {text[:config.LOG_PREVIEW_CHARS]!r}") from None

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"Not a number: {text[:config.LOG_PREVIEW_CHARS]!r}")
    try:
        value = float(value)
    except OverflowError:
        raise ParseError(f"Out of range: {text[:config.LOG_PREVIEW_CHARS]!r}") from None
    if not math.isfinite(value):
        raise ParseError(f"Out of range: {value}")
    return value


def _preview(text: str) -> str:
    if len(text) < config.LOG_PREVIEW_CHARS:
        return text
    return text[:config.LOG_PREVIEW_CHARS] + "..."


class MessageRouter:
    """
    Per-role message handling for all connections.

    Usage:
        router = MessageRouter(session, ObserverRegistry(), SocketDownlink())
        router.connection_opened(conn)
        await router.handle_message(conn, text)
        router.connection_closed(conn)
    """

    def __init__(
        self,
        session: DeviceSession,
        observers: ObserverRegistry,
        downlink: Downlink,
        codec: Optional[FrameCodec] = None,
        params: Optional[Parameters] = None,
    ):
        self.session = session
        self.observers = observers
        self.downlink = downlink
        self.codec = codec
        self.params = params or Parameters()

        self._controller: Optional[Connection] = None
        self.last_output: Optional[PidOutput] = None

    @classmethod
    def from_params(cls, params: Parameters, framing_key: str = config.FRAMING_KEY) -> MessageRouter:
        """Build the router and everything it owns from runtime parameters."""
        codec = SignedFrameCodec(framing_key) if params.secure_framing else None

        state = PidState(
            gains=PidGains(kp=params.kp, ki=params.ki, kd=params.kd),
            min_pwm=params.min_pwm,
            max_pwm=params.max_pwm,
            stop_margin=params.stop_margin,
            integral=make_integral(
                params.integral_mode,
                params.integral_window,
                params.max_integral,
                params.large_error_cutoff,
            ),
        )
        session = DeviceSession(PidEngine(state, min_dt=params.min_dt))

        if params.downlink == "socket":
            downlink = SocketDownlink(codec)
        else:
            downlink = DatagramDownlink(codec, port=params.command_port)

        return cls(session, ObserverRegistry(), downlink, codec, params)

    # --- Events ---

    def connection_opened(self, conn: Connection):
        logger.info(f"New {conn.role.name.lower()} client connected from {conn.peer}")
        if conn.role == Role.OPERATOR:
            self.observers.add(conn)

    def connection_closed(self, conn: Connection):
        if conn.role == Role.OPERATOR:
            self.observers.remove(conn)
            return

        if conn is self._controller:
            self._controller = None
            self.session.close()
            self.downlink.unbind(conn)
        logger.info(f"Controller disconnected: {conn.peer}")

    async def handle_message(self, conn: Connection, text: str):
        """Handle one inbound text message. Never raises RelayError."""
        logger.debug(f"Received {conn.role.name.lower()} message ({len(text)} chars): {_preview(text)}")

        try:
            if conn.role == Role.OPERATOR:
                await self._handle_setpoint(text)
            elif conn is self._controller and self.session.authenticated:
                await self._handle_feedback(conn, text)
            else:
                await self._handle_auth(conn, text)
        except AuthError as e:
            logger.warning(f"Authentication failed from {conn.peer}: {e}")
            await conn.close()
        except RelayError as e:
            logger.error(f"Dropped {conn.role.name.lower()} message from {conn.peer}: {e}")

    # --- Operator ---

    async def _handle_setpoint(self, text: str):
        degrees = parse_number(self._unwrap_setpoint(text))
        logger.info(f"Received setpoint: {degrees} deg")

        if self.params.reset_on_setpoint:
            await self._send_reset()
            await asyncio.sleep(self.params.reset_settle_s)

        self.session.set_target(math.radians(degrees))

        if self.session.authenticated:
            await self._dispatch(self.session.compute_command())

    def _unwrap_setpoint(self, text: str) -> str:
        if self.codec is None:
            return text
        try:
            return self.codec.decode(text)
        except DecodeError as e:
            logger.debug(f"Setpoint is not a frame ({e}), trying direct parse")
            return text

    async def _send_reset(self):
        if not self.session.authenticated:
            return
        try:
            await self.downlink.send_control(config.RESET_COMMAND)
        except RelayError as e:
            logger.error(f"RESET not delivered: {e}")

    # --- Controller ---

    async def _handle_auth(self, conn: Connection, text: str):
        payload = text
        if self.codec is not None:
            try:
                payload = self.codec.decode(text)
            except DecodeError as e:
                raise AuthError(f"Undecodable credentials: {e}") from e

        self.session.authenticate(payload, conn.peer)
        self._controller = conn
        self.downlink.bind(conn)
        try:
            await conn.send(config.AUTH_ACK)
        except (ConnectionError, RuntimeError) as e:
            logger.warning(f"Auth acknowledgement to {conn.peer} failed: {e}")

    async def _handle_feedback(self, conn: Connection, text: str):
        if text == config.RESET_ACK:
            logger.info("Position reset confirmed by controller")
            return

        payload = self.codec.decode(text) if self.codec is not None else text
        angle = parse_number(payload)

        self.session.update_measurement(angle)
        self.downlink.bind(conn)
        logger.debug(f"Position feedback: {math.degrees(angle):.2f} deg")

        await self.observers.broadcast(str(angle))

        if self.session.has_target:
            await self._dispatch(self.session.compute_command())

    # --- Downlink ---

    async def _dispatch(self, output: PidOutput):
        self.last_output = output
        try:
            await self.downlink.send_command(output.pwm)
        except RelayError as e:
            logger.error(f"Command {output.pwm} not delivered: {e}")

    def snapshot(self) -> dict:
        """Router state for the status API."""
        out = self.last_output
        return {
            "session": self.session.snapshot(),
            "observers": len(self.observers),
            "downlink": "socket" if isinstance(self.downlink, SocketDownlink) else "datagram",
            "downlink_ready": self.downlink.ready,
            "secure_framing": self.codec is not None,
            "last_command": None if out is None else {
                "pwm": out.pwm,
                "error": out.error,
                "at_target": out.at_target,
                "ceiling": out.ceiling,
            },
        }
