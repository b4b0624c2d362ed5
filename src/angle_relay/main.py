#!/usr/bin/env python3
"""
Angle Relay - Main Entry Point

Usage:
    angle-relay                          # UDP command downlink, framed
    angle-relay --downlink socket        # Commands back over the controller's WebSocket
    angle-relay --plain --no-reset       # Plaintext payloads, no RESET before setpoints
"""

import argparse
import asyncio
import logging

from angle_relay.config import WEB_HOST, WEB_PORT
from angle_relay.params import DOWNLINK_MODES, Parameters


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Operator-to-actuator PID relay")
    parser.add_argument("--host", default=WEB_HOST, help="Listen address")
    parser.add_argument("--port", type=int, default=WEB_PORT, help="WebSocket/HTTP port")
    parser.add_argument(
        "--downlink",
        choices=DOWNLINK_MODES,
        help="Command transport (default from params.json)",
    )
    framing = parser.add_mutually_exclusive_group()
    framing.add_argument(
        "--plain",
        action="store_true",
        help="Disable secure framing of commands and feedback",
    )
    framing.add_argument(
        "--secure",
        action="store_true",
        help="Enable secure framing of commands and feedback",
    )
    parser.add_argument(
        "--reset",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Send RESET and wait before the first command of each setpoint",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Angle relay starting...")

    params = Parameters.load()
    if args.downlink:
        params.downlink = args.downlink
    if args.plain:
        params.secure_framing = False
    elif args.secure:
        params.secure_framing = True
    if args.reset is not None:
        params.reset_on_setpoint = args.reset

    logger.info(
        f"Downlink: {params.downlink}, "
        f"framing: {'on' if params.secure_framing else 'off'}, "
        f"reset on setpoint: {'on' if params.reset_on_setpoint else 'off'}"
    )

    from angle_relay.web.server import run_server

    async def run_web():
        runner = await run_server(params, host=args.host, port=args.port)
        logger.info("Press Ctrl+C to stop")
        try:
            while True:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            pass
        finally:
            await runner.cleanup()

    try:
        asyncio.run(run_web())
    except KeyboardInterrupt:
        logger.info("Shutdown requested")


if __name__ == "__main__":
    main()
