"""
Observer registry - operator connections that receive angle broadcasts.
"""

from __future__ import annotations

import asyncio
import logging

from angle_relay.connection import Connection

logger = logging.getLogger(__name__)


class ObserverRegistry:
    """
    Unordered set of live operator connections.

    Broadcast is best-effort: a failed send is logged and the observer
    stays registered until its own close event removes it.
    """

    def __init__(self):
        self._observers: set[Connection] = set()

    def __len__(self) -> int:
        return len(self._observers)

    def __contains__(self, conn: Connection) -> bool:
        return conn in self._observers

    def add(self, conn: Connection):
        self._observers.add(conn)
        logger.info(f"Observer connected: {conn.peer} ({len(self._observers)} total)")

    def remove(self, conn: Connection):
        self._observers.discard(conn)
        logger.info(f"Observer disconnected: {conn.peer} ({len(self._observers)} total)")

    async def broadcast(self, text: str) -> int:
        """
        Send text to every open observer.

        Returns:
            Number of observers the message was delivered to
        """
        targets = [conn for conn in self._observers if not conn.closed]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(conn.send(text) for conn in targets),
            return_exceptions=True,
        )

        delivered = 0
        for conn, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.debug(f"Broadcast to {conn.peer} failed: {result}")
            else:
                delivered += 1
        return delivered
