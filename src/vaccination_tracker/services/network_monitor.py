"""
Network reachability checks used before downloading a calendar.
"""

import asyncio
from typing import Protocol

from vaccination_tracker.managers.logging_manager import get_logger

logger = get_logger(prefix="[NetworkMonitor]")


class NetworkMonitor(Protocol):
    async def is_connected(self) -> bool:
        ...


class SocketNetworkMonitor:
    """
    Reports connectivity by opening a TCP connection to a well-known host.

    Args:
        host: Host to connect to (the calendar host by default).
        port: TCP port.
        timeout: Seconds to wait for the connection.
    """

    def __init__(self, host: str, port: int = 443, timeout: float = 3.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def is_connected(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(self.host, self.port), timeout=self.timeout)
        except (OSError, asyncio.TimeoutError) as e:
            logger.info(f"{self.host}:{self.port} unreachable: {e!r}")
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing connectivity check connection: {e!r}")
        return True


class StaticNetworkMonitor:
    """Fixed connectivity answer, used in offline mode."""

    def __init__(self, connected: bool = True):
        self.connected = connected

    async def is_connected(self) -> bool:
        return self.connected
