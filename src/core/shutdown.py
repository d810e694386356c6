"""Signal-driven shutdown sequencing.

The coordinator moves through three phases:

    RUNNING --(SIGINT or SIGTERM)--> DRAINING --(listener stopped + grace)--> STOPPED

Only the first signal causes a transition; later ones are logged and ignored.
"""

from __future__ import annotations

import asyncio
import signal
from enum import Enum
from typing import Final

from loguru import logger

TERMINATION_SIGNALS: Final[tuple[signal.Signals, ...]] = (
    signal.SIGINT,
    signal.SIGTERM,
)


class ShutdownPhase(Enum):
    """Lifecycle phases of the process."""

    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class ShutdownCoordinator:
    """Turns the first termination signal into one orderly stop.

    Args:
        grace_ms: Delay between the listener stopping and ``STOPPED``.
    """

    def __init__(self, grace_ms: int = 200) -> None:
        self.grace_ms = grace_ms
        self._phase = ShutdownPhase.RUNNING
        self._draining = asyncio.Event()
        self._installed: list[signal.Signals] = []
        self.received_signal: signal.Signals | None = None

    @property
    def phase(self) -> ShutdownPhase:
        """Current lifecycle phase."""
        return self._phase

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Register handlers for SIGINT and SIGTERM on the running loop."""
        loop = loop or asyncio.get_running_loop()
        for sig in TERMINATION_SIGNALS:
            loop.add_signal_handler(sig, self.request_shutdown, sig)
            self._installed.append(sig)

    def uninstall(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Remove the handlers added by ``install``."""
        loop = loop or asyncio.get_running_loop()
        while self._installed:
            loop.remove_signal_handler(self._installed.pop())

    def request_shutdown(self, sig: signal.Signals | None = None) -> bool:
        """Begin draining.

        Args:
            sig: The signal that triggered the request, if any.

        Returns:
            bool: True if this call caused the transition.
        """
        if self._phase is not ShutdownPhase.RUNNING:
            logger.info(
                "Ignoring {} while {}",
                sig.name if sig else "shutdown request",
                self._phase.value,
            )
            return False

        self._phase = ShutdownPhase.DRAINING
        self.received_signal = sig
        self._draining.set()
        logger.info(
            "Shutdown requested, draining",
            signal=sig.name if sig else None,
        )
        return True

    async def wait(self) -> None:
        """Block until draining has begun."""
        await self._draining.wait()

    async def finish(self) -> None:
        """Wait out the grace delay and mark the process stopped."""
        if self._phase is ShutdownPhase.STOPPED:
            return
        await asyncio.sleep(self.grace_ms / 1000)
        self._phase = ShutdownPhase.STOPPED
        logger.info("Shutdown complete")
