"""
Best-effort wake locks for the driver's device.

A missing capability is never an error: ``default_wake_lock()`` falls back
to ``NullWakeLock`` when the platform offers nothing to hold.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class WakeLock(Protocol):
    """Keeps the device awake while held."""

    @property
    def held(self) -> bool:
        ...

    async def acquire(self) -> None:
        ...

    async def release(self) -> None:
        ...


class NullWakeLock:
    """Wake lock for platforms without the capability."""

    def __init__(self) -> None:
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    async def acquire(self) -> None:
        self._held = True

    async def release(self) -> None:
        self._held = False


class SystemdInhibitWakeLock:
    """Blocks idle and sleep through ``systemd-inhibit`` for as long as held."""

    def __init__(self, executable: str = "systemd-inhibit", why: str = "Santa sleigh tracking") -> None:
        self.executable = executable
        self.why = why
        self._process: asyncio.subprocess.Process | None = None

    @property
    def held(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def acquire(self) -> None:
        if self.held:
            return
        self._process = await asyncio.create_subprocess_exec(
            self.executable,
            "--what=idle:sleep",
            f"--why={self.why}",
            "--mode=block",
            "sleep",
            "infinity",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        logger.info("Wake lock active")

    async def release(self) -> None:
        if self._process is None:
            return
        if self._process.returncode is None:
            self._process.terminate()
            await self._process.wait()
        self._process = None
        logger.info("Wake lock released")


def default_wake_lock() -> WakeLock:
    """Return the best wake lock this platform supports."""
    executable = shutil.which("systemd-inhibit")
    if executable:
        return SystemdInhibitWakeLock(executable)
    logger.debug("systemd-inhibit not found; running without a wake lock")
    return NullWakeLock()
