"""Per-round timeout scheduling."""

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class RoundScheduler:
    """Owns the single outstanding round timer.

    Arming a new timer cancels the previous one, so at most one timer is
    ever live.
    """

    def __init__(self):
        self._task: asyncio.Task | None = None
        self._round_serial: int | None = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def round_serial(self) -> int | None:
        return self._round_serial if self.armed else None

    def arm(self, round_serial: int, delay_ms: int, on_expire: Callable[[int], None]) -> None:
        """Call ``on_expire(round_serial)`` after ``delay_ms`` unless cancelled."""
        self.cancel()
        self._round_serial = round_serial
        self._task = asyncio.create_task(self._fire(round_serial, delay_ms, on_expire))
        logger.debug(f"Timer armed for round {round_serial} ({delay_ms} ms)")

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            logger.debug(f"Timer cancelled for round {self._round_serial}")
        self._task = None
        self._round_serial = None

    async def _fire(self, round_serial: int, delay_ms: int, on_expire: Callable[[int], None]) -> None:
        await asyncio.sleep(delay_ms / 1000)
        logger.debug(f"Timer expired for round {round_serial}")
        on_expire(round_serial)
