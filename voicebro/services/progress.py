"""Cosmetic pacing of the analysis milestones.

The driver walks the stage index up to the terminal milestone on a fixed
cadence, whether or not the analysis has already answered. It never waits
for the analysis; the session state machine decides when results show.
Every step carries the generation it was scheduled for so a session that
has moved on can recognize and drop stale steps.
"""

import asyncio
import logging
from collections.abc import Callable

from voicebro.core.catalog import TERMINAL_STAGE

logger = logging.getLogger(__name__)


class StageProgressDriver:
    """Schedules one delayed increment per remaining stage.

    Args:
        on_step: Called as ``on_step(generation, index)`` for each increment.
        interval: Seconds between two increments.
        terminal: Last stage index.
    """

    def __init__(
        self,
        on_step: Callable[[int, int], None],
        interval: float = 1.5,
        terminal: int = TERMINAL_STAGE,
    ) -> None:
        self._on_step = on_step
        self._interval = interval
        self._terminal = terminal
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def advance(self, from_index: int, generation: int) -> None:
        """Start stepping from *from_index* up to the terminal stage.

        A chain that is still running is cancelled first.
        """
        self.cancel()
        if from_index >= self._terminal:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(from_index, generation)
        )

    def cancel(self) -> None:
        """Suppress every increment that has not fired yet."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, from_index: int, generation: int) -> None:
        for index in range(from_index + 1, self._terminal + 1):
            await asyncio.sleep(self._interval)
            logger.debug("Stage %d reached (generation %d)", index, generation)
            self._on_step(generation, index)
