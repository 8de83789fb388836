# 2026/10/18
import asyncio
import logging
import time
from typing import NamedTuple

logger = logging.getLogger(__name__)

SLOT_DURATION = 300


class Countdown(NamedTuple):
    slot_index: int
    next_slot_time: int
    seconds_remaining: int


def compute_countdown(game_start_time, now, slot_duration=SLOT_DURATION):
    elapsed = now - game_start_time
    slot_index = int(elapsed // slot_duration)
    next_slot_time = game_start_time + (slot_index + 1) * slot_duration
    return Countdown(slot_index, int(next_slot_time), int(next_slot_time - now))


def format_countdown(seconds):
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


class RoundTimer:
    """Ticks once a second while the game has a start time, keeping `countdown` current."""

    def __init__(self, slot_duration=SLOT_DURATION, clock=time.time, tick=1.0):
        self.slot_duration = slot_duration
        self.clock = clock
        self.tick = tick
        self.game_start_time = 0
        self.countdown = None
        self._task = None

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    @property
    def display(self):
        return format_countdown(self.countdown.seconds_remaining) if self.countdown else ""

    def refresh(self):
        if self.game_start_time > 0:
            self.countdown = compute_countdown(self.game_start_time, self.clock(), self.slot_duration)
        else:
            self.countdown = None
        return self.countdown

    def set_game_start(self, game_start_time):
        """Start ticking once the room has a start time, stop if it has none."""
        if game_start_time == self.game_start_time and (self.running or game_start_time <= 0):
            return
        self.game_start_time = game_start_time
        self.stop()
        self.refresh()
        if game_start_time > 0:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self):
        while True:
            await asyncio.sleep(self.tick)
            self.refresh()

    def stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None
