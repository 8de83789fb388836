# 2026/10/18
import asyncio
import json
import logging
import os
from typing import Dict, Mapping

logger = logging.getLogger(__name__)

ANIMATION_TICK = 0.3


class DisplayPositionStore:
    """Durable per-room map of the cells last drawn on screen, one JSON file per room."""

    def __init__(self, storage_dir):
        self.storage_dir = storage_dir

    @staticmethod
    def key(room_id):
        return f"sl_display_positions_{room_id}"

    def path(self, room_id):
        return os.path.join(self.storage_dir, self.key(room_id) + ".json")

    def load(self, room_id) -> Dict[str, int]:
        path = self.path(room_id)
        if not os.path.exists(path):
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return {str(k): int(v) for k, v in data.items()}
        except (ValueError, AttributeError, OSError) as e:
            logger.warning("ignoring unreadable display positions at %s: %s", path, e)
            return {}

    def save(self, room_id, positions: Mapping[str, int]):
        os.makedirs(self.storage_dir, exist_ok=True)
        path = self.path(room_id)
        tmp = path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(dict(positions), f)
        os.replace(tmp, path)


class PositionAnimator:
    """Walks each player's displayed cell toward its on-chain cell, one cell per tick."""

    def __init__(self, room_id, store: DisplayPositionStore, tick=ANIMATION_TICK, sleep=asyncio.sleep):
        self.room_id = room_id
        self.store = store
        self.tick = tick
        self._sleep = sleep
        self.positions: Dict[str, int] = store.load(room_id)
        self.targets: Dict[str, int] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._closed = False

    def observe(self, targets: Mapping[str, int]):
        """Feed authoritative positions; call from the event loop."""
        seeded = False
        for player, target in targets.items():
            self.targets[player] = target
            if player not in self.positions:
                self.positions[player] = target
                seeded = True
            elif self.positions[player] != target and player not in self._tasks:
                self._start(player)
        if seeded:
            self._save()

    def is_animating(self, player=None):
        if player is None:
            return bool(self._tasks)
        return player in self._tasks

    def position(self, player, default=1):
        return self.positions.get(player, default)

    def _start(self, player):
        if self._closed:
            return
        target = self.targets[player]
        logger.debug("animating %s %s -> %s", player, self.positions[player], target)
        self._tasks[player] = asyncio.get_running_loop().create_task(self._animate(player, target))

    async def _animate(self, player, target):
        try:
            while self.positions[player] != target:
                await self._sleep(self.tick)
                self.positions[player] += 1 if target > self.positions[player] else -1
                self._save()
        finally:
            self._tasks.pop(player, None)
        # a newer target arrived while this walk was running
        if self.targets.get(player, target) != self.positions[player]:
            self._start(player)

    def _save(self):
        try:
            self.store.save(self.room_id, self.positions)
        except OSError as e:
            logger.warning("could not persist display positions for room %s: %s", self.room_id, e)

    async def close(self):
        self._closed = True
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
