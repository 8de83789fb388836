# 2026/10/18
import asyncio
import logging
from typing import Callable, Dict, List, Optional

from server.schemas import PlayerInfo, RoomInfo

logger = logging.getLogger(__name__)

POLL_INTERVAL = 5.0


class RoomStatePoller:
    """Keeps local copies of one room's contract state fresh.

    Every resource is refetched on its own timer. `player_info` and
    `current_player` are left alone while `is_frozen()` is true so a
    roll's settle animation is not cut short by fresh positions. A failed
    read keeps the previous value until the next tick.

    `subscribe` + `poll` is the whole feed surface consumers rely on, so a
    push source (contract event subscription) can stand in for the timers.
    """

    RESOURCES = ("room_info", "players", "player_info", "current_player")
    FROZEN_RESOURCES = ("player_info", "current_player")

    def __init__(self, gateway, room_id, interval=POLL_INTERVAL, is_frozen: Callable[[], bool] = lambda: False):
        self.gateway = gateway
        self.room_id = room_id
        self.interval = interval
        self.is_frozen = is_frozen

        self.room_info: Optional[RoomInfo] = None
        self.players: List[str] = []
        self.player_info: Dict[str, PlayerInfo] = {}
        self.current_player: Optional[str] = None

        self._listeners = []
        self._tasks = []

    @property
    def enabled(self):
        return isinstance(self.room_id, int) and self.room_id > 0

    def subscribe(self, callback):
        """callback(resource_name, value) after each applied update. Returns an unsubscribe function."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    async def poll(self):
        """One pass over every resource, in dependency order."""
        if not self.enabled:
            return
        for resource in self.RESOURCES:
            await self.refresh(resource)

    async def refresh(self, resource):
        """Fetch and apply one resource. Returns True if the cached value was replaced."""
        if not self.enabled or self._suspended(resource):
            return False
        try:
            value = await self._fetch(resource)
        except Exception as e:
            logger.warning("room %s: reading %s failed, keeping cached value: %s", self.room_id, resource, e)
            return False
        # the freeze may have begun while the read was in flight
        if self._suspended(resource):
            logger.debug("room %s: dropping %s read during freeze", self.room_id, resource)
            return False
        setattr(self, resource, value)
        self._notify(resource, value)
        return True

    def _suspended(self, resource):
        return resource in self.FROZEN_RESOURCES and self.is_frozen()

    async def _fetch(self, resource):
        gw, room_id = self.gateway, self.room_id
        if resource == "room_info":
            return await asyncio.to_thread(gw.get_room_info, room_id)
        if resource == "players":
            return list(await asyncio.to_thread(gw.get_room_players, room_id))
        if resource == "player_info":
            info = {}
            for player in list(self.players):
                info[player] = await asyncio.to_thread(gw.get_user_info, room_id, player)
            return info
        if resource == "current_player":
            return await asyncio.to_thread(gw.get_current_player, room_id)
        raise ValueError(f"unknown resource: {resource}")

    def _notify(self, resource, value):
        for callback in list(self._listeners):
            try:
                callback(resource, value)
            except Exception:
                logger.exception("room %s: %s listener failed", self.room_id, resource)

    # ---------- timers ----------

    @property
    def running(self):
        return any(not t.done() for t in self._tasks)

    def start(self):
        if not self.enabled:
            logger.info("polling disabled for room id %r", self.room_id)
            return
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._tasks = [loop.create_task(self._loop(r)) for r in self.RESOURCES]

    async def _loop(self, resource):
        while True:
            await self.refresh(resource)
            await asyncio.sleep(self.interval)

    async def stop(self):
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
