# 2026/10/18
import asyncio
import logging
import threading
import time
from typing import Optional

from animator import DisplayPositionStore, PositionAnimator
from config import Settings
from orchestrator import RollOrchestrator, TransactionFlow
from poller import RoomStatePoller
from round_timer import RoundTimer
from turns import resolve_turn
from utils.gateway import same_address

logger = logging.getLogger(__name__)


class BoardSession:
    """One room seen from one wallet: poller, turn resolver, roll orchestrator,
    position animator and round timer wired together."""

    def __init__(self, gateway, room_id, settings: Optional[Settings] = None, store=None, clock=time.time):
        settings = settings or Settings()
        self.gateway = gateway
        self.room_id = room_id
        self.orchestrator = RollOrchestrator(gateway, room_id, settle_delay=settings.settle_delay,
                                             freeze_window=settings.freeze_window)
        self.poller = RoomStatePoller(gateway, room_id, interval=settings.poll_interval,
                                      is_frozen=lambda: self.orchestrator.is_frozen)
        self.animator = PositionAnimator(room_id, store or DisplayPositionStore(settings.storage_dir),
                                         tick=settings.animation_tick)
        self.timer = RoundTimer(slot_duration=settings.slot_duration, clock=clock)
        self.flow = TransactionFlow(gateway)
        self.poller.subscribe(self._on_update)

    @property
    def account(self):
        return self.gateway.account

    def _on_update(self, resource, value):
        if resource == "player_info":
            self.animator.observe({p: info.current_position for p, info in value.items()})
        elif resource == "room_info":
            self.timer.set_game_start(value.game_start_time if value.started else 0)

    @property
    def turn(self):
        return resolve_turn(self.poller.current_player, self.account, self.poller.room_info,
                            roll_in_flight=self.orchestrator.in_flight)

    def my_info(self):
        for player, info in self.poller.player_info.items():
            if same_address(player, self.account):
                return info
        return None

    async def start(self):
        await self.poller.poll()
        self.poller.start()

    @property
    def has_joined(self):
        return any(same_address(p, self.account) for p in self.poller.players)

    @property
    def can_roll(self):
        # current_player is held stale during the freeze, so the control waits it out
        return self.orchestrator.can_roll(self.turn) and not self.orchestrator.is_frozen

    async def roll(self):
        return await self._after_roll(await self.orchestrator.roll(self.turn, self.my_info()))

    async def extra_roll(self):
        return await self._after_roll(await self.orchestrator.extra_roll(self.turn, self.my_info()))

    async def _after_roll(self, result):
        if result is None:
            return None
        if result.decoded and result.new_position is not None:
            # walk the piece now; polled positions stay held back until the freeze ends
            player = next((p for p in self.poller.players if same_address(p, self.account)), self.account)
            self.animator.observe({player: result.new_position})
        # a winning roll shows up in room info, which is not held back by the freeze
        await self.poller.refresh("room_info")
        return result

    async def participate(self):
        ok = await self.flow.participate(self.room_id)
        if ok:
            await self.poller.poll()
        return ok

    async def close(self):
        await self.poller.stop()
        await self.animator.close()
        self.timer.stop()

    def snapshot(self):
        room = self.poller.room_info
        turn = self.turn
        return {
            "room": room,
            "players": list(self.poller.players),
            "player_info": dict(self.poller.player_info),
            "positions": dict(self.animator.positions),
            "turn": turn,
            "can_roll": self.can_roll,
            "has_joined": self.has_joined,
            "phase": self.orchestrator.phase,
            "dice_value": self.orchestrator.dice_value,
            "previous_roll": self.orchestrator.prev_server_roll,
            "is_rolling": self.orchestrator.is_rolling,
            "waiting_for_transaction": self.orchestrator.waiting_for_transaction,
            "error": self.orchestrator.error,
            "countdown": self.timer.display,
            "flow_step": self.flow.step,
            "flow_error": self.flow.error,
        }


def report_failure(future):
    """Done-callback for fire-and-forget submissions: log what escaped the coroutine."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("background task failed", exc_info=error)


class BackgroundLoop:
    """An asyncio loop on a daemon thread, for hosts (Streamlit) that rerun a script per interaction."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self._thread.start()

    def submit(self, coro):
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro, timeout=None):
        return self.submit(coro).result(timeout)

    def stop(self):
        self.loop.call_soon_threadsafe(self.loop.stop)
