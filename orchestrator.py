# 2026/10/18
import asyncio
import logging
import random
import time
from enum import Enum
from typing import NamedTuple, Optional

from board import DIE_FACES
from server.schemas import PlayerInfo
from turns import TurnView
from utils.gateway import find_event

logger = logging.getLogger(__name__)

SETTLE_DELAY = 0.05
FREEZE_WINDOW = 3.0


class RollPhase(str, Enum):
    IDLE = "idle"
    ROLLING = "rolling"              # dice spinning, nothing sent yet
    TX_SUBMITTED = "tx_submitted"
    TX_CONFIRMED = "tx_confirmed"
    VALUE_DECODED = "value_decoded"  # face committed, spin stops after settle_delay
    SETTLED = "settled"              # still frozen until freeze_window elapses
    ERROR = "error"


IN_FLIGHT = (RollPhase.ROLLING, RollPhase.TX_SUBMITTED, RollPhase.TX_CONFIRMED, RollPhase.VALUE_DECODED)


class RollResult(NamedTuple):
    value: int
    decoded: bool                  # False: no DiceRolled log, value is the local visual roll
    tx_hash: str
    new_position: Optional[int]


class RollOrchestrator:
    """Drives one client's dice rolls from button press to settled face.

    The freeze that holds back position polling is derived from the phase,
    so there is no way to be frozen without a roll behind it.
    """

    def __init__(self, gateway, room_id, settle_delay=SETTLE_DELAY, freeze_window=FREEZE_WINDOW,
                 clock=time.monotonic, rng=None, sleep=asyncio.sleep):
        self.gateway = gateway
        self.room_id = room_id
        self.settle_delay = settle_delay
        self.freeze_window = freeze_window
        self.clock = clock
        self.rng = rng or random.Random()
        self._sleep = sleep

        self._phase = RollPhase.IDLE
        self._settled_at = None
        self.dice_value = 1
        self.visual_value = None
        self.prev_server_roll = None    # last on-chain roll before this one, for display only
        self.tx_hash = None
        self.error = None
        self.last_result: Optional[RollResult] = None
        self._listeners = []

    # ---------- state ----------

    @property
    def phase(self):
        if self._phase is RollPhase.SETTLED and self.clock() - self._settled_at >= self.freeze_window:
            return RollPhase.IDLE
        return self._phase

    @property
    def in_flight(self):
        return self.phase in IN_FLIGHT

    @property
    def is_rolling(self):
        return self.in_flight

    @property
    def waiting_for_transaction(self):
        return self.phase in (RollPhase.TX_SUBMITTED, RollPhase.TX_CONFIRMED, RollPhase.VALUE_DECODED)

    @property
    def is_frozen(self):
        return self.in_flight or self.phase is RollPhase.SETTLED

    def can_roll(self, turn: TurnView):
        return turn.can_roll and not self.in_flight

    def subscribe(self, callback):
        """callback(phase) on every transition."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    def _set(self, phase):
        self._phase = phase
        logger.debug("room %s roll -> %s", self.room_id, phase.value)
        for callback in list(self._listeners):
            callback(phase)

    # ---------- actions ----------

    async def roll(self, turn: TurnView, baseline: Optional[PlayerInfo] = None):
        return await self._run(turn, baseline, extra=False)

    async def extra_roll(self, turn: TurnView, baseline: Optional[PlayerInfo] = None):
        """Spend a bonus roll; whether one was granted is for the contract to say."""
        return await self._run(turn, baseline, extra=True)

    async def _run(self, turn, baseline, extra):
        if not self.can_roll(turn):
            logger.debug("room %s: roll ignored (phase=%s, turn=%s)", self.room_id, self.phase.value, turn.prompt)
            return None

        self.prev_server_roll = baseline.last_roll_value if baseline else None
        self.visual_value = self.rng.randint(1, DIE_FACES)
        self.error = None
        self.tx_hash = None
        self._set(RollPhase.ROLLING)

        submit = self.gateway.extra_roll if extra else self.gateway.roll_dice
        try:
            self.tx_hash = await asyncio.to_thread(submit, self.room_id)
            self._set(RollPhase.TX_SUBMITTED)
            receipt = await asyncio.to_thread(self.gateway.wait_for_receipt, self.tx_hash)
            self._set(RollPhase.TX_CONFIRMED)
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.error("room %s: %s failed: %s", self.room_id, "extra roll" if extra else "roll", self.error)
            self._set(RollPhase.ERROR)
            return None

        result = self._decode(receipt)
        self.dice_value = result.value
        self.last_result = result
        self._set(RollPhase.VALUE_DECODED)

        # face first, then stop the spin
        await self._sleep(self.settle_delay)
        self._settled_at = self.clock()
        self._set(RollPhase.SETTLED)
        logger.info("room %s: rolled %s (tx %s)", self.room_id, result.value, result.tx_hash)
        return result

    def _decode(self, receipt):
        log = find_event(receipt, "DiceRolled", self.gateway.address)
        if log is None or "value" not in log.args:
            logger.warning("room %s: no DiceRolled log in %s, showing local roll %s",
                           self.room_id, receipt.tx_hash, self.visual_value)
            return RollResult(self.visual_value, False, receipt.tx_hash, None)
        new_position = log.args.get("newPosition")
        return RollResult(int(log.args["value"]), True, receipt.tx_hash,
                          int(new_position) if new_position is not None else None)

    def reset_error(self):
        if self._phase is RollPhase.ERROR:
            self.error = None
            self._set(RollPhase.IDLE)


class TxStep(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    WAITING = "waiting"
    COMPLETED = "completed"
    ERROR = "error"


class TransactionFlow:
    """Joining and creating rooms: submit, wait for the receipt, report."""

    def __init__(self, gateway):
        self.gateway = gateway
        self.step = TxStep.IDLE
        self.error = ""
        self.tx_hash = None
        self.created_room_id = None

    @property
    def busy(self):
        return self.step in (TxStep.SUBMITTING, TxStep.WAITING)

    def reset(self):
        self.step = TxStep.IDLE
        self.error = ""
        self.tx_hash = None
        self.created_room_id = None

    async def participate(self, room_id):
        return await self._run(self.gateway.participate, room_id) is not None

    async def create_room(self, required_participants, stake_amount, metadata_uri=""):
        receipt = await self._run(self.gateway.create_room, required_participants, stake_amount, metadata_uri)
        if receipt is None:
            return None
        log = find_event(receipt, "RoomCreated", self.gateway.address)
        try:
            if log is not None:
                self.created_room_id = int(log.args["roomId"])
            else:
                logger.warning("no RoomCreated log in %s, reading the last room id", receipt.tx_hash)
                self.created_room_id = await asyncio.to_thread(self.gateway.get_last_room_id)
        except Exception as e:
            self.error = f"Room created but its id is unknown: {e}"
            self.step = TxStep.ERROR
            logger.error("%s: %s", receipt.tx_hash, self.error)
            return None
        return self.created_room_id

    async def _run(self, submit, *args):
        if self.busy:
            return None
        self.error = ""
        self.step = TxStep.SUBMITTING
        try:
            self.tx_hash = await asyncio.to_thread(submit, *args)
            self.step = TxStep.WAITING
            receipt = await asyncio.to_thread(self.gateway.wait_for_receipt, self.tx_hash)
        except Exception as e:
            self.error = str(e) or "Transaction failed"
            self.step = TxStep.ERROR
            logger.error("%s failed: %s", submit.__name__, self.error)
            return None
        self.step = TxStep.COMPLETED
        return receipt
