import asyncio

import pytest

from errors import ReadError
from server.schemas import EventLog, PlayerInfo, Receipt, RoomInfo
from server.state import RoomStore

CONTRACT = "0x5eed000000000000000000000000000000000001"
ALICE = "0xA11CE00000000000000000000000000000000001"
BOB = "0xB0B0000000000000000000000000000000000002"
CAROL = "0xCA20100000000000000000000000000000000003"


class ScriptedRng:
    """randint() that returns queued values in order."""

    def __init__(self, *values):
        self.values = list(values)

    def randint(self, a, b):
        return self.values.pop(0)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TickCounter:
    """Stand-in for asyncio.sleep that counts ticks and just yields."""

    def __init__(self):
        self.ticks = 0

    async def __call__(self, delay):
        self.ticks += 1
        await asyncio.sleep(0)


class FakeGateway:
    address = CONTRACT

    def __init__(self, account=ALICE):
        self.account = account
        self.room_info = RoomInfo(room_id=1, creator=ALICE, required_participants=2, max_participants=4,
                                  stake_amount=10_000_000, started=True, game_start_time=1000)
        self.players = [ALICE, BOB]
        self.user_info = {ALICE: PlayerInfo(), BOB: PlayerInfo()}
        self.current_player = ALICE
        self.logs = [EventLog(address=CONTRACT, event="DiceRolled",
                              args={"roomId": 1, "player": ALICE, "value": 4, "newPosition": 5})]
        self.calls = []
        self.fail_reads = False
        self.submit_error = None
        self.on_user_info = None

    def _read(self, name):
        self.calls.append(name)
        if self.fail_reads:
            raise ReadError("rpc down")

    def get_room_info(self, room_id):
        self._read("get_room_info")
        return self.room_info

    def get_room_players(self, room_id):
        self._read("get_room_players")
        return list(self.players)

    def get_user_info(self, room_id, address):
        self._read("get_user_info")
        if self.on_user_info:
            self.on_user_info()
        return self.user_info[address]

    def get_current_player(self, room_id):
        self._read("get_current_player")
        return self.current_player

    def get_last_room_id(self):
        return 1

    def _write(self, name):
        self.calls.append(name)
        if self.submit_error is not None:
            raise self.submit_error
        return "0x" + name

    def roll_dice(self, room_id):
        return self._write("roll_dice")

    def extra_roll(self, room_id):
        return self._write("extra_roll")

    def participate(self, room_id):
        return self._write("participate")

    def create_room(self, required_participants, stake_amount, metadata_uri):
        return self._write("create_room")

    def wait_for_receipt(self, tx_hash):
        self.calls.append("wait_for_receipt")
        return Receipt(tx_hash=tx_hash, logs=list(self.logs))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return RoomStore(contract_address=CONTRACT, clock=clock, rng=ScriptedRng())


@pytest.fixture
def started_room(store):
    """Room 1 with ALICE and BOB, started at t=1000."""
    store.create_room(ALICE, 2, 10_000_000, "lens://game")
    store.participate(BOB, 1)
    return store
