import asyncio

import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError

from errors import ReadError, SubmissionError
from orchestrator import RollOrchestrator
from server.schemas import ZERO_ADDRESS
from turns import resolve_turn
from utils.chain import Web3Gateway, to_token_units

from conftest import ALICE, BOB, CONTRACT

KEY = "0x" + "11" * 32
TOKEN = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
OTHER = "0x00000000000000000000000000000000000000ff"

ABI = [
    {"type": "event", "name": "RoomCreated", "anonymous": False, "inputs": [
        {"name": "roomId", "type": "uint256", "indexed": True},
        {"name": "creator", "type": "address", "indexed": True},
    ]},
    {"type": "event", "name": "DiceRolled", "anonymous": False, "inputs": [
        {"name": "roomId", "type": "uint256", "indexed": True},
        {"name": "player", "type": "address", "indexed": True},
        {"name": "value", "type": "uint256", "indexed": False},
        {"name": "newPosition", "type": "uint256", "indexed": False},
    ]},
]

ROOM = (ALICE, 2, 4, 10_000_000, True, 1000, ZERO_ADDRESS, "lens://game")


def uint_topic(value):
    return value.to_bytes(32, "big")


def address_topic(address):
    return bytes(12) + bytes.fromhex(address[2:])


def raw_log(address, signature, topics, data=b""):
    return {
        "address": address,
        "topics": [Web3.keccak(text=signature)] + topics,
        "data": data,
        "logIndex": 0,
        "transactionIndex": 0,
        "transactionHash": b"\x01" * 32,
        "blockHash": b"\x02" * 32,
        "blockNumber": 1,
    }


def dice_rolled(address, value, new_position, player=ALICE):
    data = Web3().codec.encode(["uint256", "uint256"], [value, new_position])
    return raw_log(address, "DiceRolled(uint256,address,uint256,uint256)",
                   [uint_topic(1), address_topic(player)], data)


def room_created(address, room_id):
    return raw_log(address, "RoomCreated(uint256,address)", [uint_topic(room_id), address_topic(ALICE)])


class ScriptedCall:
    def __init__(self, functions, name, args):
        self.functions = functions
        self.name = name
        self.args = args

    def call(self):
        self.functions.calls.append((self.name, self.args))
        result = self.functions.results[self.name]
        if isinstance(result, Exception):
            raise result
        return result

    def build_transaction(self, params):
        if self.functions.revert:
            raise ContractLogicError(self.functions.revert)
        self.functions.sent.append((self.name, self.args))
        tx = {"to": self.functions.to, "data": "0x", "value": 0, "gas": 100_000, "gasPrice": 1}
        tx.update(params)
        return tx


class ScriptedFunctions:
    """Replaces contract.functions: reads return canned values, writes build a plain legacy tx."""

    def __init__(self, to, **results):
        self.to = to
        self.results = results
        self.calls = []
        self.sent = []
        self.revert = None

    def __getattr__(self, name):
        return lambda *args: ScriptedCall(self, name, args)


class StubEth:
    """Offline eth module: a real contract object for ABI decoding, canned chain responses."""

    def __init__(self):
        self._real = Web3().eth
        self.account = self._real.account
        self.receipts = {}
        self.raw_sent = []
        self.wait_error = None

    def contract(self, address, abi):
        return self._real.contract(address=address, abi=abi)

    def get_transaction_count(self, account):
        return 7

    def send_raw_transaction(self, raw):
        self.raw_sent.append(raw)
        return bytes([len(self.raw_sent)]) * 32

    def wait_for_transaction_receipt(self, tx_hash):
        if self.wait_error is not None:
            raise self.wait_error
        return self.receipts.get(tx_hash, {"status": 1, "logs": []})


class StubWeb3:
    to_hex = staticmethod(Web3.to_hex)

    def __init__(self):
        self.eth = StubEth()


def make_gateway(private_key=KEY, allowance=0):
    gateway = Web3Gateway("", CONTRACT, ABI, private_key, 84532, stake_token=TOKEN, w3=StubWeb3())
    gateway.contract.functions = ScriptedFunctions(
        gateway.address,
        getRoomInfo=ROOM,
        getRoomPlayers=[ALICE, BOB],
        getUserInfo=(1, 4, 0, 3, 7),
        getCurrentPlayer=BOB,
        getLastRoomId=3,
    )
    gateway.token.functions = ScriptedFunctions(gateway.token.address, allowance=allowance)
    return gateway


def test_reads_map_contract_tuples():
    gateway = make_gateway()

    info = gateway.get_room_info(1)
    assert info.room_id == 1
    assert info.creator == ALICE
    assert (info.required_participants, info.max_participants) == (2, 4)
    assert info.stake_amount == 10_000_000
    assert info.started and info.game_start_time == 1000
    assert not info.has_winner
    assert info.metadata_uri == "lens://game"

    player = gateway.get_user_info(1, ALICE.lower())
    assert (player.last_position, player.current_position) == (1, 4)
    assert (player.last_roll_slot, player.last_roll_value, player.prasad_meter) == (0, 3, 7)
    assert gateway.contract.functions.calls[-1] == ("getUserInfo", (1, Web3.to_checksum_address(ALICE)))

    assert gateway.get_room_players(1) == [ALICE, BOB]
    assert gateway.get_current_player(1) == BOB
    assert gateway.get_last_room_id() == 3


def test_failed_read_raises_read_error():
    gateway = make_gateway()
    gateway.contract.functions.results["getCurrentPlayer"] = ValueError("rpc down")
    with pytest.raises(ReadError, match="rpc down"):
        gateway.get_current_player(1)


def test_receipt_decodes_own_events_only():
    gateway = make_gateway()
    gateway.w3.eth.receipts["0xaa"] = {"status": 1, "logs": [
        dice_rolled(OTHER, 1, 2),
        dice_rolled(CONTRACT, 3, 4),
        raw_log(CONTRACT, "Transfer(address,address,uint256)", []),
        room_created(CONTRACT.upper().replace("0X", "0x"), 5),
    ]}

    receipt = gateway.wait_for_receipt("0xaa")

    assert receipt.tx_hash == "0xaa" and receipt.status == 1
    assert [log.event for log in receipt.logs] == ["DiceRolled", "RoomCreated"]
    dice = receipt.logs[0]
    assert dice.args["value"] == 3 and dice.args["newPosition"] == 4
    assert dice.args["player"] == Web3.to_checksum_address(ALICE)
    assert receipt.logs[1].args["roomId"] == 5


def test_reverted_receipt_raises():
    gateway = make_gateway()
    gateway.w3.eth.receipts["0xbb"] = {"status": 0, "logs": []}
    with pytest.raises(SubmissionError, match="reverted"):
        gateway.wait_for_receipt("0xbb")

    gateway.w3.eth.wait_error = ValueError("timeout")
    with pytest.raises(SubmissionError, match="timeout"):
        gateway.wait_for_receipt("0xcc")


def test_send_signs_and_returns_hash():
    gateway = make_gateway()
    tx_hash = gateway.roll_dice(1)
    assert tx_hash == "0x" + "01" * 32
    assert gateway.contract.functions.sent == [("rollDice", (1,))]
    assert len(gateway.w3.eth.raw_sent) == 1


def test_send_without_key_is_refused():
    gateway = make_gateway(private_key="")
    assert gateway.account == ""
    with pytest.raises(SubmissionError, match="No wallet key configured"):
        gateway.extra_roll(1)
    assert gateway.w3.eth.raw_sent == []


def test_revert_reason_is_reported():
    gateway = make_gateway()
    gateway.contract.functions.revert = "execution reverted: Not your turn"
    with pytest.raises(SubmissionError) as info:
        gateway.roll_dice(1)
    assert str(info.value) == "Not your turn"


def test_participate_approves_missing_allowance():
    gateway = make_gateway(allowance=0)
    gateway.participate(1)
    assert gateway.token.functions.sent == [("approve", (gateway.address, 10_000_000))]
    assert gateway.contract.functions.sent == [("participate", (1,))]
    assert len(gateway.w3.eth.raw_sent) == 2


def test_participate_skips_approval_when_allowed():
    gateway = make_gateway(allowance=10_000_000)
    gateway.participate(1)
    assert gateway.token.functions.sent == []
    assert gateway.contract.functions.sent == [("participate", (1,))]


def test_roll_commits_value_from_chain_event():
    gateway = make_gateway()
    gateway.w3.eth.receipts["0x" + "01" * 32] = {"status": 1, "logs": [dice_rolled(CONTRACT, 5, 6)]}
    orch = RollOrchestrator(gateway, 1, settle_delay=0.0)
    room = gateway.get_room_info(1)

    result = asyncio.run(orch.roll(resolve_turn(gateway.account, gateway.account, room)))

    assert result.decoded
    assert (result.value, result.new_position) == (5, 6)
    assert orch.dice_value == 5


def test_stake_amounts_round_to_token_units():
    assert to_token_units(4.35) == 4_350_000
    assert to_token_units(1) == 1_000_000
    assert to_token_units(0.1 + 0.2) == 300_000
