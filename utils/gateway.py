# 2026/10/18
from typing import List, Optional, Protocol

from errors import GameRuleError, ReadError, SubmissionError
from server.schemas import EventLog, PlayerInfo, Receipt, RoomInfo
from server.state import RoomStore


class ContractGateway(Protocol):
    """What the sync core needs from the game contract.

    Reads raise ReadError, writes raise SubmissionError. Every write returns a
    transaction hash which `wait_for_receipt` turns into decoded event logs.
    All methods block; callers run them off the event loop.
    """
    address: str   # contract address
    account: str   # connected wallet

    def get_room_info(self, room_id: int) -> RoomInfo: ...
    def get_room_players(self, room_id: int) -> List[str]: ...
    def get_user_info(self, room_id: int, address: str) -> PlayerInfo: ...
    def get_current_player(self, room_id: int) -> str: ...
    def get_last_room_id(self) -> int: ...

    def roll_dice(self, room_id: int) -> str: ...
    def extra_roll(self, room_id: int) -> str: ...
    def participate(self, room_id: int) -> str: ...
    def create_room(self, required_participants: int, stake_amount: int, metadata_uri: str) -> str: ...
    def wait_for_receipt(self, tx_hash: str) -> Receipt: ...


def same_address(a, b):
    return bool(a) and bool(b) and a.lower() == b.lower()


def find_event(receipt: Receipt, event: str, address: str) -> Optional[EventLog]:
    """First log named `event` emitted by the contract at `address`."""
    for log in receipt.logs:
        if same_address(log.address, address) and log.event == event:
            return log
    return None


class LocalGateway:
    """Gateway backed directly by an in-process RoomStore."""

    def __init__(self, store: RoomStore, account: str):
        self.store = store
        self.account = account
        self.address = store.contract_address

    def get_room_info(self, room_id):
        return self.store.get_room_info(room_id)

    def get_room_players(self, room_id):
        return self.store.get_room_players(room_id)

    def get_user_info(self, room_id, address):
        return self.store.get_user_info(room_id, address)

    def get_current_player(self, room_id):
        return self.store.get_current_player(room_id)

    def get_last_room_id(self):
        return self.store.last_room_id

    def roll_dice(self, room_id):
        return self._write(self.store.roll_dice, self.account, room_id)

    def extra_roll(self, room_id):
        return self._write(self.store.extra_roll, self.account, room_id)

    def participate(self, room_id):
        return self._write(self.store.participate, self.account, room_id)

    def create_room(self, required_participants, stake_amount, metadata_uri):
        return self._write(self.store.create_room, self.account, required_participants,
                           stake_amount, metadata_uri)

    def wait_for_receipt(self, tx_hash):
        try:
            return self.store.get_receipt(tx_hash)
        except GameRuleError as e:
            raise ReadError(str(e)) from e

    @staticmethod
    def _write(fn, *args):
        try:
            return fn(*args)
        except GameRuleError as e:
            raise SubmissionError(str(e)) from e
