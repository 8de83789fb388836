# 2026/10/18
# In-memory model of the game contract, used as a local development chain.
import logging
import random
import time
import uuid
from typing import Dict, List, Optional

from board import DIE_FACES, FINAL_CELL, move
from errors import GameRuleError
from server.schemas import EventLog, PlayerInfo, Receipt, RoomInfo, ZERO_ADDRESS

logger = logging.getLogger(__name__)

DEV_CONTRACT_ADDRESS = "0x5eed000000000000000000000000000000000001"
DEV_OWNER_ADDRESS = "0x0000000000000000000000000000000000000a11"


class Room:
    def __init__(self, info: RoomInfo):
        self.info = info
        self.players: List[str] = []
        self.user_info: Dict[str, PlayerInfo] = {}   # lowercased address -> info
        self.turn_index = 0
        self.extra_roll_for: Optional[str] = None    # lowercased address holding a bonus roll
        self.pot = 0


class RoomStore:
    def __init__(self, owner=DEV_OWNER_ADDRESS, contract_address=DEV_CONTRACT_ADDRESS,
                 slot_duration=300, max_participants=4, clock=time.time, rng=None):
        self.owner = owner
        self.contract_address = contract_address
        self.slot_duration = slot_duration
        self.global_max_participants = max_participants
        self.clock = clock
        self.rng = rng or random.Random()
        self.rooms: Dict[int, Room] = {}          # room_id -> Room
        self.receipts: Dict[str, Receipt] = {}    # tx_hash -> Receipt
        self.payouts: Dict[str, int] = {}
        self.last_room_id = 0

    # ---------- views ----------

    def get_room(self, room_id: int) -> Room:
        if room_id not in self.rooms:
            raise GameRuleError("Room does not exist")
        return self.rooms[room_id]

    def get_room_info(self, room_id: int) -> RoomInfo:
        room = self.rooms.get(room_id)
        if room is None:
            # an unknown room reads as an all-zero struct
            return RoomInfo(room_id=room_id)
        return room.info.model_copy()

    def get_room_players(self, room_id: int) -> List[str]:
        room = self.rooms.get(room_id)
        return list(room.players) if room else []

    def get_user_info(self, room_id: int, address: str) -> PlayerInfo:
        room = self.rooms.get(room_id)
        if room is None or address.lower() not in room.user_info:
            return PlayerInfo(last_position=0, current_position=0)
        return room.user_info[address.lower()].model_copy()

    def get_current_player(self, room_id: int) -> str:
        room = self.rooms.get(room_id)
        if room is None or not room.info.started or room.info.has_winner:
            return ZERO_ADDRESS
        return room.players[room.turn_index]

    def has_joined(self, room_id: int, address: str) -> bool:
        room = self.rooms.get(room_id)
        return room is not None and address.lower() in room.user_info

    def current_slot(self, room: Room) -> int:
        return int((self.clock() - room.info.game_start_time) // self.slot_duration)

    def get_receipt(self, tx_hash: str) -> Receipt:
        if tx_hash not in self.receipts:
            raise GameRuleError("Unknown transaction")
        return self.receipts[tx_hash]

    # ---------- writes ----------

    def create_room(self, sender: str, required_participants: int, stake_amount: int,
                    metadata_uri: str = "") -> str:
        if required_participants < 2:
            raise GameRuleError("Need at least 2 participants")
        if required_participants > self.global_max_participants:
            raise GameRuleError("Too many participants")
        if stake_amount <= 0:
            raise GameRuleError("Stake must be positive")

        self.last_room_id += 1
        room_id = self.last_room_id
        room = Room(RoomInfo(
            room_id=room_id,
            creator=sender,
            required_participants=required_participants,
            max_participants=self.global_max_participants,
            stake_amount=stake_amount,
            metadata_uri=metadata_uri,
        ))
        self.rooms[room_id] = room
        logs = [self._log("RoomCreated", roomId=room_id, creator=sender)]
        logs += self._join(room, sender)
        logger.info("room %s created by %s", room_id, sender)
        return self._record(logs)

    def participate(self, sender: str, room_id: int) -> str:
        room = self.get_room(room_id)
        if room.info.started:
            raise GameRuleError("Game already started")
        if self.has_joined(room_id, sender):
            raise GameRuleError("Already joined")
        if len(room.players) >= room.info.required_participants:
            raise GameRuleError("Room is full")
        return self._record(self._join(room, sender))

    def roll_dice(self, sender: str, room_id: int) -> str:
        room = self._room_in_play(room_id, sender)
        key = sender.lower()
        if room.extra_roll_for == key:
            raise GameRuleError("Must use extra roll")
        slot = self.current_slot(room)
        if room.user_info[key].last_roll_slot == slot:
            raise GameRuleError("Already rolled in this slot")
        return self._roll(room, sender, slot)

    def extra_roll(self, sender: str, room_id: int) -> str:
        room = self._room_in_play(room_id, sender)
        if room.extra_roll_for != sender.lower():
            raise GameRuleError("No extra roll granted")
        room.extra_roll_for = None
        return self._roll(room, sender, self.current_slot(room))

    def update_prasad_meter(self, sender: str, room_id: int, player: str, amount: int) -> str:
        self._only_owner(sender)
        room = self.get_room(room_id)
        if player.lower() not in room.user_info:
            raise GameRuleError("Not a participant")
        room.user_info[player.lower()].prasad_meter += amount
        return self._record([])

    def set_global_max_participants(self, sender: str, value: int) -> str:
        self._only_owner(sender)
        if value < 2:
            raise GameRuleError("Max participants must be at least 2")
        self.global_max_participants = value
        return self._record([])

    # ---------- internals ----------

    def _only_owner(self, sender):
        if sender.lower() != self.owner.lower():
            raise GameRuleError("Only owner")

    def _room_in_play(self, room_id, sender) -> Room:
        room = self.get_room(room_id)
        if not room.info.started:
            raise GameRuleError("Game not started")
        if room.info.has_winner:
            raise GameRuleError("Game already finished")
        if not self.has_joined(room_id, sender):
            raise GameRuleError("Not a participant")
        if room.players[room.turn_index].lower() != sender.lower():
            raise GameRuleError("Not your turn")
        return room

    def _join(self, room, sender):
        room.players.append(sender)
        room.user_info[sender.lower()] = PlayerInfo()
        room.pot += room.info.stake_amount
        logs = [self._log("PlayerJoined", roomId=room.info.room_id, player=sender)]
        if len(room.players) == room.info.required_participants:
            room.info.started = True
            room.info.game_start_time = int(self.clock())
            logs.append(self._log("GameStarted", roomId=room.info.room_id,
                                  startTime=room.info.game_start_time))
            logger.info("room %s started", room.info.room_id)
        return logs

    def _roll(self, room, sender, slot):
        info = room.user_info[sender.lower()]
        value = self.rng.randint(1, DIE_FACES)
        info.last_position = info.current_position
        info.current_position = move(info.current_position, value)
        info.last_roll_slot = slot
        info.last_roll_value = value
        logs = [self._log("DiceRolled", roomId=room.info.room_id, player=sender,
                          value=value, newPosition=info.current_position)]

        if info.current_position == FINAL_CELL:
            room.info.winner = sender
            self.payouts[sender.lower()] = self.payouts.get(sender.lower(), 0) + room.pot
            room.pot = 0
            logs.append(self._log("GameWon", roomId=room.info.room_id, winner=sender))
        elif value == DIE_FACES:
            room.extra_roll_for = sender.lower()
        else:
            room.turn_index = (room.turn_index + 1) % len(room.players)
        return self._record(logs)

    def _log(self, event, **args):
        return EventLog(address=self.contract_address, event=event, args=args)

    def _record(self, logs):
        tx_hash = "0x" + uuid.uuid4().hex + uuid.uuid4().hex
        self.receipts[tx_hash] = Receipt(tx_hash=tx_hash, status=1, logs=logs)
        return tx_hash


room_store = RoomStore()
