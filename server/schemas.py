# 2026/10/18
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class RoomInfo(BaseModel):
    room_id: int
    creator: str = ZERO_ADDRESS
    required_participants: int = 0
    max_participants: int = 0
    stake_amount: int = 0          # smallest token unit (USDC has 6 decimals)
    started: bool = False
    game_start_time: int = 0       # epoch seconds, 0 until started
    winner: str = ZERO_ADDRESS
    metadata_uri: str = ""

    @property
    def exists(self) -> bool:
        return self.creator != ZERO_ADDRESS

    @property
    def has_winner(self) -> bool:
        return bool(self.winner) and self.winner != ZERO_ADDRESS


class PlayerInfo(BaseModel):
    last_position: int = 1
    current_position: int = 1
    last_roll_slot: int = -1       # -1: never rolled
    last_roll_value: int = 0       # 0: never rolled, else 1..6
    prasad_meter: int = 0


class EventLog(BaseModel):
    address: str
    event: str
    args: Dict[str, Any] = Field(default_factory=dict)


class Receipt(BaseModel):
    tx_hash: str
    status: int = 1
    logs: List[EventLog] = Field(default_factory=list)


class CreateRoomRequest(BaseModel):
    sender: str
    required_participants: int
    stake_amount: int
    metadata_uri: str = ""


class RoomAction(BaseModel):
    sender: str
    room_id: int


class PrasadUpdate(BaseModel):
    sender: str
    room_id: int
    player: str
    amount: int


class MaxParticipantsUpdate(BaseModel):
    sender: str
    value: int


class TxResponse(BaseModel):
    tx_hash: str
    room_id: Optional[int] = None
