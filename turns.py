# 2026/10/18
from typing import NamedTuple, Optional

from server.schemas import RoomInfo, ZERO_ADDRESS
from utils.gateway import same_address


class TurnView(NamedTuple):
    is_my_turn: bool
    can_roll: bool
    highlighted: Optional[str]   # address to highlight, None when nobody is up
    prompt: str


def is_empty_address(address):
    return not address or address.lower() == ZERO_ADDRESS


def is_my_turn(current_player, connected_address):
    if is_empty_address(current_player) or is_empty_address(connected_address):
        return False
    return same_address(current_player, connected_address)


def resolve_turn(current_player, connected_address, room: Optional[RoomInfo], roll_in_flight=False):
    """Who is up, and whether the local wallet may press the dice.

    Only mirrors what the contract reports; turn order and extra-roll
    eligibility are never worked out here.
    """
    mine = is_my_turn(current_player, connected_address)

    if room is not None and room.has_winner:
        won = same_address(room.winner, connected_address)
        return TurnView(mine, False, None, "You won!" if won else f"Winner: {room.winner}")
    if room is None or not room.started:
        return TurnView(False, False, None, "Waiting for players to join")
    if is_empty_address(current_player):
        return TurnView(False, False, None, "Waiting for the next turn")

    if mine:
        prompt = "Rolling..." if roll_in_flight else "Your turn, roll the dice!"
    else:
        prompt = f"Waiting for {current_player}"
    return TurnView(mine, mine and not roll_in_flight, current_player, prompt)
