from server.schemas import RoomInfo, ZERO_ADDRESS
from turns import is_my_turn, resolve_turn

from conftest import ALICE, BOB

ROOM = RoomInfo(room_id=1, creator=ALICE, required_participants=2, started=True, game_start_time=1000)


def test_is_my_turn_ignores_case():
    assert is_my_turn(ALICE, ALICE.lower())
    assert is_my_turn(ALICE.upper().replace("0X", "0x"), ALICE)
    assert not is_my_turn(ALICE, BOB)


def test_is_my_turn_is_pure():
    results = {is_my_turn(ALICE, ALICE) for _ in range(5)}
    assert results == {True}


def test_empty_addresses_never_match():
    assert not is_my_turn(ZERO_ADDRESS, ZERO_ADDRESS)
    assert not is_my_turn("", "")
    assert not is_my_turn(None, ALICE)


def test_my_turn_enables_dice():
    view = resolve_turn(ALICE, ALICE, ROOM)
    assert view.is_my_turn and view.can_roll
    assert view.highlighted == ALICE


def test_other_players_turn():
    view = resolve_turn(BOB, ALICE, ROOM)
    assert not view.is_my_turn and not view.can_roll
    assert view.highlighted == BOB
    assert BOB in view.prompt


def test_roll_in_flight_disables_dice():
    view = resolve_turn(ALICE, ALICE, ROOM, roll_in_flight=True)
    assert view.is_my_turn and not view.can_roll


def test_zero_current_player_waits():
    view = resolve_turn(ZERO_ADDRESS, ALICE, ROOM)
    assert view.highlighted is None
    assert not view.can_roll
    assert view.prompt.startswith("Waiting")


def test_not_started():
    room = ROOM.model_copy(update={"started": False})
    view = resolve_turn(ALICE, ALICE, room)
    assert not view.can_roll
    assert resolve_turn(ALICE, ALICE, None).can_roll is False


def test_winner_disables_dice():
    room = ROOM.model_copy(update={"winner": BOB})
    view = resolve_turn(ALICE, ALICE, room)
    assert not view.can_roll
    assert view.highlighted is None
    assert resolve_turn(ALICE, BOB, room).prompt == "You won!"
