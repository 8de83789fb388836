# 2026/10/18
# Development chain: serves the in-memory game contract over HTTP.
# uvicorn server.main:app --host 0.0.0.0 --port 8000
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import load_settings, setup_logging
from errors import GameRuleError
from server.schemas import (CreateRoomRequest, MaxParticipantsUpdate, PrasadUpdate,
                            RoomAction, TxResponse)
from server.state import room_store

setup_logging(load_settings())

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # dev chain only
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"]
)


@app.get("/")
def read_root():
    return {"status": "online", "message": "Snakes & Ladders dev chain is running.",
            "contract": room_store.contract_address}


@app.get("/rooms/last_id")
def last_room_id():
    return {"last_room_id": room_store.last_room_id}


@app.get("/rooms/{room_id}")
def room_info(room_id: int):
    return room_store.get_room_info(room_id)


@app.get("/rooms/{room_id}/players")
def room_players(room_id: int):
    return {"players": room_store.get_room_players(room_id)}


@app.get("/rooms/{room_id}/players/{address}")
def user_info(room_id: int, address: str):
    return room_store.get_user_info(room_id, address)


@app.get("/rooms/{room_id}/current_player")
def current_player(room_id: int):
    return {"current_player": room_store.get_current_player(room_id)}


@app.post("/create_room", response_model=TxResponse)
def create_room(req: CreateRoomRequest):
    try:
        tx_hash = room_store.create_room(req.sender, req.required_participants,
                                         req.stake_amount, req.metadata_uri)
    except GameRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TxResponse(tx_hash=tx_hash, room_id=room_store.last_room_id)


@app.post("/participate", response_model=TxResponse)
def participate(req: RoomAction):
    try:
        return TxResponse(tx_hash=room_store.participate(req.sender, req.room_id), room_id=req.room_id)
    except GameRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/roll_dice", response_model=TxResponse)
def roll_dice(req: RoomAction):
    try:
        return TxResponse(tx_hash=room_store.roll_dice(req.sender, req.room_id), room_id=req.room_id)
    except GameRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/extra_roll", response_model=TxResponse)
def extra_roll(req: RoomAction):
    try:
        return TxResponse(tx_hash=room_store.extra_roll(req.sender, req.room_id), room_id=req.room_id)
    except GameRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/receipts/{tx_hash}")
def receipt(tx_hash: str):
    try:
        return room_store.get_receipt(tx_hash)
    except GameRuleError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/admin/prasad", response_model=TxResponse)
def update_prasad(req: PrasadUpdate):
    try:
        tx_hash = room_store.update_prasad_meter(req.sender, req.room_id, req.player, req.amount)
    except GameRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TxResponse(tx_hash=tx_hash, room_id=req.room_id)


@app.post("/admin/max_participants", response_model=TxResponse)
def set_max_participants(req: MaxParticipantsUpdate):
    try:
        return TxResponse(tx_hash=room_store.set_global_max_participants(req.sender, req.value))
    except GameRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))
