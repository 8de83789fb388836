# 2026/10/18
# Client for the development chain (server.main).
import logging

import requests

from errors import ReadError, SubmissionError
from server.schemas import PlayerInfo, Receipt, RoomInfo

logger = logging.getLogger(__name__)

API_BASE = "http://127.0.0.1:8000"


class HttpGateway:
    def __init__(self, account, api_base=API_BASE, timeout=10, session=None):
        self.account = account
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._address = None

    @property
    def address(self):
        if self._address is None:
            self._address = self._get("/")["contract"]
        return self._address

    # ---------- reads ----------

    def get_room_info(self, room_id):
        return RoomInfo(**self._get(f"/rooms/{room_id}"))

    def get_room_players(self, room_id):
        return self._get(f"/rooms/{room_id}/players")["players"]

    def get_user_info(self, room_id, address):
        return PlayerInfo(**self._get(f"/rooms/{room_id}/players/{address}"))

    def get_current_player(self, room_id):
        return self._get(f"/rooms/{room_id}/current_player")["current_player"]

    def get_last_room_id(self):
        return self._get("/rooms/last_id")["last_room_id"]

    def wait_for_receipt(self, tx_hash):
        # the dev chain mines synchronously, the receipt exists once the write returns
        return Receipt(**self._get(f"/receipts/{tx_hash}"))

    # ---------- writes ----------

    def roll_dice(self, room_id):
        return self._post("/roll_dice", {"sender": self.account, "room_id": room_id})

    def extra_roll(self, room_id):
        return self._post("/extra_roll", {"sender": self.account, "room_id": room_id})

    def participate(self, room_id):
        return self._post("/participate", {"sender": self.account, "room_id": room_id})

    def create_room(self, required_participants, stake_amount, metadata_uri):
        return self._post("/create_room", {
            "sender": self.account,
            "required_participants": required_participants,
            "stake_amount": stake_amount,
            "metadata_uri": metadata_uri,
        })

    # ---------- plumbing ----------

    def _get(self, path):
        try:
            res = self.session.get(self.api_base + path, timeout=self.timeout)
        except requests.RequestException as e:
            raise ReadError(f"GET {path} failed: {e}") from e
        if res.status_code != 200:
            raise ReadError(f"GET {path} -> {res.status_code}: {_detail(res)}")
        return res.json()

    def _post(self, path, payload):
        try:
            res = self.session.post(self.api_base + path, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise SubmissionError(f"POST {path} failed: {e}") from e
        if res.status_code != 200:
            # contract rule violations come back as 400 with the revert message
            raise SubmissionError(_detail(res))
        tx_hash = res.json()["tx_hash"]
        logger.debug("POST %s -> %s", path, tx_hash)
        return tx_hash


def _detail(res):
    try:
        return res.json().get("detail", res.text)
    except ValueError:
        return res.text
