# 2026/10/18
# Gateway for the deployed SnakeGame contract.
import json
import logging

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, LogTopicError, MismatchedABI, Web3Exception

from errors import ReadError, SubmissionError
from server.schemas import EventLog, PlayerInfo, Receipt, RoomInfo

logger = logging.getLogger(__name__)

ERC20_ABI = [
    {"name": "allowance", "type": "function", "stateMutability": "view",
     "inputs": [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}],
     "outputs": [{"name": "", "type": "uint256"}]},
    {"name": "approve", "type": "function", "stateMutability": "nonpayable",
     "inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}],
     "outputs": [{"name": "", "type": "bool"}]},
]

_RPC_ERRORS = (Web3Exception, requests.RequestException, ValueError)

STAKE_DECIMALS = 6  # USDC


def to_token_units(amount, decimals=STAKE_DECIMALS):
    return round(amount * 10 ** decimals)


def load_contract_info(path):
    """Read the {address, abi} file produced by the contract deploy scripts."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class Web3Gateway:
    def __init__(self, rpc_url, contract_address, abi, private_key, chain_id, stake_token=None, w3=None):
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        self.address = Web3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.address, abi=abi)
        self.chain_id = chain_id
        self._key = private_key
        self.account = self.w3.eth.account.from_key(private_key).address if private_key else ""
        self.token = (self.w3.eth.contract(address=Web3.to_checksum_address(stake_token), abi=ERC20_ABI)
                      if stake_token else None)
        self._events = [item["name"] for item in abi if item.get("type") == "event"]

    @classmethod
    def from_settings(cls, settings):
        info = load_contract_info(settings.abi_path)
        return cls(
            rpc_url=settings.rpc_url,
            contract_address=settings.contract_address or info["address"],
            abi=info["abi"],
            private_key=settings.private_key,
            chain_id=settings.chain_id,
            stake_token=settings.stake_token,
        )

    # ---------- reads ----------

    def get_room_info(self, room_id):
        (creator, required, max_participants, stake, started,
         start_time, winner, metadata_uri) = self._call("getRoomInfo", room_id)
        return RoomInfo(
            room_id=room_id,
            creator=creator,
            required_participants=required,
            max_participants=max_participants,
            stake_amount=stake,
            started=started,
            game_start_time=start_time,
            winner=winner,
            metadata_uri=metadata_uri,
        )

    def get_room_players(self, room_id):
        return list(self._call("getRoomPlayers", room_id))

    def get_user_info(self, room_id, address):
        last_position, current_position, last_roll_slot, last_roll_value, prasad = self._call(
            "getUserInfo", room_id, Web3.to_checksum_address(address))
        return PlayerInfo(
            last_position=last_position,
            current_position=current_position,
            last_roll_slot=last_roll_slot,
            last_roll_value=last_roll_value,
            prasad_meter=prasad,
        )

    def get_current_player(self, room_id):
        return self._call("getCurrentPlayer", room_id)

    def get_last_room_id(self):
        return self._call("getLastRoomId")

    def _call(self, fn_name, *args):
        try:
            return getattr(self.contract.functions, fn_name)(*args).call()
        except _RPC_ERRORS as e:
            raise ReadError(f"{fn_name}{args} failed: {e}") from e

    # ---------- writes ----------

    def roll_dice(self, room_id):
        return self._send(self.contract.functions.rollDice(room_id))

    def extra_roll(self, room_id):
        return self._send(self.contract.functions.extraRoll(room_id))

    def participate(self, room_id):
        self.ensure_allowance(self.get_room_info(room_id).stake_amount)
        return self._send(self.contract.functions.participate(room_id))

    def create_room(self, required_participants, stake_amount, metadata_uri):
        self.ensure_allowance(stake_amount)
        return self._send(self.contract.functions.createRoom(required_participants, stake_amount, metadata_uri))

    def ensure_allowance(self, amount):
        """Approve the game contract to pull `amount` stake tokens if it can't already."""
        if self.token is None or amount <= 0:
            return
        try:
            current = self.token.functions.allowance(self.account, self.address).call()
        except _RPC_ERRORS as e:
            raise SubmissionError(f"allowance check failed: {e}") from e
        if current >= amount:
            return
        logger.info("approving %s stake units for %s", amount, self.address)
        self.wait_for_receipt(self._send(self.token.functions.approve(self.address, amount)))

    def wait_for_receipt(self, tx_hash):
        try:
            raw = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        except _RPC_ERRORS as e:
            raise SubmissionError(f"waiting for {tx_hash} failed: {e}") from e
        if raw["status"] != 1:
            raise SubmissionError(f"transaction {tx_hash} reverted")
        return Receipt(tx_hash=tx_hash, status=raw["status"], logs=self._decode_logs(raw["logs"]))

    def _send(self, call):
        if not self._key:
            raise SubmissionError("No wallet key configured")
        try:
            tx = call.build_transaction({
                "from": self.account,
                "nonce": self.w3.eth.get_transaction_count(self.account),
                "chainId": self.chain_id,
            })
            signed = self.w3.eth.account.sign_transaction(tx, self._key)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as e:
            raise SubmissionError(_revert_reason(e)) from e
        except _RPC_ERRORS as e:
            raise SubmissionError(str(e)) from e
        logger.debug("sent %s", self.w3.to_hex(tx_hash))
        return self.w3.to_hex(tx_hash)

    def _decode_logs(self, raw_logs):
        logs = []
        for raw in raw_logs:
            if raw["address"].lower() != self.address.lower():
                continue
            for name in self._events:
                try:
                    event = getattr(self.contract.events, name)().process_log(raw)
                except (MismatchedABI, LogTopicError):
                    continue
                logs.append(EventLog(address=raw["address"], event=event["event"], args=dict(event["args"])))
                break
        return logs


def _revert_reason(error):
    message = getattr(error, "message", None) or str(error)
    return message.replace("execution reverted: ", "")
