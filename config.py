# 2026/10/18
import logging
import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
    # chain
    rpc_url: str = "https://sepolia.base.org"
    contract_address: str = ""
    abi_path: str = "snakeGameContractInfo.json"
    private_key: str = ""
    chain_id: int = 84532          # Base Sepolia
    stake_token: str = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"  # USDC on Base Sepolia

    # dev chain (server.main)
    api_base: str = "http://127.0.0.1:8000"
    account: str = ""

    # sync timings, seconds
    poll_interval: float = 5.0
    animation_tick: float = 0.3
    slot_duration: int = 300
    settle_delay: float = 0.05
    freeze_window: float = 3.0

    storage_dir: str = ".sl_storage"
    profile_api_url: str = "https://build.wield.xyz/farcaster/v2/user-by-connected-address"
    profile_api_key: str = ""

    log_level: str = "INFO"
    log_file: Optional[str] = None


_ENV_PREFIX = "SL_"


def load_settings(environ=None) -> Settings:
    """Build Settings from SL_* environment variables; unset ones keep their defaults."""
    environ = os.environ if environ is None else environ
    values = {}
    for name in Settings.model_fields:
        raw = environ.get(_ENV_PREFIX + name.upper())
        if raw is not None and raw.strip() != "":
            values[name] = raw.strip()
    return Settings(**values)


def setup_logging(settings: Settings):
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=handlers,
    )
