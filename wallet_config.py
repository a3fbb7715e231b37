"""
Settings for the wallet scripts.

Values come from the environment (optionally a .env file). Only the entry
point reads them; everything else gets them passed in.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"

DEFAULT_HISTORY_LIMIT = 20


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEVNET_RPC_URL
    seed_phrase: Optional[str] = None
    private_key: Optional[str] = None
    token_program_id: Optional[str] = None
    anchor_program_id: Optional[str] = None
    log_level: str = "WARNING"


@dataclass(frozen=True)
class HistoryOptions:
    """Paging options for transaction history lookups."""

    limit: int = DEFAULT_HISTORY_LIMIT
    before: Optional[str] = None
    endpoint: Optional[str] = None

    def __post_init__(self):
        if self.limit < 1:
            raise ValueError(f"limit must be positive, got {self.limit}")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1].strip()
    return value or None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from `environ`, or from os.environ after loading .env."""
    if environ is None:
        load_dotenv(override=False)
        environ = os.environ

    return Settings(
        rpc_url=_clean(environ.get("RPC_URL")) or DEVNET_RPC_URL,
        seed_phrase=_clean(environ.get("SEED")) or _clean(environ.get("MNEMONIC")),
        private_key=_clean(environ.get("PRIVATE_KEY")),
        token_program_id=_clean(environ.get("TOKEN_PROGRAM_ID")),
        anchor_program_id=_clean(environ.get("ANCHOR_PROGRAM_ID")),
        log_level=(_clean(environ.get("LOG_LEVEL")) or "WARNING").upper(),
    )
