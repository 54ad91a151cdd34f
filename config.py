"""
Load benchmark config from environment.
Never log API keys or any key material.
"""
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _get_key(key: str) -> Optional[str]:
    v = os.environ.get(key, "").strip()
    # Template placeholders from .env.example count as unset
    if not v or v.startswith("your_"):
        return None
    return v


def _get_float(key: str, default: float) -> float:
    try:
        return float(os.environ.get(key, str(default)))
    except (TypeError, ValueError):
        return default


def _get_int(key: str, default: int) -> int:
    try:
        return int(os.environ.get(key, str(default)))
    except (TypeError, ValueError):
        return default


def _get_bool(key: str, default: bool = False) -> bool:
    v = os.environ.get(key, str(default)).strip().lower()
    return v in ("1", "true", "yes", "on")


# Provider keys (optional; a missing key leaves that provider unconfigured)
def get_alchemy_key() -> Optional[str]:
    return _get_key("ALCHEMY_KEY")


def get_infura_key() -> Optional[str]:
    return _get_key("INFURA_KEY")


def get_quicknode_url() -> Optional[str]:
    # QuickNode hands out a full per-account endpoint rather than a bare key
    return _get_key("QUICKNODE_URL")


def get_covalent_key() -> Optional[str]:
    return _get_key("COVALENT_KEY")


def get_mobula_key() -> Optional[str]:
    return _get_key("MOBULA_KEY")


def get_codex_key() -> Optional[str]:
    return _get_key("CODEX_KEY")


# Deadlines (seconds)
REQUEST_TIMEOUT_S: float = _get_float("REQUEST_TIMEOUT_S", 10.0)
ROUND_TIMEOUT_S: float = _get_float("ROUND_TIMEOUT_S", 60.0)

# Probe pacing
ROUND_PAUSE_S: float = _get_float("ROUND_PAUSE_S", 0.1)
HISTORY_LIMIT: int = 20  # samples kept per provider
BATCH_SIZE: int = _get_int("BATCH_SIZE", 10)

# Cost projection
REQUEST_VOLUME_MILLIONS: float = _get_float("REQUEST_VOLUME_MILLIONS", 10.0)

# Portfolio scenario
DEFAULT_WALLET: str = os.environ.get(
    "DEFAULT_WALLET",
    "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045",
)

# Status pages
STATUS_RETRIES: int = _get_int("STATUS_RETRIES", 3)
STATUS_RETRY_DELAY: float = _get_float("STATUS_RETRY_DELAY", 1.0)

LOG_DEBUG: bool = _get_bool("LOG_DEBUG", False)
