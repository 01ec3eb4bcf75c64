"""Runtime settings resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


HOME_ENV_VAR = "OCTORAIL_HOME"
URL_ENV_VAR = "OCTORAIL_URL"
NETWORK_ENV_VAR = "OCTORAIL_NETWORK"
LOG_LEVEL_ENV_VAR = "OCTORAIL_LOG_LEVEL"

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_NETWORK = "eip155:84532"

WALLET_FILE = "wallet.json"
ALLOWLIST_FILE = "allowed-apis.json"
HISTORY_FILE = "call-history.json"

NETWORK_NAMES = {
    "eip155:8453": "Base",
    "eip155:84532": "Base Sepolia",
}


@dataclass(frozen=True)
class Settings:
    home_dir: Path
    base_url: str = DEFAULT_BASE_URL
    network: str = DEFAULT_NETWORK
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        home_override = os.getenv(HOME_ENV_VAR, "").strip()
        home_dir = Path(home_override).expanduser() if home_override else Path.home() / ".octorail"
        base_url = os.getenv(URL_ENV_VAR, "").strip() or DEFAULT_BASE_URL
        network = os.getenv(NETWORK_ENV_VAR, "").strip() or DEFAULT_NETWORK
        log_level = os.getenv(LOG_LEVEL_ENV_VAR, "").strip().upper() or "WARNING"
        return cls(
            home_dir=home_dir,
            base_url=base_url.rstrip("/"),
            network=network,
            log_level=log_level,
        )

    @property
    def network_name(self) -> str:
        return NETWORK_NAMES.get(self.network, self.network)
