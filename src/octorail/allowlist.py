"""
Allowlist of provider/API pairs the user has approved for paid calls.

An entry's presence is the only thing that lets a call through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .config import ALLOWLIST_FILE
from .storage import StateStore


logger = logging.getLogger(__name__)


def api_key(provider: str, api: str) -> str:
    return f"{provider}/{api}"


def utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AuthorizationEntry:
    max_price: str
    approved_at: str

    def to_dict(self) -> dict:
        return {"maxPrice": self.max_price, "approvedAt": self.approved_at}

    @classmethod
    def from_dict(cls, data: object) -> Optional["AuthorizationEntry"]:
        if not isinstance(data, dict) or "maxPrice" not in data:
            return None
        return cls(
            max_price=str(data["maxPrice"]),
            approved_at=str(data.get("approvedAt", "")),
        )


class AuthorizationGate:
    """Reads and mutates the allowlist document."""

    def __init__(self, store: StateStore):
        self.store = store

    def _load(self) -> dict:
        data = self.store.read(ALLOWLIST_FILE, {})
        if not isinstance(data, dict):
            logger.warning("Allowlist document is not a mapping; treating as empty")
            return {}
        return data

    def is_approved(self, provider: str, api: str) -> Optional[AuthorizationEntry]:
        return AuthorizationEntry.from_dict(self._load().get(api_key(provider, api)))

    def approve(self, provider: str, api: str, max_price: str) -> AuthorizationEntry:
        data = self._load()
        entry = AuthorizationEntry(max_price=max_price, approved_at=utc_now_iso())
        data[api_key(provider, api)] = entry.to_dict()
        self.store.write(ALLOWLIST_FILE, data)
        logger.info("Approved %s at max %s", api_key(provider, api), max_price)
        return entry

    def revoke(self, provider: str, api: str) -> bool:
        """Remove an approval. Returns False when nothing was approved."""
        data = self._load()
        removed = data.pop(api_key(provider, api), None) is not None
        self.store.write(ALLOWLIST_FILE, data)
        if removed:
            logger.info("Revoked %s", api_key(provider, api))
        return removed

    def list_approved(self) -> dict[str, AuthorizationEntry]:
        approved = {}
        for key, raw in self._load().items():
            entry = AuthorizationEntry.from_dict(raw)
            if entry is not None:
                approved[key] = entry
        return approved
