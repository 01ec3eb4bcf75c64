"""
Call history and spend accounting.

Records are appended in call order and never rewritten. Spend totals
are recomputed from the full history on every request, so there is no
separate aggregate that could drift from the records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .allowlist import api_key, utc_now_iso
from .config import HISTORY_FILE
from .money import ZERO, format_usdc, parse_price
from .storage import StateStore


logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 20


@dataclass(frozen=True)
class CallRecord:
    """One attempted API invocation."""

    provider: str
    api: str
    price: str
    status: str = "success"
    call_id: Optional[str] = None
    timestamp: str = field(default_factory=utc_now_iso)

    @property
    def key(self) -> str:
        return api_key(self.provider, self.api)

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "api": self.api,
            "price": self.price,
            "callId": self.call_id,
            "status": self.status,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CallRecord":
        return cls(
            provider=str(data.get("provider", "")),
            api=str(data.get("api", "")),
            price=str(data.get("price", "")),
            status=str(data.get("status", "success")),
            call_id=data.get("callId"),
            timestamp=str(data.get("timestamp", "")),
        )


@dataclass
class ApiSpend:
    calls: int = 0
    spent: Decimal = ZERO

    def to_dict(self) -> dict:
        return {"calls": self.calls, "spent": format_usdc(self.spent)}


@dataclass
class SpendSummary:
    """Derived totals over the whole call history."""

    total: str
    by_api: dict[str, ApiSpend]

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "byApi": {key: spend.to_dict() for key, spend in self.by_api.items()},
        }


class CallLedger:
    """Append-only call history backed by a StateStore document."""

    def __init__(self, store: StateStore):
        self.store = store

    def _load(self) -> list[CallRecord]:
        raw = self.store.read(HISTORY_FILE, [])
        if not isinstance(raw, list):
            logger.warning("History document is not a list; treating as empty")
            return []
        return [CallRecord.from_dict(item) for item in raw if isinstance(item, dict)]

    def record(self, entry: CallRecord) -> CallRecord:
        self.store.append(HISTORY_FILE, entry.to_dict())
        logger.info("Recorded call to %s (%s, %s)", entry.key, entry.price, entry.status)
        return entry

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[CallRecord]:
        """Most recent records first, at most `limit` of them."""
        if limit <= 0:
            return []
        records = self._load()
        return list(reversed(records[-limit:]))

    def summarize(self) -> SpendSummary:
        total = ZERO
        by_api: dict[str, ApiSpend] = {}
        for record in self._load():
            amount = parse_price(record.price)
            total += amount
            spend = by_api.setdefault(record.key, ApiSpend())
            spend.calls += 1
            spend.spent += amount
        return SpendSummary(total=format_usdc(total), by_api=by_api)
