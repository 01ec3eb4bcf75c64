"""
Paid call flow.

1. Resolve the local identity (provisioning on first use)
2. Check the allowlist for the exact provider/API pair
3. Validate the request body
4. Call the marketplace, paying if challenged
5. Record the outcome in the call history
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from .allowlist import AuthorizationGate, api_key
from .errors import PolicyBlockedError, ValidationError
from .ledger import CallLedger, CallRecord
from .wallet import CredentialStore, Identity
from .x402_client import MarketplaceClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Identity], MarketplaceClient]


def parse_call_body(raw: Optional[str]) -> Any:
    """Decode a --body argument; no body means an empty JSON object."""
    if raw is None or not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ValidationError(f"Invalid JSON body: {e}") from e


def _outcome(result: Any) -> tuple[Optional[str], str]:
    if not isinstance(result, dict):
        return None, "success"
    call_id = result.get("callId")
    status = result.get("status")
    return (
        str(call_id) if call_id else None,
        str(status) if status else "success",
    )


class Invoker:
    """Runs approved, paid API calls and keeps the history current."""

    def __init__(
        self,
        credentials: CredentialStore,
        gate: AuthorizationGate,
        ledger: CallLedger,
        client_factory: ClientFactory,
    ):
        self.credentials = credentials
        self.gate = gate
        self.ledger = ledger
        self.client_factory = client_factory

    async def call(self, provider: str, api: str, body: Optional[str] = None) -> Any:
        identity = self.credentials.get_or_create_identity()

        entry = self.gate.is_approved(provider, api)
        if entry is None:
            logger.warning("Blocked call to unapproved %s", api_key(provider, api))
            raise PolicyBlockedError(provider, api)

        payload = parse_call_body(body)

        # Failures raised by the call propagate before anything is recorded.
        async with self.client_factory(identity) as client:
            result = await client.call_api(provider, api, payload)

        call_id, status = _outcome(result)
        self.ledger.record(CallRecord(
            provider=provider,
            api=api,
            price=entry.max_price,
            status=status,
            call_id=call_id,
        ))
        return result

    async def list_apis(self, search: Optional[str] = None, category: Optional[str] = None) -> Any:
        identity = self.credentials.get_or_create_identity()
        async with self.client_factory(identity) as client:
            return await client.list_apis(search=search, category=category)

    async def get_api(self, provider: str, api: str) -> Any:
        identity = self.credentials.get_or_create_identity()
        async with self.client_factory(identity) as client:
            return await client.get_api(provider, api)
