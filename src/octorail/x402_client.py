"""
Marketplace client with wallet authentication and x402 payments.

Every request carries a fresh wallet proof (address, timestamp and a
signature over both). Transmission goes through a payment-capable
transport; the production one wraps the official x402 SDK, which
answers a 402 by signing a USDC payment and retrying once.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol
from urllib.parse import quote, urlencode

import httpx
from eth_account import Account
from x402 import x402Client
from x402.http.clients import x402HttpxClient
from x402.mechanisms.evm import EthAccountSigner
from x402.mechanisms.evm.exact.register import register_exact_evm_client

from .errors import NetworkError, RemoteError
from .wallet import Identity

logger = logging.getLogger(__name__)

PAYMENT_REQUIRED = 402


@dataclass
class MarketplaceRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None


class PaymentCapableTransport(Protocol):
    """Sends a request, settling a 402 challenge and retrying once if needed."""

    async def send(self, request: MarketplaceRequest) -> httpx.Response: ...

    async def aclose(self) -> None: ...


class X402Transport:
    """PaymentCapableTransport backed by the x402 httpx client."""

    def __init__(self, identity: Identity):
        account = Account.from_key(identity.private_key)
        self._x402_client = x402Client()
        register_exact_evm_client(self._x402_client, EthAccountSigner(account))
        self._http = x402HttpxClient(self._x402_client)

    async def send(self, request: MarketplaceRequest) -> httpx.Response:
        try:
            return await self._http.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.content,
            )
        except httpx.TransportError as e:
            raise NetworkError(f"{type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        await self._http.aclose()


def wallet_headers(identity: Identity, timestamp_ms: Optional[int] = None) -> dict[str, str]:
    """Per-request proof of control over the identity."""
    ts = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
    return {
        "x-wallet": identity.address,
        "x-wallet-sig": identity.sign_auth_message(ts),
        "x-wallet-ts": str(ts),
    }


def _segment(value: str) -> str:
    return quote(value, safe="")


def _response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except Exception:
        return ""


class MarketplaceClient:
    """Authenticated access to the marketplace catalog and paid calls."""

    def __init__(
        self,
        identity: Identity,
        transport: PaymentCapableTransport,
        base_url: str,
    ):
        self.identity = identity
        self.transport = transport
        self.base_url = base_url.rstrip("/")

    async def request(self, path: str, method: str = "GET", body: Any = None) -> Any:
        headers = {"Content-Type": "application/json"}
        headers.update(wallet_headers(self.identity))
        content = json.dumps(body).encode() if body is not None else None
        request = MarketplaceRequest(
            method=method,
            url=f"{self.base_url}{path}",
            headers=headers,
            content=content,
        )

        logger.info("%s %s", method, request.url)
        response = await self.transport.send(request)

        if response.status_code == PAYMENT_REQUIRED:
            logger.debug("Payment still required after handshake for %s", request.url)
        elif not response.is_success:
            text = _response_text(response)
            logger.warning("%s %s failed with %d", method, request.url, response.status_code)
            raise RemoteError(response.status_code, text, response.reason_phrase)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(
                response.status_code,
                f"invalid JSON response: {_response_text(response)[:200]}",
                response.reason_phrase,
            ) from e

    async def list_apis(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Any:
        params = {}
        if search:
            params["search"] = search
        if category:
            params["category"] = category
        qs = urlencode(params)
        return await self.request(f"/apis?{qs}" if qs else "/apis")

    async def get_api(self, provider: str, api: str) -> Any:
        return await self.request(f"/apis/{_segment(provider)}/{_segment(api)}")

    async def call_api(self, provider: str, api: str, body: Any = None) -> Any:
        return await self.request(
            f"/v1/apis/{_segment(provider)}/{_segment(api)}/call",
            method="POST",
            body={} if body is None else body,
        )

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
