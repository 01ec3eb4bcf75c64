"""Shared fixtures: in-memory state and a recording marketplace transport."""

import httpx
import pytest

from octorail.allowlist import AuthorizationGate
from octorail.invocation import Invoker
from octorail.ledger import CallLedger
from octorail.storage import MemoryStore
from octorail.wallet import CredentialStore, Identity
from octorail.x402_client import MarketplaceClient


BASE_URL = "http://market.test"


class FakeTransport:
    """Replays canned responses and remembers every request it was given."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests = []
        self.closed = False

    def queue(self, status_code, payload):
        self.responses.append((status_code, payload))

    async def send(self, request):
        self.requests.append(request)
        status_code, payload = self.responses.pop(0) if self.responses else (200, {})
        http_request = httpx.Request(request.method, request.url)
        if isinstance(payload, (bytes, str)):
            return httpx.Response(status_code, content=payload, request=http_request)
        return httpx.Response(status_code, json=payload, request=http_request)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def identity():
    return Identity.generate()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client(identity, transport):
    return MarketplaceClient(identity, transport, BASE_URL)


@pytest.fixture
def invoker(store, transport):
    return Invoker(
        credentials=CredentialStore(store),
        gate=AuthorizationGate(store),
        ledger=CallLedger(store),
        client_factory=lambda ident: MarketplaceClient(ident, transport, BASE_URL),
    )
