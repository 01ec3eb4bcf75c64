"""
OctoRail — local agent for a pay-per-call API marketplace.

Spending stays under user control:
Approve an API with a max price → Call it with USDC → Review the history.
"""

__version__ = "0.1.0"

from .allowlist import AuthorizationEntry, AuthorizationGate
from .config import Settings
from .errors import (
    NetworkError,
    OctorailError,
    PersistenceError,
    PolicyBlockedError,
    RemoteError,
    ValidationError,
)
from .invocation import Invoker
from .ledger import ApiSpend, CallLedger, CallRecord, SpendSummary
from .storage import JsonFileStore, MemoryStore, StateStore
from .wallet import CredentialStore, Identity
from .x402_client import MarketplaceClient, MarketplaceRequest, PaymentCapableTransport, X402Transport

__all__ = [
    "AuthorizationEntry", "AuthorizationGate", "Settings",
    "OctorailError", "PolicyBlockedError", "ValidationError", "RemoteError",
    "NetworkError", "PersistenceError", "Invoker",
    "CallLedger", "CallRecord", "SpendSummary", "ApiSpend",
    "StateStore", "JsonFileStore", "MemoryStore", "CredentialStore", "Identity",
    "MarketplaceClient", "MarketplaceRequest", "PaymentCapableTransport", "X402Transport",
]
