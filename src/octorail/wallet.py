"""
Local signing identity.

One keypair per installation, created on first use and never
rewritten while the stored record is valid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_defunct

from .config import WALLET_FILE
from .storage import StateStore


logger = logging.getLogger(__name__)

AUTH_NAMESPACE = "octorail"


def _hex(value) -> str:
    raw = value.hex() if hasattr(value, "hex") else str(value)
    return raw if raw.startswith("0x") else "0x" + raw


@dataclass(frozen=True)
class Identity:
    private_key: str
    address: str

    def to_dict(self) -> dict:
        return {"privateKey": self.private_key, "address": self.address}

    @classmethod
    def from_dict(cls, data: object) -> "Identity | None":
        """Parse a stored record; None when it is malformed."""
        if not isinstance(data, dict):
            return None
        private_key = data.get("privateKey")
        address = data.get("address")
        if not private_key or not address:
            return None
        try:
            derived = Account.from_key(private_key).address
        except Exception:
            return None
        if derived.lower() != str(address).lower():
            return None
        return cls(private_key=str(private_key), address=str(address))

    @classmethod
    def generate(cls) -> "Identity":
        account = Account.create()
        return cls(private_key=_hex(account.key), address=account.address)

    def sign_auth_message(self, timestamp_ms: int) -> str:
        """EIP-191 signature over the namespaced timestamp message."""
        message = encode_defunct(text=f"{AUTH_NAMESPACE}:{timestamp_ms}")
        signed = Account.sign_message(message, private_key=self.private_key)
        return _hex(signed.signature)


class CredentialStore:
    """Creates and loads the installation identity."""

    def __init__(self, store: StateStore):
        self.store = store

    def get_or_create_identity(self) -> Identity:
        identity = Identity.from_dict(self.store.read(WALLET_FILE, None))
        if identity is not None:
            return identity

        identity = Identity.generate()
        self.store.write(WALLET_FILE, identity.to_dict(), private=True)
        logger.info("Provisioned new wallet %s", identity.address)
        return identity
