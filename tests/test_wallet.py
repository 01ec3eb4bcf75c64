"""Tests for identity provisioning and request signing."""

import json
import stat

from eth_account import Account
from eth_account.messages import encode_defunct

from octorail.config import WALLET_FILE
from octorail.storage import JsonFileStore, MemoryStore
from octorail.wallet import CredentialStore, Identity


class TestCredentialStore:
    def test_first_use_provisions_identity(self, tmp_path):
        base = tmp_path / "home" / ".octorail"
        creds = CredentialStore(JsonFileStore(base))

        identity = creds.get_or_create_identity()

        assert identity.address.startswith("0x")
        assert Account.from_key(identity.private_key).address == identity.address
        stored = json.loads((base / WALLET_FILE).read_text())
        assert stored == {"privateKey": identity.private_key, "address": identity.address}

    def test_wallet_file_is_owner_only(self, tmp_path):
        CredentialStore(JsonFileStore(tmp_path)).get_or_create_identity()
        assert stat.S_IMODE((tmp_path / WALLET_FILE).stat().st_mode) == 0o600

    def test_provisioning_is_idempotent(self, tmp_path):
        creds = CredentialStore(JsonFileStore(tmp_path))

        first = creds.get_or_create_identity()
        before = (tmp_path / WALLET_FILE).read_bytes()
        second = creds.get_or_create_identity()

        assert second.address == first.address
        assert second.private_key == first.private_key
        assert (tmp_path / WALLET_FILE).read_bytes() == before

    def test_separate_store_instances_share_identity(self, tmp_path):
        first = CredentialStore(JsonFileStore(tmp_path)).get_or_create_identity()
        second = CredentialStore(JsonFileStore(tmp_path)).get_or_create_identity()
        assert first == second

    def test_corrupt_wallet_is_regenerated(self, tmp_path):
        (tmp_path / WALLET_FILE).write_text("garbage")
        identity = CredentialStore(JsonFileStore(tmp_path)).get_or_create_identity()

        stored = json.loads((tmp_path / WALLET_FILE).read_text())
        assert stored["address"] == identity.address

    def test_missing_field_is_regenerated(self):
        store = MemoryStore({WALLET_FILE: {"privateKey": "0x" + "11" * 32}})
        identity = CredentialStore(store).get_or_create_identity()
        assert store.read(WALLET_FILE, {})["address"] == identity.address

    def test_mismatched_address_is_regenerated(self):
        acct = Account.create()
        store = MemoryStore({WALLET_FILE: {
            "privateKey": "0x" + "22" * 32,
            "address": acct.address,
        }})
        identity = CredentialStore(store).get_or_create_identity()
        assert identity.address != acct.address
        assert Account.from_key(identity.private_key).address == identity.address

    def test_existing_wallet_returned_unchanged(self):
        acct = Account.create()
        key = "0x" + acct.key.hex().removeprefix("0x")
        store = MemoryStore({WALLET_FILE: {"privateKey": key, "address": acct.address}})

        identity = CredentialStore(store).get_or_create_identity()

        assert identity == Identity(private_key=key, address=acct.address)
        assert WALLET_FILE not in store.private


class TestIdentity:
    def test_generated_key_is_prefixed_hex(self):
        identity = Identity.generate()
        assert identity.private_key.startswith("0x")
        assert len(identity.private_key) == 66

    def test_auth_signature_recovers_address(self):
        identity = Identity.generate()
        signature = identity.sign_auth_message(1700000000000)

        recovered = Account.recover_message(
            encode_defunct(text="octorail:1700000000000"),
            signature=signature,
        )
        assert recovered == identity.address

    def test_from_dict_rejects_non_mapping(self):
        assert Identity.from_dict(None) is None
        assert Identity.from_dict(["0x"]) is None
        assert Identity.from_dict({"privateKey": "zz", "address": "0x0"}) is None
