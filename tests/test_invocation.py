"""Tests for the approve → call → record flow."""

import json

import pytest

from octorail.allowlist import AuthorizationGate
from octorail.config import WALLET_FILE
from octorail.errors import PolicyBlockedError, RemoteError, ValidationError
from octorail.invocation import parse_call_body
from octorail.ledger import CallLedger


class TestParseCallBody:
    def test_missing_body_is_empty_object(self):
        assert parse_call_body(None) == {}
        assert parse_call_body("  ") == {}

    def test_valid_json(self):
        assert parse_call_body('{"text": "hi"}') == {"text": "hi"}
        assert parse_call_body("[1, 2]") == [1, 2]

    def test_malformed_json(self):
        with pytest.raises(ValidationError, match="Invalid JSON body"):
            parse_call_body("{text: hi}")


class TestInvoker:
    @pytest.mark.asyncio
    async def test_unapproved_call_is_blocked_before_network(self, invoker, store, transport):
        with pytest.raises(PolicyBlockedError) as exc_info:
            await invoker.call("carol", "ocr", '{"image": "x"}')

        assert "carol/ocr" in str(exc_info.value)
        assert transport.requests == []
        assert CallLedger(store).recent() == []

    @pytest.mark.asyncio
    async def test_identity_is_provisioned_even_when_blocked(self, invoker, store):
        with pytest.raises(PolicyBlockedError):
            await invoker.call("carol", "ocr")
        assert store.read(WALLET_FILE, None) is not None

    @pytest.mark.asyncio
    async def test_approved_call_is_recorded_at_approved_price(self, invoker, store, transport):
        AuthorizationGate(store).approve("bob", "translate", "0.02")
        transport.queue(200, {"translation": "salut"})

        result = await invoker.call("bob", "translate", '{"text":"hi"}')

        assert result == {"translation": "salut"}
        assert json.loads(transport.requests[0].content) == {"text": "hi"}
        records = CallLedger(store).recent()
        assert len(records) == 1
        assert records[0].provider == "bob"
        assert records[0].api == "translate"
        assert records[0].price == "0.02"
        assert records[0].status == "success"
        assert records[0].call_id is None

    @pytest.mark.asyncio
    async def test_remote_status_and_call_id_are_recorded(self, invoker, store, transport):
        AuthorizationGate(store).approve("bob", "translate", "0.02")
        transport.queue(200, {"callId": "call-9", "status": "failed", "error": "bad text"})

        await invoker.call("bob", "translate")

        record = CallLedger(store).recent()[0]
        assert record.call_id == "call-9"
        assert record.status == "failed"

    @pytest.mark.asyncio
    async def test_uses_wallet_identity_for_auth(self, invoker, store, transport):
        AuthorizationGate(store).approve("bob", "translate", "0.02")

        await invoker.call("bob", "translate")

        wallet = store.read(WALLET_FILE, {})
        assert transport.requests[0].headers["x-wallet"] == wallet["address"]

    @pytest.mark.asyncio
    async def test_malformed_body_fails_before_network(self, invoker, store, transport):
        AuthorizationGate(store).approve("bob", "translate", "0.02")

        with pytest.raises(ValidationError):
            await invoker.call("bob", "translate", "{not json")

        assert transport.requests == []
        assert CallLedger(store).recent() == []

    @pytest.mark.asyncio
    async def test_remote_failure_is_not_recorded(self, invoker, store, transport):
        AuthorizationGate(store).approve("bob", "translate", "0.02")
        transport.queue(503, "maintenance")

        with pytest.raises(RemoteError, match="503"):
            await invoker.call("bob", "translate")

        assert len(transport.requests) == 1
        assert CallLedger(store).recent() == []

    @pytest.mark.asyncio
    async def test_revoked_api_is_blocked_despite_history(self, invoker, store, transport):
        gate = AuthorizationGate(store)
        gate.approve("bob", "translate", "0.02")
        await invoker.call("bob", "translate")
        gate.revoke("bob", "translate")

        with pytest.raises(PolicyBlockedError):
            await invoker.call("bob", "translate")

        assert len(transport.requests) == 1
        assert len(CallLedger(store).recent()) == 1

    @pytest.mark.asyncio
    async def test_price_is_approval_not_live_price(self, invoker, store, transport):
        gate = AuthorizationGate(store)
        gate.approve("bob", "translate", "0.02")
        await invoker.call("bob", "translate")
        gate.approve("bob", "translate", "0.05")
        await invoker.call("bob", "translate")

        prices = [r.price for r in CallLedger(store).recent()]
        assert prices == ["0.05", "0.02"]
        assert CallLedger(store).summarize().total == "0.07"

    @pytest.mark.asyncio
    async def test_catalog_operations(self, invoker, transport):
        transport.queue(200, {"apis": [{"slug": "weather"}]})
        transport.queue(200, {"slug": "weather", "price": "0.01"})

        catalog = await invoker.list_apis(search="weather")
        detail = await invoker.get_api("acme", "weather")

        assert catalog["apis"][0]["slug"] == "weather"
        assert detail["price"] == "0.01"
        assert [r.method for r in transport.requests] == ["GET", "GET"]
