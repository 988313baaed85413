from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

import pytest
import requests
from pytoniq_core import Address, Cell
from tonsdk.contract.wallet import Wallets, WalletVersionEnum

from direct_token_offering.cells import begin_cell
from direct_token_offering.deployment import deploy_contract
from direct_token_offering.errors import NetworkError
from direct_token_offering.ledger import (
    TONCENTER_ENDPOINTS,
    Endpoint,
    OutboundMessage,
    ToncenterClient,
    format_address,
    resolve_endpoint,
)
from direct_token_offering.messages import encode_withdraw
from direct_token_offering.wallet import WalletSender

from .conftest import OWNER, WALLET

ENDPOINT = "https://rpc.example/jsonRPC"


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        return self._payload


class FakeSession:
    """Replays canned JSON-RPC results keyed by method name."""

    def __init__(self, results: Optional[Dict[str, Any]] = None, nodes: Any = None, nodes_status: int = 200):
        self.results = results or {}
        self.nodes = nodes
        self.nodes_status = nodes_status
        self.posts: List[Dict[str, Any]] = []
        self.headers: List[Dict[str, str]] = []

    def get(self, url, timeout=None):
        if self.nodes is None:
            raise requests.ConnectionError("offline")
        return FakeResponse(self.nodes, status_code=self.nodes_status)

    def post(self, url, json=None, headers=None, timeout=None):
        assert url == ENDPOINT
        self.posts.append(json)
        self.headers.append(headers or {})
        method = json["method"]
        if method not in self.results:
            raise AssertionError(f"Unexpected method {method}")
        result = self.results[method]
        if isinstance(result, FakeResponse):
            return result
        return FakeResponse({"ok": True, "result": result})


class RecordingSender:
    def __init__(self) -> None:
        self.address = Address(WALLET)
        self.signed: List[tuple[OutboundMessage, int]] = []
        self.boc = begin_cell().write_uint(0xCAFE, 16).finish().to_boc()

    def sign_transfer(self, message: OutboundMessage, seqno: int) -> bytes:
        self.signed.append((message, seqno))
        return self.boc


def test_resolve_endpoint_prefers_ton_access(caplog):
    caplog.set_level(logging.INFO)
    session = FakeSession(nodes=[{"NodeId": "19e116699", "Healthy": "1"}, {"NodeId": "dead", "Healthy": "0"}])

    endpoint = resolve_endpoint(network="testnet", session=session)

    assert endpoint.source == "ton-access"
    assert endpoint.url == "https://ton-access.orbs.network/19e116699/1/testnet/toncenter-api-v2/jsonRPC"
    assert "Using TON Access endpoint" in caplog.text


def test_resolve_endpoint_falls_back_to_toncenter_with_api_key(caplog):
    caplog.set_level(logging.WARNING)

    endpoint = resolve_endpoint("key", session=FakeSession(nodes=None))

    assert endpoint == Endpoint(url=TONCENTER_ENDPOINTS["mainnet"], api_key="key", source="toncenter")
    assert "falling back to toncenter" in caplog.text


def test_resolve_endpoint_without_api_key_is_fatal():
    with pytest.raises(NetworkError, match="TON_API_KEY"):
        resolve_endpoint(session=FakeSession(nodes=None))


@pytest.mark.parametrize("nodes, status", [([], 200), ([{"NodeId": "x", "Healthy": "0"}], 200), ({"bad": 1}, 200), ([], 503)])
def test_resolve_endpoint_treats_unusable_node_lists_as_unavailable(nodes, status):
    endpoint = resolve_endpoint("key", session=FakeSession(nodes=nodes, nodes_status=status))
    assert endpoint.source == "toncenter"


def test_get_balance_posts_json_rpc_with_api_key():
    session = FakeSession({"getAddressBalance": "1500000000"})
    client = ToncenterClient(ENDPOINT, api_key="secret", session=session)

    assert client.get_balance(Address(OWNER)) == 1_500_000_000
    assert session.posts[0]["method"] == "getAddressBalance"
    assert session.posts[0]["params"] == {"address": format_address(Address(OWNER))}
    assert session.headers[0]["X-API-Key"] == "secret"


def test_client_omits_api_key_header_when_unset():
    session = FakeSession({"getAddressBalance": "0"})
    ToncenterClient.from_endpoint(Endpoint(url=ENDPOINT), session=session).get_balance(Address(OWNER))
    assert "X-API-Key" not in session.headers[0]


def test_rejected_rpc_raises_network_error():
    session = FakeSession({"getAddressBalance": FakeResponse({"ok": False, "error": "rate limited"})})
    client = ToncenterClient(ENDPOINT, session=session)
    with pytest.raises(NetworkError, match="rate limited"):
        client.get_balance(Address(OWNER))


def test_http_failure_raises_network_error():
    session = FakeSession({"getAddressBalance": FakeResponse({}, status_code=500)})
    client = ToncenterClient(ENDPOINT, session=session)
    with pytest.raises(NetworkError):
        client.get_balance(Address(OWNER))


def test_call_parses_get_method_stack():
    session = FakeSession({"runGetMethod": {"gas_used": 812, "exit_code": 0, "stack": [["num", "0x2"]]}})
    client = ToncenterClient(ENDPOINT, session=session)

    result = client.call(Address(OWNER), "get_rate")

    assert result.exit_code == 0
    assert result.gas_used == 812
    assert result.stack[0].value == 2
    assert session.posts[0]["params"]["method"] == "get_rate"
    assert session.posts[0]["params"]["stack"] == []


def test_send_signs_with_current_wallet_seqno_and_broadcasts():
    session = FakeSession(
        {
            "getAddressInformation": {"state": "active", "balance": "10"},
            "runGetMethod": {"exit_code": 0, "stack": [["num", "0x5"]]},
            "sendBoc": {"@type": "ok"},
        }
    )
    client = ToncenterClient(ENDPOINT, session=session)
    sender = RecordingSender()
    message = OutboundMessage(destination=Address(OWNER), value=200_000_000, body=encode_withdraw(0x1234, 10))

    handle = client.send(sender, message)

    assert sender.signed == [(message, 5)]
    assert handle.wallet_seqno == 5
    assert handle.destination is message.destination
    assert len(handle.message_hash) == 64
    send_call = session.posts[-1]
    assert send_call["method"] == "sendBoc"
    assert base64.b64decode(send_call["params"]["boc"]) == sender.boc


def test_send_from_uninitialised_wallet_uses_seqno_zero():
    session = FakeSession({"getAddressInformation": {"state": "uninitialized"}, "sendBoc": {"@type": "ok"}})
    client = ToncenterClient(ENDPOINT, session=session)
    sender = RecordingSender()

    client.send(sender, OutboundMessage(destination=Address(OWNER), value=1, body=begin_cell().finish()))

    assert sender.signed[0][1] == 0
    assert [post["method"] for post in session.posts] == ["getAddressInformation", "sendBoc"]


def test_failed_seqno_lookup_aborts_send():
    session = FakeSession(
        {
            "getAddressInformation": {"state": "active"},
            "runGetMethod": {"exit_code": -13, "stack": []},
        }
    )
    client = ToncenterClient(ENDPOINT, session=session)
    sender = RecordingSender()

    with pytest.raises(NetworkError):
        client.send(sender, OutboundMessage(destination=Address(OWNER), value=1, body=begin_cell().finish()))
    assert sender.signed == []


def test_call_rejects_failed_get_method():
    session = FakeSession({"runGetMethod": {"exit_code": 11, "stack": []}})
    client = ToncenterClient(ENDPOINT, session=session)

    with pytest.raises(NetworkError, match="exit code 11"):
        client.call(Address(OWNER), "get_rate")


def test_deploy_through_client_with_real_wallet(descriptor):
    words, _public_key, _private_key, _wallet = Wallets.create(WalletVersionEnum.v4r2, workchain=0)
    session = FakeSession(
        {
            "getAddressBalance": "0",
            "getAddressInformation": {"state": "uninitialized"},
            "sendBoc": {"@type": "ok"},
        }
    )
    client = ToncenterClient(ENDPOINT, session=session)

    result = deploy_contract(client, WalletSender.from_mnemonic(words), descriptor)

    broadcast = base64.b64decode(session.posts[-1]["params"]["boc"])
    assert result.handle.message_hash == Cell.one_from_boc(broadcast).hash.hex()
    assert [post["method"] for post in session.posts] == ["getAddressBalance", "getAddressInformation", "sendBoc"]
