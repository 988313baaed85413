"""HTTP ledger client for the toncenter v2 JSON-RPC API.

Endpoint resolution follows a single fallback: the decentralised Orbs TON
Access gateway first, toncenter second, and only when an API key is
configured.  Every other failure surfaces as :class:`NetworkError`.
"""
from __future__ import annotations

import base64
import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, Sequence

import requests
from pytoniq_core import Address, Cell
from pytoniq_core.tlb.account import StateInit

from .errors import NetworkError
from .messages import SEND_MODE_PAY_GAS_SEPARATELY
from .stack import RemoteCallResult, parse_toncenter_stack

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .wallet import WalletSender

_LOGGER = logging.getLogger(__name__)

TON_ACCESS_NODES_URL = "https://ton-access.orbs.network/mngr/nodes"
TON_ACCESS_BASE_URL = "https://ton-access.orbs.network"
TONCENTER_ENDPOINTS = {
    "mainnet": "https://toncenter.com/api/v2/jsonRPC",
    "testnet": "https://testnet.toncenter.com/api/v2/jsonRPC",
}
DEFAULT_TIMEOUT = 10.0
# TVM treats 0 and 1 as successful termination.
SUCCESS_EXIT_CODES = (0, 1)


def format_address(address: Address, *, bounceable: bool = True) -> str:
    return address.to_str(is_user_friendly=True, is_url_safe=True, is_bounceable=bounceable)


@dataclass(frozen=True)
class Endpoint:
    url: str
    api_key: Optional[str] = field(default=None, repr=False)
    source: str = "ton-access"


def _ton_access_endpoint(session: requests.Session, network: str, timeout: float) -> str:
    try:
        response = session.get(TON_ACCESS_NODES_URL, timeout=timeout)
        response.raise_for_status()
        nodes = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise NetworkError(f"TON Access node list unavailable: {exc}") from exc

    if not isinstance(nodes, list):
        raise NetworkError(f"Unexpected TON Access node list: {nodes!r}")
    healthy = [
        node["NodeId"]
        for node in nodes
        if isinstance(node, dict) and node.get("NodeId") and str(node.get("Healthy")) == "1"
    ]
    if not healthy:
        raise NetworkError("TON Access reports no healthy nodes")
    node_id = random.choice(healthy)
    return f"{TON_ACCESS_BASE_URL}/{node_id}/1/{network}/toncenter-api-v2/jsonRPC"


def resolve_endpoint(
    api_key: Optional[str] = None,
    *,
    network: str = "mainnet",
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Endpoint:
    """Pick the JSON-RPC endpoint to talk to.

    Raises:
        NetworkError: If TON Access is unavailable and no API key is set.
    """

    session = session or requests.Session()
    try:
        url = _ton_access_endpoint(session, network, timeout)
    except NetworkError as exc:
        if not api_key:
            raise NetworkError(
                "Failed to get TON Access endpoint and TON_API_KEY is not defined in .env file"
            ) from exc
        _LOGGER.warning("TON Access unavailable (%s); falling back to toncenter", exc)
        return Endpoint(url=TONCENTER_ENDPOINTS[network], api_key=api_key, source="toncenter")

    _LOGGER.info("Using TON Access endpoint: %s", url)
    return Endpoint(url=url, api_key=api_key, source="ton-access")


@dataclass(frozen=True)
class OutboundMessage:
    """Internal message a wallet should deliver to ``destination``."""

    destination: Address
    value: int
    body: Cell
    send_mode: int = SEND_MODE_PAY_GAS_SEPARATELY
    state_init: Optional[StateInit] = None
    bounce: bool = True


@dataclass(frozen=True)
class SubmissionHandle:
    """Acknowledgement that a signed message was accepted for broadcast."""

    destination: Address
    wallet_seqno: int
    message_hash: str


class LedgerClient(Protocol):
    def get_balance(self, address: Address) -> int: ...

    def send(self, sender: "WalletSender", message: OutboundMessage) -> SubmissionHandle: ...

    def call(self, address: Address, method: str, args: Sequence[Any] = ()) -> RemoteCallResult: ...


@dataclass
class ToncenterClient:
    """Thin wrapper around the toncenter JSON-RPC methods used by the deploy flow."""

    endpoint: str
    api_key: Optional[str] = field(default=None, repr=False)
    session: Optional[requests.Session] = None
    timeout: Optional[float] = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
        self._headers = {"Content-Type": "application/json"}
        if self.api_key:
            self._headers["X-API-Key"] = self.api_key

    @classmethod
    def from_endpoint(cls, endpoint: Endpoint, session: Optional[requests.Session] = None) -> "ToncenterClient":
        return cls(endpoint=endpoint.url, api_key=endpoint.api_key, session=session)

    def _rpc(self, method: str, params: Dict[str, Any]) -> Any:
        payload = {"id": 1, "jsonrpc": "2.0", "method": method, "params": params}
        try:
            response = self.session.post(self.endpoint, json=payload, headers=self._headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise NetworkError(f"{method} failed: {exc}") from exc
        if not isinstance(data, dict) or not data.get("ok", False):
            error = data.get("error") if isinstance(data, dict) else data
            raise NetworkError(f"{method} rejected by {self.endpoint}: {error}")
        return data.get("result")

    def get_balance(self, address: Address) -> int:
        result = self._rpc("getAddressBalance", {"address": format_address(address)})
        try:
            return int(result)
        except (TypeError, ValueError) as exc:
            raise NetworkError(f"Unexpected balance payload: {result!r}") from exc

    def get_account_state(self, address: Address) -> str:
        """Return ``active``, ``uninitialized`` or ``frozen``."""

        result = self._rpc("getAddressInformation", {"address": format_address(address)})
        if not isinstance(result, dict) or "state" not in result:
            raise NetworkError(f"Unexpected account information payload: {result!r}")
        return str(result["state"])

    def call(self, address: Address, method: str, args: Sequence[Any] = ()) -> RemoteCallResult:
        result = self._rpc(
            "runGetMethod",
            {"address": format_address(address), "method": method, "stack": list(args)},
        )
        if not isinstance(result, dict):
            raise NetworkError(f"Unexpected runGetMethod payload: {result!r}")
        exit_code = int(result.get("exit_code", 0))
        if exit_code not in SUCCESS_EXIT_CODES:
            raise NetworkError(f"{method} failed on {format_address(address)} with exit code {exit_code}")
        return RemoteCallResult(
            stack=parse_toncenter_stack(result.get("stack") or []),
            exit_code=exit_code,
            gas_used=int(result.get("gas_used", 0)),
        )

    def get_wallet_seqno(self, address: Address) -> int:
        if self.get_account_state(address) != "active":
            return 0
        result = self.call(address, "seqno")
        if not result.stack:
            raise NetworkError("seqno get-method returned an empty stack")
        return int(result.stack[0].value)

    def send(self, sender: "WalletSender", message: OutboundMessage) -> SubmissionHandle:
        """Sign ``message`` with ``sender`` and broadcast it.

        Returns once the endpoint accepts the message; inclusion in a block is
        not awaited.
        """

        seqno = self.get_wallet_seqno(sender.address)
        boc = bytes(sender.sign_transfer(message, seqno))
        message_hash = Cell.one_from_boc(boc).hash.hex()
        self._rpc("sendBoc", {"boc": base64.b64encode(boc).decode("ascii")})
        _LOGGER.debug("Broadcast external message %s (wallet seqno %d)", message_hash, seqno)
        return SubmissionHandle(destination=message.destination, wallet_seqno=seqno, message_hash=message_hash)


__all__ = [
    "Endpoint",
    "LedgerClient",
    "OutboundMessage",
    "SubmissionHandle",
    "TONCENTER_ENDPOINTS",
    "ToncenterClient",
    "format_address",
    "resolve_endpoint",
]
