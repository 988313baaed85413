"""Shared fixtures and in-memory collaborators for the offering tests."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, List, Sequence

import pytest
from pytoniq_core import Address, Cell

from direct_token_offering.cells import begin_cell
from direct_token_offering.contract import ContractDescriptor, create_from_config
from direct_token_offering.errors import NetworkError
from direct_token_offering.ledger import OutboundMessage, SubmissionHandle
from direct_token_offering.stack import RemoteCallResult

OWNER = "0:" + "a1" * 32
USDT = "0:" + "b2" * 32
PROJECT_TOKEN = "0:" + "c3" * 32
WALLET = "0:" + "d4" * 32


class FakeLedger:
    """Ledger client double that records every message it is asked to send."""

    def __init__(self, balance: int = 0, *, fail_balance: bool = False, fail_send: bool = False) -> None:
        self.balance = balance
        self.fail_balance = fail_balance
        self.fail_send = fail_send
        self.balance_queries: List[Address] = []
        self.sent: List[OutboundMessage] = []
        self.calls: List[tuple[Address, str, Sequence[Any]]] = []
        self.call_result = RemoteCallResult()

    def get_balance(self, address: Address) -> int:
        self.balance_queries.append(address)
        if self.fail_balance:
            raise NetworkError("balance endpoint unavailable")
        return self.balance

    def send(self, sender: Any, message: OutboundMessage) -> SubmissionHandle:
        if self.fail_send:
            raise NetworkError("sendBoc rejected")
        self.sent.append(message)
        return SubmissionHandle(destination=message.destination, wallet_seqno=len(self.sent) - 1, message_hash="ab" * 32)

    def call(self, address: Address, method: str, args: Sequence[Any] = ()) -> RemoteCallResult:
        self.calls.append((address, method, args))
        return self.call_result


@pytest.fixture()
def code_cell() -> Cell:
    return begin_cell().write_uint(0xFF00F4A4, 32).write_uint(0x13F4BCF2, 32).finish()


@pytest.fixture()
def descriptor(code_cell: Cell) -> ContractDescriptor:
    return create_from_config(OWNER, USDT, PROJECT_TOKEN, 2, 0, code_cell)


@pytest.fixture()
def sender() -> SimpleNamespace:
    return SimpleNamespace(address=Address(WALLET))


@pytest.fixture()
def make_ledger():
    return FakeLedger
