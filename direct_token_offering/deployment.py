"""Idempotent deployment and operation senders for the offering contract."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from pytoniq_core import Address

from .contract import ContractDescriptor
from .ledger import LedgerClient, OutboundMessage, SubmissionHandle, format_address
from .messages import (
    OP_WITHDRAW_PROJECT_TOKEN,
    OP_WITHDRAW_USDT,
    ChangeRateRequest,
    DeployRequest,
    WithdrawRequest,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .wallet import WalletSender

_LOGGER = logging.getLogger(__name__)


class DeploymentState(enum.Enum):
    UNCHECKED = "unchecked"
    ALREADY_DEPLOYED = "already_deployed"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"


@dataclass(frozen=True)
class DeploymentResult:
    state: DeploymentState
    address: Address
    balance: int
    handle: Optional[SubmissionHandle] = None

    def as_dict(self) -> dict:
        return {
            "state": self.state.value,
            "address": format_address(self.address),
            "balance": self.balance,
            "message_hash": self.handle.message_hash if self.handle else None,
        }


def deploy_contract(
    client: LedgerClient,
    sender: "WalletSender",
    descriptor: ContractDescriptor,
    request: DeployRequest = DeployRequest(),
) -> DeploymentResult:
    """Deploy ``descriptor`` unless its address already holds a balance.

    A positive balance is taken as proof of an earlier deployment, so running
    this twice never sends a second deploy message. An account that was only
    funded but never initialised is therefore reported as deployed too.

    Errors from the balance query or the send propagate unchanged; nothing is
    retried.
    """

    _LOGGER.info("Contract address: %s", format_address(descriptor.address))

    balance = client.get_balance(descriptor.address)
    _LOGGER.info("Contract balance: %d", balance)
    if balance > 0:
        _LOGGER.info("Contract is already deployed")
        return DeploymentResult(state=DeploymentState.ALREADY_DEPLOYED, address=descriptor.address, balance=balance)

    _LOGGER.debug("Deployment state: %s", DeploymentState.DEPLOYING.value)
    message = OutboundMessage(
        destination=descriptor.address,
        value=request.value,
        body=request.body(),
        send_mode=request.send_mode,
        state_init=descriptor.state_init,
    )
    handle = client.send(sender, message)
    _LOGGER.info("Contract deployed successfully (message %s)", handle.message_hash)
    return DeploymentResult(state=DeploymentState.DEPLOYED, address=descriptor.address, balance=balance, handle=handle)


def send_withdraw(
    client: LedgerClient,
    sender: "WalletSender",
    address: Address,
    request: WithdrawRequest,
) -> SubmissionHandle:
    message = OutboundMessage(
        destination=address,
        value=request.value,
        body=request.body(),
        send_mode=request.send_mode,
    )
    _LOGGER.info(
        "Withdrawing %d (op %#x, query %d) from %s",
        request.amount,
        request.op_code,
        request.query_id,
        format_address(address),
    )
    return client.send(sender, message)


def send_withdraw_usdt(
    client: LedgerClient, sender: "WalletSender", address: Address, amount: int, query_id: int = 0
) -> SubmissionHandle:
    request = WithdrawRequest(amount=amount, op_code=OP_WITHDRAW_USDT, query_id=query_id)
    return send_withdraw(client, sender, address, request)


def send_withdraw_project_token(
    client: LedgerClient, sender: "WalletSender", address: Address, amount: int, query_id: int = 0
) -> SubmissionHandle:
    request = WithdrawRequest(amount=amount, op_code=OP_WITHDRAW_PROJECT_TOKEN, query_id=query_id)
    return send_withdraw(client, sender, address, request)


def send_change_rate(
    client: LedgerClient, sender: "WalletSender", address: Address, new_rate: int, query_id: int = 0
) -> SubmissionHandle:
    request = ChangeRateRequest(new_rate=new_rate, query_id=query_id)
    message = OutboundMessage(
        destination=address,
        value=request.value,
        body=request.body(),
        send_mode=request.send_mode,
    )
    _LOGGER.info("Changing rate of %s to %d (query %d)", format_address(address), new_rate, query_id)
    return client.send(sender, message)


__all__ = [
    "DeploymentResult",
    "DeploymentState",
    "deploy_contract",
    "send_change_rate",
    "send_withdraw",
    "send_withdraw_project_token",
    "send_withdraw_usdt",
]
