"""Message bodies understood by the direct token offering contract.

Every operation body starts with a 32-bit op-code and a 64-bit query id; the
contract dispatches on the op-code alone.  The deploy body is the empty cell,
which tells "first message constructs the account" apart from an operation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from pytoniq_core import Cell, Slice
from pytoniq_core.boc.deserialize import BocError

from .cells import COINS_LENGTH_BITS, begin_cell, empty_cell
from .errors import EncodingError

OP_WITHDRAW_USDT = 0x1234
OP_WITHDRAW_PROJECT_TOKEN = 0x5678
OP_CHANGE_RATE = 0x9ABC

KIND_WITHDRAW = "withdraw"
KIND_CHANGE_RATE = "change_rate"

OP_CODE_KINDS: Dict[int, str] = {
    OP_WITHDRAW_USDT: KIND_WITHDRAW,
    OP_WITHDRAW_PROJECT_TOKEN: KIND_WITHDRAW,
    OP_CHANGE_RATE: KIND_CHANGE_RATE,
}

# Attached TON values, in nanotons.
DEPLOY_VALUE = 500_000_000
WITHDRAW_VALUE = 200_000_000
CHANGE_RATE_VALUE = 100_000_000

SEND_MODE_PAY_GAS_SEPARATELY = 1

MAX_QUERY_ID = (1 << 64) - 1


def _check_op_code(op_code: int, kind: str) -> None:
    if isinstance(op_code, bool) or not isinstance(op_code, int):
        raise EncodingError(f"Op-code must be an integer, got {op_code!r}")
    registered = OP_CODE_KINDS.get(op_code)
    if registered is not None and registered != kind:
        raise EncodingError(f"Op-code {op_code:#x} is reserved for {registered}, not {kind}")


def encode_deploy() -> Cell:
    return empty_cell()


def encode_withdraw(op_code: int, amount: int, query_id: int = 0) -> Cell:
    """Encode ``op(32) query_id(64) amount(coins)``."""

    _check_op_code(op_code, KIND_WITHDRAW)
    return (
        begin_cell()
        .write_uint(op_code, 32)
        .write_uint(query_id, 64)
        .write_coins(amount)
        .finish()
    )


def encode_change_rate(op_code: int, new_rate: int, query_id: int = 0) -> Cell:
    """Encode ``op(32) query_id(64) new_rate(32)``."""

    _check_op_code(op_code, KIND_CHANGE_RATE)
    return (
        begin_cell()
        .write_uint(op_code, 32)
        .write_uint(query_id, 64)
        .write_uint(new_rate, 32)
        .finish()
    )


@dataclass(frozen=True)
class OperationMessage:
    """Decoded operation body."""

    op_code: int
    query_id: int
    amount: Optional[int] = None
    new_rate: Optional[int] = None

    @property
    def kind(self) -> Optional[str]:
        return OP_CODE_KINDS.get(self.op_code)


def _decode_body(body: Cell, read: Callable[[Slice], OperationMessage]) -> OperationMessage:
    cell_slice = body.begin_parse()
    try:
        message = read(cell_slice)
    except (BocError, ValueError, IndexError) as exc:
        raise EncodingError(f"Truncated operation body: {exc}") from exc
    if cell_slice.remaining_bits or cell_slice.remaining_refs:
        raise EncodingError(
            f"Operation body has {cell_slice.remaining_bits} trailing bits "
            f"and {cell_slice.remaining_refs} trailing refs"
        )
    return message


def _load_uint(cell_slice: Slice, bits: int) -> int:
    if cell_slice.remaining_bits < bits:
        raise EncodingError(f"Truncated operation body: need {bits} bits, {cell_slice.remaining_bits} left")
    return cell_slice.load_uint(bits)


def _load_coins(cell_slice: Slice) -> int:
    length = _load_uint(cell_slice, COINS_LENGTH_BITS)
    return _load_uint(cell_slice, length * 8) if length else 0


def _read_withdraw(cell_slice: Slice) -> OperationMessage:
    return OperationMessage(
        op_code=_load_uint(cell_slice, 32),
        query_id=_load_uint(cell_slice, 64),
        amount=_load_coins(cell_slice),
    )


def _read_change_rate(cell_slice: Slice) -> OperationMessage:
    return OperationMessage(
        op_code=_load_uint(cell_slice, 32),
        query_id=_load_uint(cell_slice, 64),
        new_rate=_load_uint(cell_slice, 32),
    )


def decode_withdraw(body: Cell) -> OperationMessage:
    return _decode_body(body, _read_withdraw)


def decode_change_rate(body: Cell) -> OperationMessage:
    """Decode a change-rate body; truncated or over-long bodies raise :class:`EncodingError`."""

    return _decode_body(body, _read_change_rate)


def decode_operation(body: Cell) -> Optional[OperationMessage]:
    """Decode any body produced by this module.

    Returns ``None`` for the empty deploy body and raises
    :class:`EncodingError` for op-codes the contract does not know, and for
    bodies that are truncated or carry trailing data.
    """

    if len(body.bits) == 0 and not body.refs:
        return None
    if len(body.bits) < 32:
        raise EncodingError(f"Body too short for an op-code: {len(body.bits)} bits")
    op_code = body.begin_parse().load_uint(32)
    kind = OP_CODE_KINDS.get(op_code)
    if kind == KIND_WITHDRAW:
        return decode_withdraw(body)
    if kind == KIND_CHANGE_RATE:
        return decode_change_rate(body)
    raise EncodingError(f"Unknown op-code {op_code:#x}")


@dataclass(frozen=True)
class DeployRequest:
    value: int = DEPLOY_VALUE
    send_mode: int = SEND_MODE_PAY_GAS_SEPARATELY

    def body(self) -> Cell:
        return encode_deploy()


@dataclass(frozen=True)
class WithdrawRequest:
    """Withdraw ``amount`` base units of the asset selected by ``op_code``.

    ``query_id`` defaults to 0; callers correlating replies must pick unique
    ids themselves.
    """

    amount: int
    op_code: int = OP_WITHDRAW_USDT
    query_id: int = 0
    value: int = WITHDRAW_VALUE
    send_mode: int = SEND_MODE_PAY_GAS_SEPARATELY

    def body(self) -> Cell:
        return encode_withdraw(self.op_code, self.amount, self.query_id)


@dataclass(frozen=True)
class ChangeRateRequest:
    new_rate: int
    op_code: int = OP_CHANGE_RATE
    query_id: int = 0
    value: int = CHANGE_RATE_VALUE
    send_mode: int = SEND_MODE_PAY_GAS_SEPARATELY

    def body(self) -> Cell:
        return encode_change_rate(self.op_code, self.new_rate, self.query_id)


__all__ = [
    "CHANGE_RATE_VALUE",
    "ChangeRateRequest",
    "DEPLOY_VALUE",
    "DeployRequest",
    "MAX_QUERY_ID",
    "OP_CHANGE_RATE",
    "OP_CODE_KINDS",
    "OP_WITHDRAW_PROJECT_TOKEN",
    "OP_WITHDRAW_USDT",
    "OperationMessage",
    "SEND_MODE_PAY_GAS_SEPARATELY",
    "WITHDRAW_VALUE",
    "WithdrawRequest",
    "decode_change_rate",
    "decode_operation",
    "decode_withdraw",
    "encode_change_rate",
    "encode_deploy",
    "encode_withdraw",
]
