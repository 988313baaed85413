"""Positional decoding of get-method result stacks."""
from __future__ import annotations

import base64
import binascii
import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence, Tuple

from pytoniq_core import Cell
from pytoniq_core.boc.deserialize import BocError

from .errors import StackUnderflow, TypeMismatch

TAG_NUM = "num"
TAG_CELL = "cell"
TAG_SLICE = "slice"


class ExpectedKind(enum.Enum):
    INT = "int"
    CELL = "cell"
    SLICE = "slice"
    ADDRESS = "address"


_ACCEPTED_TAGS = {
    ExpectedKind.INT: (TAG_NUM,),
    ExpectedKind.CELL: (TAG_CELL,),
    ExpectedKind.SLICE: (TAG_SLICE,),
    ExpectedKind.ADDRESS: (TAG_SLICE, TAG_CELL),
}


@dataclass(frozen=True)
class StackEntry:
    """One tagged value; ``value`` is an ``int`` for numbers, a ``Cell`` otherwise."""

    tag: str
    value: Any


@dataclass(frozen=True)
class RemoteCallResult:
    """Result of a read-only contract call.

    ``stack[0]`` is the first value the contract pushed and the first one
    :func:`read_stack` consumes.
    """

    stack: Tuple[StackEntry, ...] = field(default_factory=tuple)
    exit_code: int = 0
    gas_used: int = 0


def _cell_from_payload(payload: Any) -> Cell:
    if isinstance(payload, dict):
        payload = payload.get("bytes")
    if not isinstance(payload, str):
        raise TypeMismatch(f"Cell entry without serialized bytes: {payload!r}")
    try:
        return Cell.one_from_boc(base64.b64decode(payload, validate=True))
    except (BocError, binascii.Error, ValueError, IndexError) as exc:
        raise TypeMismatch(f"Undecodable cell entry: {exc}") from exc


def parse_toncenter_entry(raw: Sequence[Any]) -> StackEntry:
    """Convert a toncenter ``[tag, value]`` pair into a :class:`StackEntry`."""

    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise TypeMismatch(f"Malformed stack entry: {raw!r}")
    tag, payload = raw
    if tag == TAG_NUM:
        try:
            return StackEntry(TAG_NUM, int(str(payload), 16))
        except ValueError as exc:
            raise TypeMismatch(f"Malformed num entry: {payload!r}") from exc
    if tag in (TAG_CELL, TAG_SLICE):
        return StackEntry(tag, _cell_from_payload(payload))
    return StackEntry(str(tag), payload)


def parse_toncenter_stack(raw_stack: Iterable[Sequence[Any]]) -> Tuple[StackEntry, ...]:
    return tuple(parse_toncenter_entry(entry) for entry in raw_stack)


def _decode(entry: StackEntry, kind: ExpectedKind) -> Any:
    if entry.tag not in _ACCEPTED_TAGS[kind]:
        raise TypeMismatch(f"Expected {kind.value}, found stack entry tagged {entry.tag!r}")
    if kind is ExpectedKind.ADDRESS:
        try:
            return entry.value.begin_parse().load_address()
        except (BocError, ValueError, IndexError) as exc:
            raise TypeMismatch(f"Stack entry does not hold an address: {exc}") from exc
    return entry.value


def read_stack(result: RemoteCallResult, kinds: Sequence[ExpectedKind]) -> List[Any]:
    """Decode the leading ``len(kinds)`` stack values in order.

    Raises:
        StackUnderflow: If the stack is shorter than ``kinds``.
        TypeMismatch: If an entry's tag does not match the requested kind, or
            an address entry holds no address.
    """

    if len(result.stack) < len(kinds):
        raise StackUnderflow(
            f"Requested {len(kinds)} values but the stack holds {len(result.stack)}"
        )
    return [_decode(entry, kind) for entry, kind in zip(result.stack, kinds)]


__all__ = [
    "ExpectedKind",
    "RemoteCallResult",
    "StackEntry",
    "parse_toncenter_entry",
    "parse_toncenter_stack",
    "read_stack",
]
