"""Typed, capacity-checked writer for TON cells.

``CellWriter`` wraps :class:`pytoniq_core.Builder` and validates every field
before it reaches the builder, so malformed values surface as
:class:`~direct_token_offering.errors.EncodingError` instead of a silently
truncated cell.  The widths used for the capacity accounting follow the
canonical TL-B layouts:

* ``MsgAddressInt`` (``addr_std`` without anycast) takes 267 bits, the
  ``addr_none`` constructor two bits;
* ``Coins`` (``VarUInteger 16``) takes a 4-bit length prefix followed by the
  minimal number of whole bytes.
"""
from __future__ import annotations

from typing import Optional, Union

from pytoniq_core import Address, Builder, Cell
from pytoniq_core.boc.address import AddressError

from .errors import CapacityExceeded, EncodingError

MAX_CELL_BITS = 1023
MAX_CELL_REFS = 4

ADDRESS_BITS = 267
ADDRESS_NONE_BITS = 2
COINS_LENGTH_BITS = 4
MAX_COINS_BYTES = 15

AddressLike = Union[Address, str]


def parse_address(value: AddressLike) -> Address:
    """Return an :class:`Address` for raw (``0:<hex>``) or user-friendly input."""

    if isinstance(value, Address):
        return value
    if not isinstance(value, str) or not value.strip():
        raise EncodingError(f"Expected an address string, got {value!r}")
    try:
        return Address(value.strip())
    except (AddressError, ValueError) as exc:
        raise EncodingError(f"Invalid address {value!r}: {exc}") from exc


def coins_bit_length(amount: int) -> int:
    byte_length = (amount.bit_length() + 7) // 8
    return COINS_LENGTH_BITS + 8 * byte_length


class CellWriter:
    """Append-only writer producing a single immutable cell."""

    def __init__(self) -> None:
        self._builder = Builder()
        self._bits = 0
        self._refs = 0
        self._finished = False

    @property
    def used_bits(self) -> int:
        return self._bits

    @property
    def used_refs(self) -> int:
        return self._refs

    def _reserve(self, bits: int = 0, refs: int = 0) -> None:
        if self._finished:
            raise EncodingError("CellWriter.finish() was already called")
        if self._bits + bits > MAX_CELL_BITS:
            raise CapacityExceeded(
                f"Cell would hold {self._bits + bits} bits (limit {MAX_CELL_BITS})"
            )
        if self._refs + refs > MAX_CELL_REFS:
            raise CapacityExceeded(
                f"Cell would hold {self._refs + refs} references (limit {MAX_CELL_REFS})"
            )
        self._bits += bits
        self._refs += refs

    def write_uint(self, value: int, bits: int) -> "CellWriter":
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodingError(f"uint{bits} field expects an integer, got {value!r}")
        if bits <= 0 or bits > 256:
            raise EncodingError(f"Unsupported uint width: {bits}")
        if value < 0 or value >= 1 << bits:
            raise EncodingError(f"Value {value} does not fit in uint{bits}")
        self._reserve(bits=bits)
        self._builder.store_uint(value, bits)
        return self

    def write_coins(self, amount: int) -> "CellWriter":
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise EncodingError(f"Coin amount must be an integer number of nanotons, got {amount!r}")
        if amount < 0:
            raise EncodingError(f"Coin amount cannot be negative: {amount}")
        if amount.bit_length() > 8 * MAX_COINS_BYTES:
            raise EncodingError(f"Coin amount {amount} exceeds the 120-bit coin format")
        self._reserve(bits=coins_bit_length(amount))
        self._builder.store_coins(amount)
        return self

    def write_address(self, address: Optional[AddressLike]) -> "CellWriter":
        if address is None:
            self._reserve(bits=ADDRESS_NONE_BITS)
            self._builder.store_address(None)
            return self
        parsed = parse_address(address)
        self._reserve(bits=ADDRESS_BITS)
        self._builder.store_address(parsed)
        return self

    def write_ref(self, cell: Cell) -> "CellWriter":
        if not isinstance(cell, Cell):
            raise EncodingError(f"Reference must be a Cell, got {type(cell).__name__}")
        self._reserve(refs=1)
        self._builder.store_ref(cell)
        return self

    def finish(self) -> Cell:
        if self._finished:
            raise EncodingError("CellWriter.finish() was already called")
        self._finished = True
        return self._builder.end_cell()


def begin_cell() -> CellWriter:
    return CellWriter()


def empty_cell() -> Cell:
    return CellWriter().finish()


__all__ = [
    "ADDRESS_BITS",
    "AddressLike",
    "CellWriter",
    "MAX_CELL_BITS",
    "MAX_CELL_REFS",
    "begin_cell",
    "coins_bit_length",
    "empty_cell",
    "parse_address",
]
