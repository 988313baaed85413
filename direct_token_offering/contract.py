"""Storage layout and address derivation for the direct token offering contract."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from pytoniq_core import Address, Cell
from pytoniq_core.boc.deserialize import BocError
from pytoniq_core.tlb.account import StateInit

from .cells import AddressLike, begin_cell, parse_address
from .errors import ArtifactMissing, EncodingError

_LOGGER = logging.getLogger(__name__)

DEFAULT_WORKCHAIN = 0
CODE_FILENAME = "direct_token_offering.fc.cell"


@dataclass(frozen=True)
class StorageLayout:
    """Persistent fields of the offering contract, in on-chain order.

    ``usdt_address`` is the counterparty asset buyers pay with and
    ``project_token_address`` the priced asset being sold; ``rate`` is the
    number of project tokens handed out per USDT unit.
    """

    owner_address: Address
    usdt_address: Address
    project_token_address: Address
    rate: int
    seqno: int

    def to_cell(self) -> Cell:
        return (
            begin_cell()
            .write_address(self.owner_address)
            .write_address(self.usdt_address)
            .write_address(self.project_token_address)
            .write_uint(self.rate, 32)
            .write_uint(self.seqno, 32)
            .finish()
        )


@dataclass(frozen=True)
class ContractDescriptor:
    """Immutable ``{code, data}`` pair plus the address derived from it.

    The cached ``data`` reflects the initial storage only; later rate changes
    are sent as messages and are not mirrored here.
    """

    code: Cell
    data: Cell
    address: Address

    @property
    def state_init(self) -> StateInit:
        return StateInit(code=self.code, data=self.data)


def derive_address(code: Cell, data: Cell, workchain: int = DEFAULT_WORKCHAIN) -> Address:
    """Return the address of the account whose initial state is ``{code, data}``."""

    state_init = StateInit(code=code, data=data)
    return Address((workchain, state_init.serialize().hash))


def create_from_config(
    owner_address: AddressLike,
    usdt_address: AddressLike,
    project_token_address: AddressLike,
    rate: int,
    seqno: int,
    code: Cell,
    *,
    workchain: int = DEFAULT_WORKCHAIN,
) -> ContractDescriptor:
    """Build the storage cell for a fresh deployment and derive its address.

    Args:
        owner_address: Account allowed to withdraw and change the rate.
        usdt_address: Counterparty asset (jetton master) address.
        project_token_address: Priced asset (jetton master) address.
        rate: Project tokens per USDT, stored as ``uint32``.
        seqno: Initial sequence number, stored as ``uint32``.
        code: Compiled contract code cell.
        workchain: Target workchain, ``0`` for the basechain.

    Returns:
        A :class:`ContractDescriptor`. Identical arguments always produce
        bit-identical ``data`` and the same address.

    Raises:
        EncodingError: If an address cannot be parsed or an integer field is
            out of range.
    """

    if not isinstance(code, Cell):
        raise EncodingError(f"Contract code must be a Cell, got {type(code).__name__}")
    layout = StorageLayout(
        owner_address=parse_address(owner_address),
        usdt_address=parse_address(usdt_address),
        project_token_address=parse_address(project_token_address),
        rate=rate,
        seqno=seqno,
    )
    data = layout.to_cell()
    address = derive_address(code, data, workchain)
    return ContractDescriptor(code=code, data=data, address=address)


def decode_storage(data: Cell) -> StorageLayout:
    """Read a storage cell back into a :class:`StorageLayout`."""

    cell_slice = data.begin_parse()
    return StorageLayout(
        owner_address=cell_slice.load_address(),
        usdt_address=cell_slice.load_address(),
        project_token_address=cell_slice.load_address(),
        rate=cell_slice.load_uint(32),
        seqno=cell_slice.load_uint(32),
    )


def load_code(path: Union[str, Path]) -> Cell:
    """Load the compiled contract from a serialized bag-of-cells file.

    Raises:
        ArtifactMissing: If the file does not exist or holds no usable cell.
    """

    code_path = Path(path)
    if not code_path.is_file():
        raise ArtifactMissing(f"Compiled contract not found at {code_path}")
    payload = code_path.read_bytes()
    if not payload:
        raise ArtifactMissing(f"Compiled contract at {code_path} is empty")
    try:
        code = Cell.one_from_boc(payload)
    except (BocError, ValueError, IndexError) as exc:
        raise ArtifactMissing(f"Compiled contract at {code_path} is not a valid BoC: {exc}") from exc
    _LOGGER.debug("Loaded contract code %s from %s", code.hash.hex(), code_path)
    return code


__all__ = [
    "CODE_FILENAME",
    "ContractDescriptor",
    "DEFAULT_WORKCHAIN",
    "StorageLayout",
    "create_from_config",
    "decode_storage",
    "derive_address",
    "load_code",
]
