"""Mnemonic-backed v4r2 wallet used to authorise outbound messages."""
from __future__ import annotations

from typing import Any, Sequence

from pytoniq_core import Address, Cell
from tonsdk.boc import Cell as TonsdkCell
from tonsdk.contract.wallet import Wallets, WalletVersionEnum

from .cells import parse_address
from .config import MNEMONIC_WORDS
from .errors import ConfigurationError
from .ledger import OutboundMessage, format_address


def _to_tonsdk(cell: Cell) -> TonsdkCell:
    return TonsdkCell.one_from_boc(cell.to_boc(has_idx=False))


class WalletSender:
    """Signs transfers from a v4r2 wallet derived from a mnemonic phrase.

    When the wallet has never sent anything (seqno 0) the signed message also
    carries the wallet's own state init, so the first send deploys it.
    """

    def __init__(self, wallet: Any) -> None:
        self._wallet = wallet
        self.address: Address = parse_address(wallet.address.to_string(False))

    @classmethod
    def from_mnemonic(cls, words: Sequence[str], workchain: int = 0) -> "WalletSender":
        if len(words) != MNEMONIC_WORDS:
            raise ConfigurationError(f"MNEMONIC must contain {MNEMONIC_WORDS} words, got {len(words)}")
        _mnemonics, _public_key, _private_key, wallet = Wallets.from_mnemonics(
            list(words), WalletVersionEnum.v4r2, workchain
        )
        return cls(wallet)

    def sign_transfer(self, message: OutboundMessage, seqno: int) -> bytes:
        """Return the serialized external message carrying ``message``."""

        state_init = None
        if message.state_init is not None:
            state_init = _to_tonsdk(message.state_init.serialize())
        query = self._wallet.create_transfer_message(
            to_addr=format_address(message.destination, bounceable=message.bounce),
            amount=message.value,
            seqno=seqno,
            payload=_to_tonsdk(message.body),
            send_mode=message.send_mode,
            state_init=state_init,
        )
        return bytes(query["message"].to_boc(False))


__all__ = ["WalletSender"]
