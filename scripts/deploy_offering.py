#!/usr/bin/env python3
"""Deploy and operate the direct token offering contract.

Settings come from the environment (or a ``.env`` file): ``OWNER_ADDRESS``,
``USDT_ADDRESS``, ``PROJECT_TOKEN_ADDRESS``, ``PROJECT_TOKEN_TO_USDT_RATE``
(default 2), ``MNEMONIC`` and optionally ``TON_API_KEY``.

Example usage::

    python scripts/deploy_offering.py address
    python scripts/deploy_offering.py deploy
    python scripts/deploy_offering.py change-rate --rate 5
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from direct_token_offering.config import OfferingConfig, load_config
from direct_token_offering.contract import CODE_FILENAME, ContractDescriptor, create_from_config, load_code
from direct_token_offering.deployment import (
    deploy_contract,
    send_change_rate,
    send_withdraw_project_token,
    send_withdraw_usdt,
)
from direct_token_offering.errors import DirectTokenOfferingError
from direct_token_offering.ledger import ToncenterClient, format_address, resolve_endpoint
from direct_token_offering.wallet import WalletSender

SCRIPT_DIR = Path(__file__).resolve().parent
DEFAULT_CODE_PATH = SCRIPT_DIR / CODE_FILENAME
INITIAL_SEQNO = 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deploy and operate the direct token offering contract.")
    parser.add_argument(
        "--code",
        default=None,
        help=f"Path to the compiled contract BoC (defaults to DTO_CODE_PATH or {CODE_FILENAME} next to this script).",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of formatted text.")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging verbosity (DEBUG, INFO, WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("address", help="Print the derived contract address without touching the network.")
    commands.add_parser("balance", help="Print the contract balance in nanotons.")
    commands.add_parser("deploy", help="Deploy the contract unless its address already holds a balance.")

    for name, help_text in (
        ("withdraw-usdt", "Withdraw USDT held by the contract."),
        ("withdraw-project-token", "Withdraw project tokens held by the contract."),
    ):
        withdraw = commands.add_parser(name, help=help_text)
        withdraw.add_argument("--amount", type=int, required=True, help="Amount in the asset's base units.")
        withdraw.add_argument("--query-id", type=int, default=0, help="Correlation id echoed in replies.")

    change_rate = commands.add_parser("change-rate", help="Change the project token to USDT rate.")
    change_rate.add_argument("--rate", type=int, required=True, help="New rate (uint32).")
    change_rate.add_argument("--query-id", type=int, default=0, help="Correlation id echoed in replies.")
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def _code_path(args: argparse.Namespace, config: OfferingConfig) -> Path:
    if args.code:
        return Path(args.code).expanduser()
    return config.code_path or DEFAULT_CODE_PATH


def _descriptor(args: argparse.Namespace, config: OfferingConfig) -> ContractDescriptor:
    code = load_code(_code_path(args, config))
    return create_from_config(
        config.owner_address,
        config.usdt_address,
        config.project_token_address,
        config.rate,
        INITIAL_SEQNO,
        code,
    )


def _emit(args: argparse.Namespace, payload: Dict[str, Any], text: str) -> None:
    if args.json:
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print(text)


def _run(args: argparse.Namespace) -> int:
    config = load_config()
    descriptor = _descriptor(args, config)
    address = format_address(descriptor.address)

    if args.command == "address":
        _emit(args, {"address": address}, f"Contract address: {address}")
        return 0

    endpoint = resolve_endpoint(config.api_key, network=config.network)
    client = ToncenterClient.from_endpoint(endpoint)

    if args.command == "balance":
        balance = client.get_balance(descriptor.address)
        _emit(args, {"address": address, "balance": balance}, f"Contract balance: {balance}")
        return 0

    sender = WalletSender.from_mnemonic(config.mnemonic)
    if args.command == "deploy":
        result = deploy_contract(client, sender, descriptor)
        _emit(args, result.as_dict(), f"Contract {address}: {result.state.value}")
        return 0

    if args.command == "withdraw-usdt":
        handle = send_withdraw_usdt(client, sender, descriptor.address, args.amount, args.query_id)
    elif args.command == "withdraw-project-token":
        handle = send_withdraw_project_token(client, sender, descriptor.address, args.amount, args.query_id)
    else:
        handle = send_change_rate(client, sender, descriptor.address, args.rate, args.query_id)
    _emit(
        args,
        {"address": address, "command": args.command, "message_hash": handle.message_hash},
        f"Submitted {args.command} to {address} (message {handle.message_hash})",
    )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return _run(args)
    except DirectTokenOfferingError as exc:
        logging.error("%s: %s", type(exc).__name__, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
