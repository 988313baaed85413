"""Load and validate the deployment configuration from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv
from pytoniq_core import Address

from .cells import parse_address
from .errors import ConfigurationError, EncodingError

DEFAULT_RATE = 2
NETWORKS = ("mainnet", "testnet")

MNEMONIC_WORDS = 24

REQUIRED_KEYS = ("OWNER_ADDRESS", "USDT_ADDRESS", "PROJECT_TOKEN_ADDRESS", "MNEMONIC")


@dataclass(frozen=True)
class OfferingConfig:
    """Validated settings for one deployment target."""

    owner_address: Address
    usdt_address: Address
    project_token_address: Address
    mnemonic: Tuple[str, ...] = field(repr=False)
    rate: int = DEFAULT_RATE
    api_key: Optional[str] = field(default=None, repr=False)
    network: str = "mainnet"
    code_path: Optional[Path] = None


def _get_env() -> Mapping[str, str]:
    """Expose ``os.environ`` (after ``load_dotenv``) separately to simplify testing."""

    load_dotenv()
    return os.environ


def _require(env: Mapping[str, str], key: str) -> str:
    value = (env.get(key) or "").strip()
    if not value:
        raise ConfigurationError(f"{key} is not defined in .env file")
    return value


def _address(env: Mapping[str, str], key: str) -> Address:
    try:
        return parse_address(_require(env, key))
    except EncodingError as exc:
        raise ConfigurationError(f"{key} is not a valid address: {exc}") from exc


def _rate(env: Mapping[str, str]) -> int:
    raw = (env.get("PROJECT_TOKEN_TO_USDT_RATE") or "").strip()
    if not raw:
        return DEFAULT_RATE
    try:
        rate = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"PROJECT_TOKEN_TO_USDT_RATE must be an integer, got {raw!r}") from exc
    if rate < 0 or rate >= 1 << 32:
        raise ConfigurationError(f"PROJECT_TOKEN_TO_USDT_RATE must fit in 32 bits, got {rate}")
    return rate


def load_config(env: Mapping[str, str] | None = None) -> OfferingConfig:
    """Return the validated :class:`OfferingConfig`.

    Parameters
    ----------
    env:
        Optional mapping used to resolve settings. When omitted ``os.environ``
        (after ``load_dotenv``) is used.

    Raises
    ------
    ConfigurationError
        If a required setting is missing or malformed. Nothing touches the
        network before this check passes.
    """

    if env is None:
        env = _get_env()

    missing = [key for key in REQUIRED_KEYS if not (env.get(key) or "").strip()]
    if missing:
        raise ConfigurationError(f"{missing[0]} is not defined in .env file")

    mnemonic = tuple(_require(env, "MNEMONIC").split())
    if len(mnemonic) != MNEMONIC_WORDS:
        raise ConfigurationError(f"MNEMONIC must contain {MNEMONIC_WORDS} words, got {len(mnemonic)}")
    network = (env.get("TON_ACCESS_NETWORK") or "mainnet").strip().lower()
    if network not in NETWORKS:
        raise ConfigurationError(f"TON_ACCESS_NETWORK must be one of {', '.join(NETWORKS)}, got {network!r}")

    code_path = (env.get("DTO_CODE_PATH") or "").strip()
    return OfferingConfig(
        owner_address=_address(env, "OWNER_ADDRESS"),
        usdt_address=_address(env, "USDT_ADDRESS"),
        project_token_address=_address(env, "PROJECT_TOKEN_ADDRESS"),
        mnemonic=mnemonic,
        rate=_rate(env),
        api_key=(env.get("TON_API_KEY") or "").strip() or None,
        network=network,
        code_path=Path(code_path).expanduser() if code_path else None,
    )


__all__ = ["DEFAULT_RATE", "MNEMONIC_WORDS", "OfferingConfig", "load_config"]
