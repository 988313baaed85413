"""Encoding and deployment helpers for the direct token offering contract."""
from __future__ import annotations

from .cells import CellWriter, begin_cell, empty_cell, parse_address
from .config import OfferingConfig, load_config
from .contract import ContractDescriptor, StorageLayout, create_from_config, decode_storage, derive_address, load_code
from .deployment import (
    DeploymentResult,
    DeploymentState,
    deploy_contract,
    send_change_rate,
    send_withdraw,
    send_withdraw_project_token,
    send_withdraw_usdt,
)
from .errors import (
    ArtifactMissing,
    CapacityExceeded,
    ConfigurationError,
    DirectTokenOfferingError,
    EncodingError,
    NetworkError,
    StackUnderflow,
    TypeMismatch,
)
from .messages import (
    OP_CHANGE_RATE,
    OP_WITHDRAW_PROJECT_TOKEN,
    OP_WITHDRAW_USDT,
    ChangeRateRequest,
    DeployRequest,
    OperationMessage,
    WithdrawRequest,
    decode_operation,
    encode_change_rate,
    encode_deploy,
    encode_withdraw,
)
from .stack import ExpectedKind, RemoteCallResult, StackEntry, read_stack

__all__ = [
    "ArtifactMissing",
    "CapacityExceeded",
    "CellWriter",
    "ChangeRateRequest",
    "ConfigurationError",
    "ContractDescriptor",
    "DeployRequest",
    "DeploymentResult",
    "DeploymentState",
    "DirectTokenOfferingError",
    "EncodingError",
    "ExpectedKind",
    "NetworkError",
    "OP_CHANGE_RATE",
    "OP_WITHDRAW_PROJECT_TOKEN",
    "OP_WITHDRAW_USDT",
    "OfferingConfig",
    "OperationMessage",
    "RemoteCallResult",
    "StackEntry",
    "StackUnderflow",
    "StorageLayout",
    "TypeMismatch",
    "WithdrawRequest",
    "begin_cell",
    "create_from_config",
    "decode_operation",
    "decode_storage",
    "deploy_contract",
    "derive_address",
    "empty_cell",
    "encode_change_rate",
    "encode_deploy",
    "encode_withdraw",
    "load_code",
    "load_config",
    "parse_address",
    "read_stack",
    "send_change_rate",
    "send_withdraw",
    "send_withdraw_project_token",
    "send_withdraw_usdt",
]
