from __future__ import annotations

import pytest
from pytoniq_core.tlb.account import StateInit

from direct_token_offering.contract import (
    create_from_config,
    decode_storage,
    derive_address,
    load_code,
)
from direct_token_offering.errors import ArtifactMissing, EncodingError
from direct_token_offering.messages import OP_CHANGE_RATE, decode_operation, encode_change_rate

from .conftest import OWNER, PROJECT_TOKEN, USDT

CODE_HASH = "33c467c599e26d4f8c9ca8f950618d5a3f6df938f093b630288c3e0dc4f51161"
DATA_HASH = "e7cc73aa7fc7edaf3ee8340fbe4d00ba1bc73f494339777deae23e7d694ed390"
SCENARIO_ADDRESS = "0:83bb4c223ba88b5cab9c50a8836ac60eff91fd6f2b8e199b30db4f440a782584"


def _raw(address) -> str:
    return address.to_str(is_user_friendly=False)


def test_create_from_config_is_deterministic(code_cell):
    first = create_from_config(OWNER, USDT, PROJECT_TOKEN, 2, 0, code_cell)
    second = create_from_config(OWNER, USDT, PROJECT_TOKEN, 2, 0, code_cell)

    assert first.data.hash == second.data.hash
    assert first.data.bits == second.data.bits
    assert _raw(first.address) == _raw(second.address)


def test_storage_layout_field_order(descriptor):
    layout = decode_storage(descriptor.data)

    assert _raw(layout.owner_address) == OWNER
    assert _raw(layout.usdt_address) == USDT
    assert _raw(layout.project_token_address) == PROJECT_TOKEN
    assert layout.rate == 2
    assert layout.seqno == 0
    assert len(descriptor.data.bits) == 3 * 267 + 32 + 32


def test_address_is_state_init_hash_on_basechain(descriptor, code_cell):
    expected = StateInit(code=code_cell, data=descriptor.data).serialize().hash

    assert descriptor.address.wc == 0
    assert descriptor.address.hash_part == expected
    assert _raw(derive_address(code_cell, descriptor.data)) == _raw(descriptor.address)


def test_scenario_matches_known_vector(descriptor, code_cell):
    assert code_cell.hash.hex() == CODE_HASH
    assert descriptor.data.hash.hex() == DATA_HASH
    assert _raw(descriptor.address) == SCENARIO_ADDRESS


def test_field_swap_changes_address(descriptor, code_cell):
    swapped = create_from_config(OWNER, PROJECT_TOKEN, USDT, 2, 0, code_cell)
    assert _raw(swapped.address) != _raw(descriptor.address)


def test_rate_changes_address(descriptor, code_cell):
    other = create_from_config(OWNER, USDT, PROJECT_TOKEN, 3, 0, code_cell)
    assert _raw(other.address) != _raw(descriptor.address)


def test_workchain_is_configurable(code_cell):
    masterchain = create_from_config(OWNER, USDT, PROJECT_TOKEN, 2, 0, code_cell, workchain=-1)
    assert masterchain.address.wc == -1


@pytest.mark.parametrize("rate, seqno", [(1 << 32, 0), (-1, 0), (2, 1 << 32)])
def test_create_from_config_rejects_out_of_range_fields(code_cell, rate, seqno):
    with pytest.raises(EncodingError):
        create_from_config(OWNER, USDT, PROJECT_TOKEN, rate, seqno, code_cell)


def test_create_from_config_requires_code_cell():
    with pytest.raises(EncodingError):
        create_from_config(OWNER, USDT, PROJECT_TOKEN, 2, 0, b"not a cell")  # type: ignore[arg-type]


def test_scenario_descriptor_then_rate_change(code_cell):
    descriptor = create_from_config(OWNER, USDT, PROJECT_TOKEN, 2, 0, code_cell)
    again = create_from_config(OWNER, USDT, PROJECT_TOKEN, 2, 0, code_cell)
    assert _raw(descriptor.address) == _raw(again.address)

    body = encode_change_rate(0x9ABC, 5)
    decoded = decode_operation(body)

    assert decoded.op_code == OP_CHANGE_RATE == 0x9ABC
    assert decoded.query_id == 0
    assert decoded.new_rate == 5
    # The descriptor is not touched by the rate change message.
    assert decode_storage(descriptor.data).rate == 2


def test_load_code_reads_boc(tmp_path, code_cell):
    path = tmp_path / "direct_token_offering.fc.cell"
    path.write_bytes(code_cell.to_boc())

    loaded = load_code(path)

    assert loaded.hash == code_cell.hash


def test_load_code_missing_file_raises(tmp_path):
    with pytest.raises(ArtifactMissing):
        load_code(tmp_path / "missing.cell")


def test_load_code_empty_file_raises(tmp_path):
    path = tmp_path / "empty.cell"
    path.write_bytes(b"")
    with pytest.raises(ArtifactMissing):
        load_code(path)


def test_load_code_rejects_non_boc_payload(tmp_path):
    path = tmp_path / "garbage.cell"
    path.write_bytes(b"not a bag of cells")
    with pytest.raises(ArtifactMissing, match="not a valid BoC"):
        load_code(path)


def test_state_init_property_matches_descriptor(descriptor):
    state_init = descriptor.state_init
    assert state_init.code.hash == descriptor.code.hash
    assert state_init.data.hash == descriptor.data.hash
