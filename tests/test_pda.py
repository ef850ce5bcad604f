"""
Tests for program-derived address derivation.
"""

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from core.errors import AddressDerivationError
from program.pda import (
    block_hash_entry_address,
    bridge_state_address,
    derive_address,
    light_client_state_address,
    tx_minted_state_address,
    tx_verified_state_address,
)


def test_bridge_state_derivation_is_deterministic(bridge_program_id):
    first = derive_address(bridge_program_id, [b"bridge_state"])
    second = derive_address(bridge_program_id, [b"bridge_state"])

    assert first == second
    assert first.address == second.address
    assert first.bump == second.bump


def test_matches_runtime_search(bridge_program_id):
    expected_address, expected_bump = Pubkey.find_program_address([b"bridge_state"], bridge_program_id)

    derived = bridge_state_address(bridge_program_id)

    assert derived.address == expected_address
    assert derived.bump == expected_bump
    assert 0 <= derived.bump <= 255


def test_derived_address_is_off_curve(bridge_program_id):
    derived = bridge_state_address(bridge_program_id)
    assert not derived.address.is_on_curve()


def test_different_tx_ids_give_different_addresses(bridge_program_id):
    addresses = {
        tx_minted_state_address(bridge_program_id, bytes([i]) * 32).address
        for i in range(20)
    }
    assert len(addresses) == 20


def test_same_seeds_differ_across_programs():
    tx_id = bytes(range(32))
    a = tx_verified_state_address(Keypair().pubkey(), tx_id)
    b = tx_verified_state_address(Keypair().pubkey(), tx_id)
    assert a.address != b.address


def test_minted_and_verified_markers_differ(bridge_program_id):
    tx_id = bytes(range(32))
    minted = tx_minted_state_address(bridge_program_id, tx_id)
    verified = tx_verified_state_address(bridge_program_id, tx_id)
    assert minted.address != verified.address


def test_block_hash_entry_uses_little_endian_height(light_client_program_id):
    height = 71883
    derived = block_hash_entry_address(light_client_program_id, height)

    expected = derive_address(
        light_client_program_id, [b"block_hash_entry", height.to_bytes(8, "little")]
    )
    big_endian = derive_address(
        light_client_program_id, [b"block_hash_entry", height.to_bytes(8, "big")]
    )

    assert derived == expected
    assert derived.address != big_endian.address


def test_light_client_state_seed(light_client_program_id):
    assert light_client_state_address(light_client_program_id) == derive_address(
        light_client_program_id, [b"btc_light_client"]
    )


def test_tx_id_must_be_32_bytes(bridge_program_id):
    with pytest.raises(ValueError):
        tx_minted_state_address(bridge_program_id, b"\x00" * 31)


def test_negative_height_rejected(light_client_program_id):
    with pytest.raises(ValueError):
        block_hash_entry_address(light_client_program_id, -1)


def test_oversized_seed_rejected(bridge_program_id):
    with pytest.raises(AddressDerivationError):
        derive_address(bridge_program_id, [b"x" * 33])


def test_too_many_seeds_rejected(bridge_program_id):
    with pytest.raises(AddressDerivationError):
        derive_address(bridge_program_id, [b"a"] * 16)
