"""Instruction builders for the bridge and light client programs.

Account order follows the programs' Anchor ``Accounts`` structs; the
runtime matches accounts by position, so it must not change.
"""

from typing import List, Optional

from solders.compute_budget import set_compute_unit_limit
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from core.types import BtcTxProof
from program.layouts import (
    BURN_ARGS_LAYOUT,
    BURN_IX_DISCRIMINATOR,
    MINT_ARGS_LAYOUT,
    MINT_IX_DISCRIMINATOR,
    VERIFY_TRANSACTION_ARGS_LAYOUT,
    VERIFY_TRANSACTION_IX_DISCRIMINATOR,
)

# Merkle proof checking needs more than the default 200k units
VERIFY_COMPUTE_UNIT_LIMIT = 500_000

BLOCK_HEADER_LEN = 80
HASH_LEN = 32

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1


def _check_len(name: str, value: bytes, expected: int) -> bytes:
    value = bytes(value)
    if len(value) != expected:
        raise ValueError(f"{name} must be {expected} bytes, got {len(value)}")
    return value


def _check_range(name: str, value: int, maximum: int) -> int:
    if not 0 <= value <= maximum:
        raise ValueError(f"{name} out of range: {value}")
    return value


def build_mint_instruction(
    program_id: Pubkey,
    mint_authority: Pubkey,
    recipient: Pubkey,
    mint_account: Pubkey,
    associated_token_account: Pubkey,
    bridge_state: Pubkey,
    tx_minted_state: Pubkey,
    tx_verified_state: Optional[Pubkey],
    tx_id: bytes,
    amount: int,
) -> Instruction:
    """Build ``bitvm_bridge::mint``.

    ``tx_verified_state`` is appended only when given; the bridge expects
    it to be absent when verification is skipped.
    """
    accounts = [
        AccountMeta(mint_authority, is_signer=True, is_writable=True),
        AccountMeta(recipient, is_signer=False, is_writable=False),
        AccountMeta(mint_account, is_signer=False, is_writable=True),
        AccountMeta(associated_token_account, is_signer=False, is_writable=True),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(bridge_state, is_signer=False, is_writable=True),
        AccountMeta(tx_minted_state, is_signer=False, is_writable=True),
    ]
    if tx_verified_state is not None:
        accounts.append(AccountMeta(tx_verified_state, is_signer=False, is_writable=False))

    data = MINT_IX_DISCRIMINATOR + MINT_ARGS_LAYOUT.build({
        "tx_id": _check_len("tx_id", tx_id, HASH_LEN),
        "amount": _check_range("amount", amount, U64_MAX),
    })
    return Instruction(program_id, data, accounts)


def build_burn_instruction(
    program_id: Pubkey,
    authority: Pubkey,
    mint_account: Pubkey,
    associated_token_account: Pubkey,
    bridge_state: Pubkey,
    amount: int,
    btc_address: str,
    operator_id: int,
) -> Instruction:
    """Build ``bitvm_bridge::burn``."""
    accounts = [
        AccountMeta(authority, is_signer=True, is_writable=True),
        AccountMeta(mint_account, is_signer=False, is_writable=True),
        AccountMeta(associated_token_account, is_signer=False, is_writable=True),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(bridge_state, is_signer=False, is_writable=True),
    ]
    data = BURN_IX_DISCRIMINATOR + BURN_ARGS_LAYOUT.build({
        "amount": _check_range("amount", amount, U64_MAX),
        "btc_addr": btc_address,
        "operator_id": _check_range("operator_id", operator_id, U64_MAX),
    })
    return Instruction(program_id, data, accounts)


def build_verify_transaction_instructions(
    program_id: Pubkey,
    state: Pubkey,
    tx_verified_state: Pubkey,
    payer: Pubkey,
    block_hash_entry: Pubkey,
    block_height: int,
    proof: BtcTxProof,
) -> List[Instruction]:
    """Build the compute budget and ``btc_light_client::verify_transaction`` pair."""
    accounts = [
        AccountMeta(state, is_signer=False, is_writable=True),
        AccountMeta(tx_verified_state, is_signer=False, is_writable=True),
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(block_hash_entry, is_signer=False, is_writable=False),
    ]
    data = VERIFY_TRANSACTION_IX_DISCRIMINATOR + VERIFY_TRANSACTION_ARGS_LAYOUT.build({
        "block_height": _check_range("block_height", block_height, U64_MAX),
        "tx_proof": {
            "block_header": _check_len("block_header", proof.block_header, BLOCK_HEADER_LEN),
            "tx_id": _check_len("tx_id", proof.tx_id, HASH_LEN),
            "tx_index": _check_range("tx_index", proof.tx_index, U32_MAX),
            "merkle_proof": [
                _check_len("merkle_proof entry", node, HASH_LEN) for node in proof.merkle_proof
            ],
            "raw_tx": bytes(proof.raw_tx),
            "output_index": _check_range("output_index", proof.output_index, U32_MAX),
            "expected_amount": _check_range("expected_amount", proof.expected_amount, U64_MAX),
            "expected_script_hash": _check_len(
                "expected_script_hash", proof.expected_script_hash, HASH_LEN
            ),
        },
    })
    return [
        set_compute_unit_limit(VERIFY_COMPUTE_UNIT_LIMIT),
        Instruction(program_id, data, accounts),
    ]
