"""Borsh layouts and Anchor discriminators for the bridge programs.

Anchor prefixes every instruction, account and event with an 8-byte
discriminator: ``sha256("<namespace>:<name>")[:8]`` where the namespace is
``global`` for instructions, ``account`` for accounts and ``event`` for
events. Everything after the discriminator is Borsh.
"""

import hashlib

import borsh_construct as borsh
from construct import Bytes, GreedyBytes, Prefixed

DISCRIMINATOR_LEN = 8

PUBKEY = Bytes(32)
HASH32 = Bytes(32)
# Borsh Vec<u8>
BYTE_VEC = Prefixed(borsh.U32, GreedyBytes)


def discriminator(namespace: str, name: str) -> bytes:
    """Anchor discriminator for a fully-qualified name."""
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:DISCRIMINATOR_LEN]


# Events (bitvm_bridge::events)
MINT_EVENT_DISCRIMINATOR = discriminator("event", "MintEvent")
BURN_EVENT_DISCRIMINATOR = discriminator("event", "BurnEvent")

MINT_EVENT_LAYOUT = borsh.CStruct(
    "to" / PUBKEY,
    "value" / borsh.U64,
)

BURN_EVENT_LAYOUT = borsh.CStruct(
    "from" / PUBKEY,
    "btc_addr" / borsh.String,
    "value" / borsh.U64,
    "operator_id" / borsh.U64,
)

# Instructions
MINT_IX_DISCRIMINATOR = discriminator("global", "mint")
BURN_IX_DISCRIMINATOR = discriminator("global", "burn")
VERIFY_TRANSACTION_IX_DISCRIMINATOR = discriminator("global", "verify_transaction")

MINT_ARGS_LAYOUT = borsh.CStruct(
    "tx_id" / HASH32,
    "amount" / borsh.U64,
)

BURN_ARGS_LAYOUT = borsh.CStruct(
    "amount" / borsh.U64,
    "btc_addr" / borsh.String,
    "operator_id" / borsh.U64,
)

BTC_TX_PROOF_LAYOUT = borsh.CStruct(
    "block_header" / BYTE_VEC,
    "tx_id" / HASH32,
    "tx_index" / borsh.U32,
    "merkle_proof" / borsh.Vec(HASH32),
    "raw_tx" / BYTE_VEC,
    "output_index" / borsh.U32,
    "expected_amount" / borsh.U64,
    "expected_script_hash" / HASH32,
)

VERIFY_TRANSACTION_ARGS_LAYOUT = borsh.CStruct(
    "block_height" / borsh.U64,
    "tx_proof" / BTC_TX_PROOF_LAYOUT,
)

# Accounts
BRIDGE_STATE_DISCRIMINATOR = discriminator("account", "BridgeState")
LIGHT_CLIENT_STATE_DISCRIMINATOR = discriminator("account", "BtcLightClientState")
TX_VERIFIED_STATE_DISCRIMINATOR = discriminator("account", "TxVerifiedState")

BRIDGE_STATE_LAYOUT = borsh.CStruct(
    "owner" / PUBKEY,
    "mint_account" / PUBKEY,
    "skip_tx_verification" / borsh.Bool,
)

LIGHT_CLIENT_STATE_LAYOUT = borsh.CStruct(
    "latest_block_height" / borsh.U64,
    "latest_block_hash" / HASH32,
    "min_confirmations" / borsh.U64,
)

TX_VERIFIED_STATE_LAYOUT = borsh.CStruct(
    "is_verified" / borsh.Bool,
)
