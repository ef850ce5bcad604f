"""Client-side view of the bitvm_bridge and btc_light_client programs."""

from program.pda import (
    derive_address,
    bridge_state_address,
    tx_minted_state_address,
    tx_verified_state_address,
    light_client_state_address,
    block_hash_entry_address,
)
from program.events import decode_event, iter_events, parse_transaction_event, encode_event

__all__ = [
    "derive_address",
    "bridge_state_address",
    "tx_minted_state_address",
    "tx_verified_state_address",
    "light_client_state_address",
    "block_hash_entry_address",
    "decode_event",
    "iter_events",
    "parse_transaction_event",
    "encode_event",
]
