"""Program-derived addresses used by the bridge and light client programs."""

import logging
from typing import Sequence

from solders.pubkey import Pubkey

from core.errors import AddressDerivationError
from core.types import DerivedAddress

logger = logging.getLogger(__name__)

# Seed tags must match the on-chain programs byte for byte
BRIDGE_STATE_SEED = b"bridge_state"
TX_MINTED_STATE_SEED = b"tx_minted_state"
TX_VERIFIED_STATE_SEED = b"tx_verified_state"
BTC_LIGHT_CLIENT_SEED = b"btc_light_client"
BLOCK_HASH_ENTRY_SEED = b"block_hash_entry"

MAX_SEED_LEN = 32
# One slot of the runtime's 16 is taken by the bump
MAX_SEEDS = 15

TX_ID_LEN = 32


def derive_address(program_id: Pubkey, seeds: Sequence[bytes]) -> DerivedAddress:
    """Find the program-derived address for a list of seeds.

    Searches bump values from 255 downward and returns the first address
    that is off the ed25519 curve, exactly as the runtime does.

    Args:
        program_id: Owning program
        seeds: Ordered seed segments, without the bump

    Returns:
        DerivedAddress of (address, bump)

    Raises:
        AddressDerivationError: If the seeds are invalid or no bump works
    """
    seeds = [bytes(seed) for seed in seeds]

    if len(seeds) > MAX_SEEDS:
        raise AddressDerivationError(
            f"Too many seeds: {len(seeds)} (max {MAX_SEEDS})"
        )
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise AddressDerivationError(
                f"Seed {seed[:8]!r}... is {len(seed)} bytes (max {MAX_SEED_LEN})"
            )

    try:
        address, bump = Pubkey.find_program_address(seeds, program_id)
    except Exception as e:
        raise AddressDerivationError(f"Failed to derive address under {program_id}: {e}")

    return DerivedAddress(address=address, bump=bump)


def _require_tx_id(tx_id: bytes) -> bytes:
    tx_id = bytes(tx_id)
    if len(tx_id) != TX_ID_LEN:
        raise ValueError(f"tx_id must be {TX_ID_LEN} bytes, got {len(tx_id)}")
    return tx_id


def bridge_state_address(bridge_program_id: Pubkey) -> DerivedAddress:
    return derive_address(bridge_program_id, [BRIDGE_STATE_SEED])


def tx_minted_state_address(bridge_program_id: Pubkey, tx_id: bytes) -> DerivedAddress:
    return derive_address(bridge_program_id, [TX_MINTED_STATE_SEED, _require_tx_id(tx_id)])


def tx_verified_state_address(light_client_program_id: Pubkey, tx_id: bytes) -> DerivedAddress:
    return derive_address(
        light_client_program_id, [TX_VERIFIED_STATE_SEED, _require_tx_id(tx_id)]
    )


def light_client_state_address(light_client_program_id: Pubkey) -> DerivedAddress:
    return derive_address(light_client_program_id, [BTC_LIGHT_CLIENT_SEED])


def block_hash_entry_address(light_client_program_id: Pubkey, block_height: int) -> DerivedAddress:
    """Address of the stored block hash for a BTC height.

    The light client keys entries by the height as u64 little-endian.
    """
    if block_height < 0:
        raise ValueError(f"block_height must be non-negative, got {block_height}")
    return derive_address(
        light_client_program_id,
        [BLOCK_HASH_ENTRY_SEED, block_height.to_bytes(8, "little")],
    )
