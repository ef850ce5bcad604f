"""Keypair loading for the bridge payer."""

import json
import logging
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_keypair_from_base58(secret: str) -> Keypair:
    """Load a keypair from a base58-encoded 64-byte secret.

    Args:
        secret: Base58 secret key, as exported by Phantom or ``solana-keygen``

    Returns:
        Keypair instance

    Raises:
        ConfigurationError: If the secret is empty or invalid
    """
    if not secret or not secret.strip():
        raise ConfigurationError("Private key cannot be empty")

    try:
        keypair = Keypair.from_base58_string(secret.strip())
    except Exception as e:
        raise ConfigurationError(f"Invalid base58 private key: {e}")

    logger.info(f"Loaded keypair for {keypair.pubkey()}")
    return keypair


def load_keypair_from_file(keypair_path: str) -> Keypair:
    """Load a keypair from a Solana CLI JSON keyfile.

    Args:
        keypair_path: Path to a JSON array of 64 byte values

    Returns:
        Keypair instance

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    path = Path(keypair_path).expanduser()
    if not path.exists():
        raise ConfigurationError(f"Keypair file not found: {path}")

    logger.info(f"Loading keypair from {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        keypair = Keypair.from_bytes(bytes(raw))
    except Exception as e:
        raise ConfigurationError(f"Invalid keypair file {path}: {e}")

    logger.info(f"Loaded keypair for {keypair.pubkey()}")
    return keypair


def load_keypair(private_key: Optional[str] = None, keypair_path: Optional[str] = None) -> Keypair:
    """Load keypair from a base58 secret or a keyfile.

    Raises:
        ConfigurationError: If neither source is provided
    """
    if private_key:
        return load_keypair_from_base58(private_key)
    elif keypair_path:
        return load_keypair_from_file(keypair_path)
    else:
        raise ConfigurationError("Must provide either a private key or a keypair file")
