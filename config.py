"""Configuration management for the BitVM bridge client."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import toml
from solders.pubkey import Pubkey

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

VALID_COMMITMENTS = ("processed", "confirmed", "finalized")


@dataclass
class BridgeClientConfig:
    """Bridge client configuration."""

    # Solana settings
    rpc_url: str
    bridge_program_id: str
    light_client_program_id: str

    # Payer identity (base58 secret or Solana CLI keyfile)
    private_key: Optional[str] = None
    keypair_path: Optional[str] = None

    commitment: str = "confirmed"
    request_timeout: float = 30

    # Monitor settings
    poll_interval: float = 1.0
    page_size: int = 1000
    max_fetch_attempts: int = 5
    database_path: str = "bridge_client.db"

    @classmethod
    def from_env(cls) -> "BridgeClientConfig":
        """Load configuration from environment variables."""
        try:
            return cls(
                rpc_url=os.getenv("SOLANA_RPC_URL", "https://api.devnet.solana.com"),
                bridge_program_id=os.getenv("BITVM_BRIDGE_PROGRAM_ID", ""),
                light_client_program_id=os.getenv("BTC_LIGHT_CLIENT_PROGRAM_ID", ""),
                private_key=os.getenv("SOLANA_PRIVATE_KEY") or None,
                keypair_path=os.getenv("SOLANA_KEYPAIR_PATH") or None,
                commitment=os.getenv("COMMITMENT", "confirmed"),
                request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
                poll_interval=float(os.getenv("POLL_INTERVAL", "1")),
                page_size=int(os.getenv("PAGE_SIZE", "1000")),
                max_fetch_attempts=int(os.getenv("MAX_FETCH_ATTEMPTS", "5")),
                database_path=os.getenv("DATABASE_PATH", "bridge_client.db"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting in environment: {e}")

    @classmethod
    def from_file(cls, config_path: Path) -> "BridgeClientConfig":
        """Load configuration from TOML file.

        Args:
            config_path: Path to configuration file

        Returns:
            BridgeClientConfig instance

        Raises:
            ConfigurationError: If config is invalid
        """
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading configuration from {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = toml.load(f)
        except Exception as e:
            raise ConfigurationError(f"Failed to parse configuration file: {e}")

        try:
            return cls(
                rpc_url=config_data["rpc_url"],
                bridge_program_id=config_data["bridge_program_id"],
                light_client_program_id=config_data["light_client_program_id"],
                private_key=config_data.get("private_key"),
                keypair_path=config_data.get("keypair_path"),
                commitment=config_data.get("commitment", "confirmed"),
                request_timeout=float(config_data.get("request_timeout", 30)),
                poll_interval=float(config_data.get("poll_interval", 1.0)),
                page_size=int(config_data.get("page_size", 1000)),
                max_fetch_attempts=int(config_data.get("max_fetch_attempts", 5)),
                database_path=config_data.get("database_path", "bridge_client.db"),
            )
        except KeyError as e:
            raise ConfigurationError(f"Missing required configuration key: {e}")
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    def validate(self, require_signer: bool = True) -> None:
        """Validate configuration.

        Args:
            require_signer: Whether a payer keypair source is mandatory

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.rpc_url:
            raise ConfigurationError("rpc_url is required")

        for name in ("bridge_program_id", "light_client_program_id"):
            value = getattr(self, name)
            if not value:
                raise ConfigurationError(f"{name} is required")
            try:
                Pubkey.from_string(value)
            except ValueError:
                raise ConfigurationError(f"{name} is not a valid Solana address: {value}")

        if require_signer and not self.private_key and not self.keypair_path:
            raise ConfigurationError("Must provide either private_key or keypair_path")

        if self.commitment not in VALID_COMMITMENTS:
            raise ConfigurationError(
                f"commitment must be one of {', '.join(VALID_COMMITMENTS)}"
            )

        if not 1 <= self.page_size <= 1000:
            raise ConfigurationError("page_size must be between 1 and 1000")

        if self.max_fetch_attempts < 1:
            raise ConfigurationError("max_fetch_attempts must be at least 1")

        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")

        logger.info("Configuration validated successfully")
