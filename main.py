"""Command-line entry point for the BitVM bridge client."""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import find_dotenv, load_dotenv
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from bridge_client import BitvmBridgeClient, QueryClient
from config import BridgeClientConfig
from core.errors import BridgeError
from core.types import BtcTxProof, BurnEvent, MintEvent
from database import MonitorDatabase
from event_monitor import EventMonitor
from handlers import DeduplicatingEventHandler, LoggingEventHandler
from ledger.rpc import SolanaRpcClient
from program.events import parse_transaction_event
from wallet import load_keypair

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler("bitvm-bridge-client.log"),
        ],
    )


def parse_txid(txid_hex: str) -> bytes:
    """Convert a BTC txid in display order to the internal byte order."""
    raw = bytes.fromhex(txid_hex)
    if len(raw) != 32:
        raise ValueError(f"txid must be 32 bytes, got {len(raw)}")
    return raw[::-1]


def load_proof(proof_path: Path) -> Tuple[int, BtcTxProof]:
    """Read a verification proof from JSON.

    Hashes (``tx_id`` and ``merkle_proof`` entries) are in display order as
    shown by block explorers and are reversed here. ``merkle_proof`` may be a
    list of hex strings or one concatenated hex string.
    """
    data = json.loads(proof_path.read_text(encoding="utf-8"))

    merkle = data["merkle_proof"]
    if isinstance(merkle, str):
        merkle_bytes = bytes.fromhex(merkle)
        merkle = [merkle_bytes[i:i + 32].hex() for i in range(0, len(merkle_bytes), 32)]

    proof = BtcTxProof(
        block_header=bytes.fromhex(data["block_header"]),
        tx_id=parse_txid(data["tx_id"]),
        tx_index=int(data["tx_index"]),
        merkle_proof=[parse_txid(node) for node in merkle],
        raw_tx=bytes.fromhex(data["raw_tx"]),
        output_index=int(data["output_index"]),
        expected_amount=int(data["expected_amount"]),
        expected_script_hash=bytes.fromhex(data["expected_script_hash"]),
    )
    return int(data["block_height"]), proof


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="BitVM bridge client for Solana")
    parser.add_argument("--config", type=Path, help="TOML config file (default: environment)")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))

    sub = parser.add_subparsers(dest="command", required=True)

    listen = sub.add_parser("listen", help="Monitor bridge events")
    listen.add_argument("--from", dest="from_signature", help="Resume after this signature")

    mint = sub.add_parser("mint", help="Mint tokens for a verified BTC deposit")
    mint.add_argument("recipient")
    mint.add_argument("tx_id", help="BTC txid (display order hex)")
    mint.add_argument("amount", type=int)

    burn = sub.add_parser("burn", help="Burn tokens to withdraw BTC")
    burn.add_argument("amount", type=int)
    burn.add_argument("btc_address")
    burn.add_argument("operator_id", type=int)

    verify = sub.add_parser("verify", help="Submit a BTC transaction proof")
    verify.add_argument("proof", type=Path, help="Proof JSON file")
    verify.add_argument("--attempts", type=int, default=5)
    verify.add_argument("--interval", type=float, default=2.0)

    status = sub.add_parser("status", help="Show BTC transaction verification status")
    status.add_argument("tx_id", help="BTC txid (display order hex)")

    sub.add_parser("height", help="Show light client height and confirmations")

    parse_tx = sub.add_parser("parse-tx", help="Decode the bridge event of a Solana transaction")
    parse_tx.add_argument("signature")
    parse_tx.add_argument("--attempts", type=int, default=5)
    parse_tx.add_argument("--interval", type=float, default=2.0)

    return parser


def load_config(args: argparse.Namespace) -> BridgeClientConfig:
    if args.config:
        config = BridgeClientConfig.from_file(args.config)
    else:
        config = BridgeClientConfig.from_env()

    needs_signer = args.command in ("mint", "burn", "verify")
    config.validate(require_signer=needs_signer)
    return config


async def run_listen(config: BridgeClientConfig, rpc: SolanaRpcClient, from_signature: Optional[str]) -> None:
    db = MonitorDatabase(config.database_path)
    await db.start()

    monitor = EventMonitor(
        ledger=rpc,
        program_id=Pubkey.from_string(config.bridge_program_id),
        handler=DeduplicatingEventHandler(LoggingEventHandler(), db),
        last_signature=from_signature,
        poll_interval=config.poll_interval,
        page_size=config.page_size,
        max_fetch_attempts=config.max_fetch_attempts,
        checkpoint=db,
    )

    try:
        await monitor.run()
    finally:
        await monitor.stop()
        await db.stop()


async def run_command(args: argparse.Namespace, config: BridgeClientConfig) -> None:
    async with SolanaRpcClient(config.rpc_url, config.commitment, config.request_timeout) as rpc:
        if args.command == "listen":
            await run_listen(config, rpc, args.from_signature)
            return

        if args.command == "parse-tx":
            query = QueryClient(rpc)
            record = await query.wait_for_transaction(
                args.signature, max_attempts=args.attempts, interval=args.interval
            )
            event = parse_transaction_event(record)
            print_event(args.signature, event)
            return

        if config.private_key or config.keypair_path:
            payer = load_keypair(config.private_key, config.keypair_path)
        else:
            # Read-only commands never sign
            payer = Keypair()

        client = BitvmBridgeClient(
            ledger=rpc,
            bridge_program_id=Pubkey.from_string(config.bridge_program_id),
            light_client_program_id=Pubkey.from_string(config.light_client_program_id),
            payer=payer,
        )

        if args.command == "mint":
            signature = await client.mint(args.recipient, parse_txid(args.tx_id), args.amount)
            print(f"Mint submitted: {signature}")
        elif args.command == "burn":
            signature = await client.burn(args.amount, args.btc_address, args.operator_id)
            print(f"Burn submitted: {signature}")
        elif args.command == "verify":
            block_height, proof = load_proof(args.proof)
            signature = await client.verify_transaction(
                block_height,
                proof.block_header,
                proof.tx_id,
                proof.tx_index,
                proof.merkle_proof,
                proof.raw_tx,
                proof.output_index,
                proof.expected_amount,
                proof.expected_script_hash,
            )
            print(f"Verification submitted: {signature}")
            await client.wait_for_verification(
                proof.tx_id, max_attempts=args.attempts, interval=args.interval
            )
            print("Transaction verified")
        elif args.command == "status":
            verified = await client.get_tx_verification_status(parse_txid(args.tx_id))
            print("Verified" if verified else "Not verified")
        elif args.command == "height":
            height = await client.query_latest_block_height()
            confirmations = await client.query_min_confirmations()
            print(f"Latest block height: {height}")
            print(f"Min confirmations: {confirmations}")


def print_event(signature: str, event) -> None:
    if isinstance(event, MintEvent):
        print(f"Mint event in {signature}: to={event.to} amount={event.value}")
    elif isinstance(event, BurnEvent):
        print(
            f"Burn event in {signature}: from={event.from_address} "
            f"btc_address={event.btc_address} amount={event.value} "
            f"operator_id={event.operator_id}"
        )
    else:
        print(f"No bridge event in {signature}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Load .env from the working directory, then parse the command line."""
    load_dotenv(find_dotenv(usecwd=True))
    return build_parser().parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args)
        asyncio.run(run_command(args, config))
        exit_code = 0
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        exit_code = 0
    except (BridgeError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        exit_code = 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
