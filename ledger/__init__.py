"""Solana ledger access: JSON-RPC transport and confirmation polling."""

from ledger.rpc import LedgerClient, SolanaRpcClient, DEFAULT_SIGNATURE_PAGE_SIZE
from ledger.status import TransactionStatusPoller

__all__ = [
    "LedgerClient",
    "SolanaRpcClient",
    "DEFAULT_SIGNATURE_PAGE_SIZE",
    "TransactionStatusPoller",
]
