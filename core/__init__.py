"""Core types and errors for the BitVM bridge client."""

from core.errors import (
    BridgeError,
    MalformedInputError,
    AddressDerivationError,
    TransportError,
    RPCError,
    StateMismatchError,
    NotFoundAfterRetriesError,
    InvalidAddressFormatError,
    ConfigurationError,
)
from core.types import (
    DerivedAddress,
    MintEvent,
    BurnEvent,
    BridgeEvent,
    BridgeState,
    LightClientState,
    TxVerifiedState,
    SignatureInfo,
    TransactionRecord,
    BtcTxProof,
)

__all__ = [
    "BridgeError",
    "MalformedInputError",
    "AddressDerivationError",
    "TransportError",
    "RPCError",
    "StateMismatchError",
    "NotFoundAfterRetriesError",
    "InvalidAddressFormatError",
    "ConfigurationError",
    "DerivedAddress",
    "MintEvent",
    "BurnEvent",
    "BridgeEvent",
    "BridgeState",
    "LightClientState",
    "TxVerifiedState",
    "SignatureInfo",
    "TransactionRecord",
    "BtcTxProof",
]
