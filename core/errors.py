"""Error types for the BitVM bridge client."""


class BridgeError(Exception):
    """Base exception for all bridge client errors."""
    pass


class MalformedInputError(BridgeError):
    """Log payload or account data that does not match the expected schema."""
    pass


class AddressDerivationError(BridgeError):
    """No program-derived address exists for the given seeds."""
    pass


class TransportError(BridgeError):
    """Errors talking to the Solana RPC node."""
    pass


class RPCError(TransportError):
    """Errors returned by a JSON-RPC call."""
    def __init__(self, message: str, method: str = "", details: str = ""):
        self.method = method
        self.details = details
        super().__init__(f"RPC Error [{method}]: {message} - {details}")


class StateMismatchError(BridgeError):
    """On-chain state is missing or not what the client expects."""
    def __init__(self, message: str, account: str = "", address: str = ""):
        self.account = account
        self.address = address
        super().__init__(f"{message} (account={account or '?'}, address={address or '?'})")


class NotFoundAfterRetriesError(BridgeError):
    """Polling gave up before the target became visible."""
    def __init__(self, target: str, attempts: int):
        self.target = target
        self.attempts = attempts
        super().__init__(f"{target} not found after {attempts} attempts")


class InvalidAddressFormatError(BridgeError):
    """String is not a valid base58-encoded Solana address."""
    pass


class ConfigurationError(BridgeError):
    """Errors related to configuration."""
    pass
