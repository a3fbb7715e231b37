"""
Error types raised by the wallet scripts.
"""


class WalletError(Exception):
    """Base class for every wallet-level failure."""


class InvalidMnemonic(WalletError, ValueError):
    """Seed phrase failed the BIP-39 wordlist/checksum check."""


class MalformedSecretKey(WalletError, ValueError):
    """Secret key material has the wrong length or encoding."""


class TransactionFailed(WalletError):
    """The ledger rejected a transaction or it never confirmed."""

    def __init__(self, message, signature=None, error=None):
        super().__init__(message)
        self.signature = signature
        self.error = error


class RpcUnavailable(WalletError):
    """The RPC node could not be reached or did not answer."""
