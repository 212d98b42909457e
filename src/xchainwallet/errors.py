"""
Exceptions raised by wallet clients.

Every error here is terminal for the transfer attempt that raised it. Nothing
in this package retries automatically.
"""

from __future__ import annotations


class WalletError(Exception):
    """Base class for all wallet errors."""


class InvalidMnemonicError(WalletError):
    pass


class InvalidAddressError(WalletError):
    """Destination failed chain-specific address validation."""

    def __init__(self, address: str, network: str | None = None):
        self.address = address
        self.network = network
        suffix = f" for {network}" if network else ""
        super().__init__(f"Invalid address{suffix}: {address}")


class InsufficientBalanceError(WalletError):
    """Coin selection ran out of candidates before covering target plus fee."""

    def __init__(self, required: int, available: int, message: str | None = None):
        self.required = required
        self.available = available
        super().__init__(
            message or f"Insufficient Balance for transaction: need {required}, have {available}"
        )


class NoUtxosAvailableError(InsufficientBalanceError):
    """No spendable UTXOs at all (the eligible candidate set was empty)."""

    def __init__(self, required: int = 0):
        super().__init__(required, 0, "No utxos to send")


class TransactionSigningError(WalletError):
    pass


class BroadcastRejectedError(WalletError):
    """The node or indexer refused the transaction. The reason is passed through verbatim."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Broadcast failed: {reason}")
