"""
xchainwallet - UTXO wallet client library

Provides fee-aware coin selection, transaction assembly and signing for
Bitcoin-family chains, plus read-only clients for Rosetta and Cosmos chains.
"""

__version__ = "0.1.0"

from xchainwallet.client import UtxoClient
from xchainwallet.context import SecretHandle, WalletContext
from xchainwallet.errors import (
    BroadcastRejectedError,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidMnemonicError,
    NoUtxosAvailableError,
    TransactionSigningError,
    WalletError,
)
from xchainwallet.models import (
    Asset,
    AssetATOM,
    AssetBTC,
    AssetMUON,
    AssetVET,
    Balance,
    FeeOption,
    FeeRates,
    Fees,
    NetworkType,
    Tx,
    TxFrom,
    TxsPage,
    TxTo,
)
from xchainwallet.views import ChainTransactionView, to_tx

__all__ = [
    "Asset",
    "AssetATOM",
    "AssetBTC",
    "AssetMUON",
    "AssetVET",
    "Balance",
    "BroadcastRejectedError",
    "ChainTransactionView",
    "FeeOption",
    "FeeRates",
    "Fees",
    "InsufficientBalanceError",
    "InvalidAddressError",
    "InvalidMnemonicError",
    "NetworkType",
    "NoUtxosAvailableError",
    "SecretHandle",
    "TransactionSigningError",
    "Tx",
    "TxFrom",
    "TxTo",
    "TxsPage",
    "UtxoClient",
    "WalletContext",
    "WalletError",
    "to_tx",
]
