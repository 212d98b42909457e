"""
Chain backend implementations.

Available backends:
- EsploraBackend: Esplora / mempool.space REST API (no node required)
- BitcoinCoreBackend: Full node via Bitcoin Core RPC (no wallet, uses scantxoutset)
- RosettaBackend: Rosetta Data API for account-model chains (read-only)
- CosmosBackend: Cosmos SDK LCD REST API (read-only)

EsploraBackend and BitcoinCoreBackend implement UtxoBackend and can drive
UtxoClient transfers.
"""

from xchainwallet.backends.base import UtxoBackend
from xchainwallet.backends.bitcoin_core import BitcoinCoreBackend, RpcError
from xchainwallet.backends.cosmos import CosmosBackend
from xchainwallet.backends.esplora import EsploraBackend
from xchainwallet.backends.rosetta import RosettaBackend

__all__ = [
    "BitcoinCoreBackend",
    "CosmosBackend",
    "EsploraBackend",
    "RosettaBackend",
    "RpcError",
    "UtxoBackend",
]
