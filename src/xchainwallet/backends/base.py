"""
Base UTXO backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from xchainwallet.views import UtxoTransactionView
from xchainwallet.wallet.models import UnspentOutput


class UtxoBackend(ABC):
    """
    Abstract indexer/node collaborator for UTXO chains.

    Backends own all network I/O: timeouts and any retry policy live here,
    never in selection, assembly or signing.
    """

    @abstractmethod
    async def get_utxos(self, address: str, confirmed_only: bool = True) -> list[UnspentOutput]:
        """Get unspent outputs for an address"""

    @abstractmethod
    async def broadcast_transaction(self, tx_hex: str) -> str:
        """Broadcast transaction, returns txid. Raises BroadcastRejectedError on rejection."""

    @abstractmethod
    async def estimate_fee_rate(self, target_blocks: int = 2) -> float:
        """Estimate fee in sat/byte for target confirmation blocks"""

    @abstractmethod
    async def get_transaction(self, txid: str) -> UtxoTransactionView | None:
        """Get transaction by txid"""

    async def get_balance(self, address: str, confirmed_only: bool = False) -> int:
        """Balance in the smallest unit, summed from the address UTXOs."""
        utxos = await self.get_utxos(address, confirmed_only=confirmed_only)
        return sum(utxo.value for utxo in utxos)

    async def get_address_transactions(
        self, address: str, offset: int = 0, limit: int = 10
    ) -> tuple[int, list[UtxoTransactionView]]:
        """
        Get a page of transactions touching an address.

        Returns:
            (total transaction count, page of views)
        """
        raise NotImplementedError(f"{type(self).__name__} does not index address history")

    async def close(self) -> None:
        """Close backend connection"""
        pass
