"""
UTXO chain client.

Ties the pure wallet core (selection, assembly, signing) to a UtxoBackend.
The client holds no secrets: every operation that needs keys takes a
WalletContext.
"""

from __future__ import annotations

import httpx
from loguru import logger

from xchainwallet.backends.base import UtxoBackend
from xchainwallet.context import WalletContext
from xchainwallet.errors import InvalidAddressError
from xchainwallet.models import (
    Asset,
    AssetBTC,
    Balance,
    FeeOption,
    FeeRates,
    Fees,
    NetworkType,
    Tx,
    TxsPage,
)
from xchainwallet.views import utxo_view_to_tx
from xchainwallet.wallet.address import validate_address
from xchainwallet.wallet.fees import (
    FeeRate,
    calc_fees,
    default_fee_rates,
    standard_fee_rates,
)
from xchainwallet.wallet.models import (
    CoinSelection,
    Memo,
    SpendTarget,
    UnsignedTransaction,
    UtxoOrder,
)
from xchainwallet.wallet.selection import select_inputs
from xchainwallet.wallet.signing import sign
from xchainwallet.wallet.tx_builder import assemble

EXPLORER_URLS = {
    NetworkType.MAINNET: "https://blockstream.info",
    NetworkType.TESTNET: "https://blockstream.info/testnet",
    NetworkType.SIGNET: "https://mempool.space/signet",
    NetworkType.REGTEST: "http://127.0.0.1:3002",
}

# Confirmation target used for the "fast" tier
FEE_TARGET_BLOCKS = 2


class UtxoClient:
    """
    Client for a Bitcoin-family UTXO chain.

    Transfers run: collect UTXOs -> select -> assemble -> sign -> broadcast.
    UTXOs are not reserved between transfers; callers must serialize
    transfers from the same address.
    """

    def __init__(
        self,
        backend: UtxoBackend,
        network: NetworkType | str = NetworkType.TESTNET,
        asset: Asset = AssetBTC,
        utxo_order: UtxoOrder = UtxoOrder.FIRST_SEEN,
        dust_threshold: int = 0,
        spend_unconfirmed: bool = False,
    ):
        self.backend = backend
        self.network = NetworkType(network)
        self.asset = asset
        self.utxo_order = utxo_order
        self.dust_threshold = dust_threshold
        self.spend_unconfirmed = spend_unconfirmed

    def get_explorer_url(self) -> str:
        return EXPLORER_URLS[self.network]

    def get_explorer_address_url(self, address: str) -> str:
        return f"{self.get_explorer_url()}/address/{address}"

    def get_explorer_tx_url(self, txid: str) -> str:
        return f"{self.get_explorer_url()}/tx/{txid}"

    def _check_context(self, context: WalletContext) -> None:
        if context.network != self.network:
            raise ValueError(
                f"Wallet context is for {context.network.value}, client is {self.network.value}"
            )

    def get_address(self, context: WalletContext, index: int = 0) -> str:
        if index < 0:
            raise ValueError("index must be greater than or equal to zero")
        self._check_context(context)
        return context.address(index)

    def validate_address(self, address: str) -> bool:
        return validate_address(address, self.network)

    def _require_valid(self, address: str) -> None:
        if not self.validate_address(address):
            raise InvalidAddressError(address, self.network.value)

    async def get_balance(self, address: str) -> list[Balance]:
        self._require_valid(address)
        amount = await self.backend.get_balance(address)
        return [Balance(asset=self.asset, amount=amount)]

    async def get_transactions(self, address: str, offset: int = 0, limit: int = 10) -> TxsPage:
        if offset < 0 or limit < 0:
            raise ValueError("offset and limit must be non-negative")
        self._require_valid(address)

        total, views = await self.backend.get_address_transactions(address, offset, limit)
        return TxsPage(total=total, txs=[utxo_view_to_tx(view, self.asset) for view in views])

    async def get_transaction_data(self, txid: str) -> Tx:
        view = await self.backend.get_transaction(txid)
        if view is None:
            raise ValueError(f"Transaction not found: {txid}")
        return utxo_view_to_tx(view, self.asset)

    async def get_fee_rates(self) -> FeeRates:
        try:
            rate = await self.backend.estimate_fee_rate(FEE_TARGET_BLOCKS)
            return standard_fee_rates(rate)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to estimate fee rate, using defaults: {e}")
            return default_fee_rates()

    async def get_fees(self, memo: Memo | None = None) -> Fees:
        return calc_fees(await self.get_fee_rates(), memo)

    async def build_transaction(
        self,
        context: WalletContext,
        recipient: str,
        amount: int,
        memo: Memo | None = None,
        fee_rate: FeeRate | None = None,
        wallet_index: int = 0,
        spend_unconfirmed: bool | None = None,
    ) -> tuple[UnsignedTransaction, CoinSelection]:
        """
        Collect, select and assemble; no signing.

        Args:
            context: Wallet owning the inputs; change returns to its address
            recipient: Destination address
            amount: Value to send in the smallest unit
            memo: Optional OP_RETURN memo
            fee_rate: Smallest unit per byte (default: network "fast" tier)
            wallet_index: Address index spent from
            spend_unconfirmed: Override the client default

        Returns:
            (unsigned transaction, coin selection)
        """
        self._require_valid(recipient)
        self._check_context(context)
        target = SpendTarget(address=recipient, value=amount)

        if fee_rate is None:
            fee_rate = (await self.get_fee_rates()).get(FeeOption.FAST)

        allow_unconfirmed = (
            self.spend_unconfirmed if spend_unconfirmed is None else spend_unconfirmed
        )
        sender = context.address(wallet_index)

        logger.info(f"Collecting UTXOs for {sender}")
        utxos = await self.backend.get_utxos(sender, confirmed_only=not allow_unconfirmed)

        selection = select_inputs(
            utxos,
            [target],
            fee_rate,
            memo,
            spend_unconfirmed=allow_unconfirmed,
            order=self.utxo_order,
            dust_threshold=self.dust_threshold,
        )
        unsigned = assemble(selection.selected, [target], selection.change_value, sender, memo)
        logger.debug(
            f"Assembled transaction: {len(unsigned.inputs)} inputs, "
            f"{len(unsigned.outputs)} outputs, fee={selection.fee}"
        )
        return unsigned, selection

    async def transfer(
        self,
        context: WalletContext,
        recipient: str,
        amount: int,
        memo: Memo | None = None,
        fee_rate: FeeRate | None = None,
        wallet_index: int = 0,
        spend_unconfirmed: bool | None = None,
    ) -> str:
        """Build, sign and broadcast a transfer. Returns the txid."""
        unsigned, selection = await self.build_transaction(
            context,
            recipient,
            amount,
            memo=memo,
            fee_rate=fee_rate,
            wallet_index=wallet_index,
            spend_unconfirmed=spend_unconfirmed,
        )

        with context.key_resolver([wallet_index] * len(unsigned.inputs)) as resolver:
            signed = sign(unsigned, resolver, network=self.network)
        logger.info(f"Signed transaction {signed.txid} (fee {selection.fee})")

        txid = await self.backend.broadcast_transaction(signed.hex)
        logger.info(f"Transfer of {amount} to {recipient} broadcast: {txid}")
        return txid

    async def close(self) -> None:
        await self.backend.close()
