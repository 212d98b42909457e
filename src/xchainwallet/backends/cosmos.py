"""
Cosmos SDK LCD (REST gateway) backend.

Read-only: bank balances and bank-message transaction history.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from xchainwallet.models import Asset, AssetATOM, AssetMUON, Balance, NetworkType, Tx, TxsPage
from xchainwallet.views import AccountTransactionView, account_view_to_tx
from xchainwallet.wallet.address import validate_bech32_address

DEFAULT_TIMEOUT = 30.0
COSMOS_HRP = "cosmos"

DEFAULT_LCD_URLS = {
    NetworkType.MAINNET: "https://api.cosmos.network",
    NetworkType.TESTNET: "https://rest.sentry-01.theta-testnet.polypore.xyz",
}

DENOM_ASSETS: dict[str, Asset] = {
    "uatom": AssetATOM,
    "umuon": AssetMUON,
}


def get_denom(asset: Asset) -> str | None:
    for denom, known in DENOM_ASSETS.items():
        if known == asset:
            return denom
    return None


def get_asset(denom: str) -> Asset | None:
    return DENOM_ASSETS.get(denom)


class CosmosBackend:
    def __init__(
        self,
        base_url: str | None = None,
        network: NetworkType | str = NetworkType.TESTNET,
        main_asset: Asset = AssetATOM,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.network = NetworkType(network)
        self.main_asset = main_asset
        url = base_url or DEFAULT_LCD_URLS.get(self.network, DEFAULT_LCD_URLS[NetworkType.TESTNET])
        self.client = httpx.AsyncClient(
            base_url=url.rstrip("/"), timeout=timeout, transport=transport
        )

    def validate_address(self, address: str) -> bool:
        return validate_bech32_address(address, COSMOS_HRP)

    async def _get(self, path: str, params: Any = None) -> dict[str, Any]:
        try:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Cosmos LCD request failed: GET {path} - {e}")
            raise

    async def get_balance(self, address: str) -> list[Balance]:
        if not self.validate_address(address):
            raise ValueError(f"Invalid cosmos address: {address}")

        data = await self._get(f"/cosmos/bank/v1beta1/balances/{address}")
        balances = []
        for coin in data.get("balances", []):
            asset = get_asset(coin.get("denom", ""))
            if asset is None:
                logger.debug(f"Skipping unknown denom {coin.get('denom')}")
                continue
            balances.append(Balance(asset=asset, amount=int(coin.get("amount", 0))))
        return balances

    async def get_transactions(self, address: str, offset: int = 0, limit: int = 10) -> TxsPage:
        params = [
            ("events", "message.action='/cosmos.bank.v1beta1.MsgSend'"),
            ("events", f"message.sender='{address}'"),
            ("pagination.offset", str(offset)),
            ("pagination.limit", str(limit)),
            ("pagination.count_total", "true"),
            ("order_by", "ORDER_BY_DESC"),
        ]
        data = await self._get("/cosmos/tx/v1beta1/txs", params=params)

        views = [AccountTransactionView.from_tx_response(r) for r in data.get("tx_responses") or []]
        total = int((data.get("pagination") or {}).get("total") or len(views))
        logger.debug(f"Fetched {len(views)} of {total} transactions for {address}")
        return TxsPage(total=total, txs=[account_view_to_tx(v, self.main_asset) for v in views])

    async def get_transaction_data(self, txid: str) -> Tx:
        data = await self._get(f"/cosmos/tx/v1beta1/txs/{txid}")
        tx_response = data.get("tx_response")
        if not tx_response:
            raise ValueError(f"Transaction not found: {txid}")
        view = AccountTransactionView.from_tx_response(tx_response)
        return account_view_to_tx(view, self.main_asset)

    async def close(self) -> None:
        await self.client.aclose()
