"""
Rosetta Data API backend for account-model chains (VeChain Thor).

Read-only: balances and transaction history. Construction endpoints are not
wrapped.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from xchainwallet.models import AssetVET, Balance, NetworkType, Tx, TxsPage
from xchainwallet.views import RosettaTransactionView, rosetta_view_to_tx

DEFAULT_ROSETTA_URL = "https://api.lunar.dev/v1"
DEFAULT_TIMEOUT = 30.0
ROSETTA_BLOCKCHAIN = "vechainthor"


class RosettaBackend:
    def __init__(
        self,
        base_url: str = DEFAULT_ROSETTA_URL,
        network: NetworkType | str = NetworkType.TESTNET,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.network = NetworkType(network)
        headers = {"X-Api-Key": api_key} if api_key else {}
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout, transport=transport
        )

    @property
    def network_identifier(self) -> dict[str, str]:
        return {
            "blockchain": ROSETTA_BLOCKCHAIN,
            "network": "main" if self.network == NetworkType.MAINNET else "test",
        }

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        payload = {"network_identifier": self.network_identifier, **body}
        try:
            response = await self.client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Rosetta request failed: POST {path} - {e}")
            raise

    async def network_status(self) -> dict[str, Any]:
        return await self._post("/network/status", {})

    async def get_balance(self, address: str) -> list[Balance]:
        status = await self.network_status()
        data = await self._post(
            "/account/balance",
            {
                "account_identifier": {"address": address},
                "block_identifier": status.get("current_block_identifier") or {},
            },
        )

        balances = []
        for item in data.get("balances", []):
            currency = item.get("currency") or {}
            symbol = currency.get("symbol", AssetVET.symbol)
            asset = AssetVET.model_copy(
                update={
                    "symbol": symbol,
                    "ticker": symbol,
                    "decimals": currency.get("decimals", AssetVET.decimals),
                }
            )
            balances.append(Balance(asset=asset, amount=int(item.get("value", 0))))
        return balances

    async def get_block(self, block_identifier: dict[str, Any]) -> dict[str, Any]:
        identifier = {k: v for k, v in block_identifier.items() if k in ("hash", "index")}
        return await self._post("/block", {"block_identifier": identifier})

    async def _search(self, body: dict[str, Any]) -> tuple[int, list[RosettaTransactionView]]:
        data = await self._post("/search/transactions", body)
        items = data.get("transactions", [])

        # Blocks are only fetched to date the transactions
        blocks: list[dict[str, Any]] = []
        seen: set[str] = set()
        for item in items:
            block_id = item.get("block_identifier") or {}
            block_hash = block_id.get("hash")
            if block_hash and block_hash not in seen:
                seen.add(block_hash)
                blocks.append(await self.get_block(block_id))

        views = [RosettaTransactionView.from_search_result(item, blocks) for item in items]
        return int(data.get("total_count", len(views))), views

    async def get_transactions(self, address: str, offset: int = 0, limit: int = 10) -> TxsPage:
        body: dict[str, Any] = {"address": address}
        if limit:
            body["limit"] = limit
        if offset:
            body["offset"] = offset

        total, views = await self._search(body)
        logger.debug(f"Fetched {len(views)} transactions for {address}")
        return TxsPage(total=total, txs=[rosetta_view_to_tx(v, AssetVET) for v in views])

    async def get_transaction_data(self, txid: str) -> Tx:
        _, views = await self._search({"transaction_identifier": {"hash": txid}, "limit": 1})
        if not views:
            raise ValueError(f"Transaction not found: {txid}")
        return rosetta_view_to_tx(views[0], AssetVET)

    async def close(self) -> None:
        await self.client.aclose()
