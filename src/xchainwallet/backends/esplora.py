"""
Esplora REST backend (Blockstream Esplora, mempool.space).
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from xchainwallet.backends.base import UtxoBackend
from xchainwallet.errors import BroadcastRejectedError
from xchainwallet.models import NetworkType
from xchainwallet.views import UtxoTransactionView
from xchainwallet.wallet.address import address_to_scriptpubkey
from xchainwallet.wallet.models import UnspentOutput

DEFAULT_TIMEOUT = 30.0

# Esplora returns confirmed history in chunks of this size
CHAIN_PAGE_SIZE = 25

DEFAULT_ESPLORA_URLS = {
    NetworkType.MAINNET: "https://blockstream.info/api",
    NetworkType.TESTNET: "https://blockstream.info/testnet/api",
    NetworkType.SIGNET: "https://mempool.space/signet/api",
    NetworkType.REGTEST: "http://127.0.0.1:3002",
}


class EsploraBackend(UtxoBackend):
    """
    Backend using an Esplora-compatible HTTP API.
    No node or wallet required; everything is address-indexed by the server.
    """

    def __init__(
        self,
        base_url: str | None = None,
        network: NetworkType | str = NetworkType.MAINNET,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.network = NetworkType(network)
        self.base_url = (base_url or DEFAULT_ESPLORA_URLS[self.network]).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def _get(self, path: str) -> Any:
        try:
            response = await self.client.get(path)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Esplora request failed: GET {path} - {e}")
            raise

    async def get_utxos(self, address: str, confirmed_only: bool = True) -> list[UnspentOutput]:
        data = await self._get(f"/address/{address}/utxo")
        locking_script = address_to_scriptpubkey(address, self.network)

        utxos = [
            UnspentOutput(
                txid=item["txid"],
                vout=item["vout"],
                value=item["value"],
                locking_script=locking_script,
                confirmed=bool((item.get("status") or {}).get("confirmed", False)),
                address=address,
            )
            for item in data
        ]
        if confirmed_only:
            utxos = [u for u in utxos if u.confirmed]

        logger.debug(f"Found {len(utxos)} UTXOs (confirmed_only={confirmed_only})")
        return utxos

    async def get_balance(self, address: str, confirmed_only: bool = False) -> int:
        data = await self._get(f"/address/{address}")
        stats = [data.get("chain_stats") or {}]
        if not confirmed_only:
            stats.append(data.get("mempool_stats") or {})

        balance = sum(s.get("funded_txo_sum", 0) - s.get("spent_txo_sum", 0) for s in stats)
        logger.debug(f"Balance: {balance} sats")
        return balance

    async def broadcast_transaction(self, tx_hex: str) -> str:
        try:
            response = await self.client.post("/tx", content=tx_hex)
        except httpx.HTTPError as e:
            logger.error(f"Failed to broadcast transaction: {e}")
            raise

        if response.is_error:
            reason = response.text.strip() or f"HTTP {response.status_code}"
            logger.error(f"Broadcast rejected: {reason}")
            raise BroadcastRejectedError(reason)

        txid = response.text.strip()
        logger.info(f"Broadcast transaction: {txid}")
        return txid

    async def estimate_fee_rate(self, target_blocks: int = 2) -> float:
        estimates: dict[str, float] = await self._get("/fee-estimates")
        if not estimates:
            raise ValueError("Fee estimation unavailable")

        # Use the closest target at or above the requested one, else the slowest available
        targets = sorted(int(k) for k in estimates)
        chosen = next((t for t in targets if t >= target_blocks), targets[-1])
        rate = float(estimates[str(chosen)])
        logger.debug(f"Estimated fee for {chosen} blocks: {rate} sat/vB")
        return rate

    async def get_transaction(self, txid: str) -> UtxoTransactionView | None:
        try:
            data = await self._get(f"/tx/{txid}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        return UtxoTransactionView.from_esplora(data)

    async def get_address_transactions(
        self, address: str, offset: int = 0, limit: int = 10
    ) -> tuple[int, list[UtxoTransactionView]]:
        info = await self._get(f"/address/{address}")
        total = sum(
            (info.get(key) or {}).get("tx_count", 0) for key in ("chain_stats", "mempool_stats")
        )

        wanted = offset + limit
        # First page holds mempool txs plus the newest confirmed chunk
        page = await self._get(f"/address/{address}/txs")
        collected: list[dict[str, Any]] = list(page)
        last_chunk = [tx for tx in page if (tx.get("status") or {}).get("confirmed")]

        while len(collected) < wanted and len(last_chunk) >= CHAIN_PAGE_SIZE:
            last_seen = last_chunk[-1]["txid"]
            last_chunk = await self._get(f"/address/{address}/txs/chain/{last_seen}")
            collected.extend(last_chunk)

        views = [UtxoTransactionView.from_esplora(tx) for tx in collected[offset:wanted]]
        return total, views

    async def close(self) -> None:
        await self.client.aclose()
