"""
Bitcoin Core RPC backend.
Uses RPC calls but NOT wallet functionality.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger

from xchainwallet.backends.base import UtxoBackend
from xchainwallet.constants import SATOSHIS_PER_BTC
from xchainwallet.errors import BroadcastRejectedError
from xchainwallet.models import NetworkType
from xchainwallet.views import UtxoInput, UtxoOutput, UtxoTransactionView
from xchainwallet.wallet.address import address_to_scriptpubkey
from xchainwallet.wallet.models import UnspentOutput

# Timeout for regular RPC calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0

# Timeout for scantxoutset calls - mainnet scans can take 90+ seconds
SCAN_RPC_TIMEOUT = 300.0

# scantxoutset allows a single scan at a time; poll while another one runs
SCAN_MAX_WAITS = 30
SCAN_STATUS_POLL_INTERVAL = 10.0

# Used when estimatesmartfee has no data yet (fresh regtest, short uptime)
FALLBACK_FEE_RATE = 10.0

# sendrawtransaction error codes: verify error, rejected, already in chain
RPC_VERIFY_ERRORS = {-25, -26, -27}


class RpcError(ValueError):
    def __init__(self, code: int | str, message: str):
        self.code = code
        super().__init__(f"RPC error {code}: {message}")


def btc_to_sats(amount: float | str | Decimal) -> int:
    return int(Decimal(str(amount)) * SATOSHIS_PER_BTC)


class BitcoinCoreBackend(UtxoBackend):
    """
    Blockchain backend using Bitcoin Core RPC.
    Uses scantxoutset and other non-wallet RPC methods.

    scantxoutset only sees the confirmed UTXO set, so unconfirmed outputs are
    never reported regardless of ``confirmed_only``.
    """

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:18443",
        rpc_user: str = "rpcuser",
        rpc_password: str = "rpcpassword",
        network: NetworkType | str = NetworkType.REGTEST,
        scan_timeout: float = SCAN_RPC_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.network = NetworkType(network)
        self.client = httpx.AsyncClient(
            timeout=DEFAULT_RPC_TIMEOUT, auth=(rpc_user, rpc_password), transport=transport
        )
        self._scan_client = httpx.AsyncClient(
            timeout=scan_timeout, auth=(rpc_user, rpc_password), transport=transport
        )
        self._request_id = 0

    async def _rpc_call(
        self,
        method: str,
        params: list | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> Any:
        """
        Make an RPC call to Bitcoin Core.

        Raises:
            RpcError: On RPC errors
            httpx.HTTPError: On connection/timeout errors
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = await (client or self.client).post(self.rpc_url, json=payload)
            # Core answers RPC errors with HTTP 500 and a JSON body
            if response.status_code != 500:
                response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise

        if data.get("error"):
            error_info = data["error"]
            raise RpcError(error_info.get("code", "unknown"), error_info.get("message", ""))

        return data.get("result")

    async def _scantxoutset(self, descriptors: list[str]) -> dict[str, Any]:
        for attempt in range(SCAN_MAX_WAITS):
            status = await self._rpc_call("scantxoutset", ["status"])
            if status is None:
                break
            logger.debug(
                f"Another scan in progress ({status.get('progress', 0)}%), waiting... "
                f"(attempt {attempt + 1}/{SCAN_MAX_WAITS})"
            )
            await asyncio.sleep(SCAN_STATUS_POLL_INTERVAL)

        logger.debug(f"Starting UTXO scan for {len(descriptors)} descriptor(s)...")
        result = await self._rpc_call(
            "scantxoutset", ["start", descriptors], client=self._scan_client
        )
        return result or {"unspents": []}

    async def get_utxos(self, address: str, confirmed_only: bool = True) -> list[UnspentOutput]:
        result = await self._scantxoutset([f"addr({address})"])
        fallback_script = address_to_scriptpubkey(address, self.network)

        utxos = [
            UnspentOutput(
                txid=item["txid"],
                vout=item["vout"],
                value=btc_to_sats(item["amount"]),
                locking_script=(
                    bytes.fromhex(item["scriptPubKey"])
                    if item.get("scriptPubKey")
                    else fallback_script
                ),
                confirmed=item.get("height", 0) > 0,
                address=address,
            )
            for item in result.get("unspents", [])
        ]
        logger.debug(f"Scan completed: found {len(utxos)} UTXOs")
        return utxos

    async def broadcast_transaction(self, tx_hex: str) -> str:
        try:
            txid = await self._rpc_call("sendrawtransaction", [tx_hex])
        except RpcError as e:
            logger.error(f"Failed to broadcast transaction: {e}")
            if e.code in RPC_VERIFY_ERRORS:
                raise BroadcastRejectedError(str(e)) from e
            raise

        logger.info(f"Broadcast transaction: {txid}")
        return txid

    async def estimate_fee_rate(self, target_blocks: int = 2) -> float:
        result = await self._rpc_call("estimatesmartfee", [target_blocks])

        if "feerate" not in result:
            logger.warning(f"Fee estimation unavailable, using fallback {FALLBACK_FEE_RATE}")
            return FALLBACK_FEE_RATE

        # BTC/kvB to sat/vB
        sat_per_vbyte = btc_to_sats(result["feerate"]) / 1000
        logger.debug(f"Estimated fee for {target_blocks} blocks: {sat_per_vbyte} sat/vB")
        return sat_per_vbyte

    async def get_transaction(self, txid: str) -> UtxoTransactionView | None:
        try:
            # Verbosity 2 includes prevout data for each input
            tx_data = await self._rpc_call("getrawtransaction", [txid, 2])
        except RpcError as e:
            logger.warning(f"Failed to fetch transaction {txid}: {e}")
            return None

        if not tx_data:
            return None

        inputs = []
        for vin in tx_data.get("vin", []):
            prevout = vin.get("prevout") or {}
            inputs.append(
                UtxoInput(
                    address=(prevout.get("scriptPubKey") or {}).get("address"),
                    value=btc_to_sats(prevout.get("value", 0)),
                )
            )

        outputs = []
        for vout in tx_data.get("vout", []):
            script = vout.get("scriptPubKey") or {}
            outputs.append(
                UtxoOutput(
                    address=script.get("address"),
                    value=btc_to_sats(vout.get("value", 0)),
                    script_type=script.get("type", "unknown"),
                )
            )

        return UtxoTransactionView(
            txid=txid,
            block_time=tx_data.get("blocktime"),
            confirmed=tx_data.get("confirmations", 0) > 0,
            inputs=inputs,
            outputs=outputs,
        )

    async def close(self) -> None:
        await self.client.aclose()
        await self._scan_client.aclose()
