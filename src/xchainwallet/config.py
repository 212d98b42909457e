"""
Configuration management for the wallet client.

Values come from XCHAIN_* environment variables or a .env file.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from xchainwallet.backends.base import UtxoBackend
from xchainwallet.backends.bitcoin_core import BitcoinCoreBackend
from xchainwallet.backends.esplora import EsploraBackend
from xchainwallet.client import UtxoClient
from xchainwallet.models import NetworkType
from xchainwallet.wallet.models import UtxoOrder

DEFAULT_RPC_PORTS = {
    NetworkType.MAINNET: 8332,
    NetworkType.TESTNET: 18332,
    NetworkType.SIGNET: 38332,
    NetworkType.REGTEST: 18443,
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="XCHAIN_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: NetworkType = NetworkType.TESTNET

    # Backend selection
    backend: Literal["esplora", "bitcoin_core"] = "esplora"
    esplora_url: str | None = None  # None = public default for the network
    rpc_url: str | None = None  # None = localhost on the network's default port
    rpc_user: str = "rpcuser"
    rpc_password: SecretStr = SecretStr("rpcpassword")

    # Wallet behaviour
    address_type: Literal["p2pkh", "p2wpkh"] = "p2pkh"
    dust_threshold: int = Field(default=0, ge=0, description="0 disables dust folding")
    utxo_order: UtxoOrder = UtxoOrder.FIRST_SEEN
    spend_unconfirmed: bool = False

    log_level: str = "INFO"

    @model_validator(mode="after")
    def set_rpc_url_default(self) -> Settings:
        """If rpc_url is not set, point at a local node for the network."""
        if self.rpc_url is None:
            self.rpc_url = f"http://127.0.0.1:{DEFAULT_RPC_PORTS[self.network]}"
        return self

    def create_backend(self) -> UtxoBackend:
        if self.backend == "bitcoin_core":
            return BitcoinCoreBackend(
                rpc_url=self.rpc_url or "",
                rpc_user=self.rpc_user,
                rpc_password=self.rpc_password.get_secret_value(),
                network=self.network,
            )
        return EsploraBackend(base_url=self.esplora_url, network=self.network)

    def create_client(self) -> UtxoClient:
        return UtxoClient(
            self.create_backend(),
            network=self.network,
            utxo_order=self.utxo_order,
            dust_threshold=self.dust_threshold,
            spend_unconfirmed=self.spend_unconfirmed,
        )


def get_settings() -> Settings:
    return Settings()
