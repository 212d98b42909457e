"""
Chain-agnostic data models using Pydantic for validation and serialization.

These are the shapes every client returns, whatever the native response
format of the chain it wraps.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


class FeeOption(str, Enum):
    AVERAGE = "average"
    FAST = "fast"
    FASTEST = "fastest"


class Asset(BaseModel):
    model_config = ConfigDict(frozen=True)

    chain: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    ticker: str = Field(..., min_length=1)
    decimals: int = Field(default=8, ge=0, le=18)

    def __str__(self) -> str:
        return f"{self.chain}.{self.symbol}"


AssetBTC = Asset(chain="BTC", symbol="BTC", ticker="BTC", decimals=8)
AssetATOM = Asset(chain="GAIA", symbol="ATOM", ticker="ATOM", decimals=6)
AssetMUON = Asset(chain="GAIA", symbol="MUON", ticker="MUON", decimals=6)
AssetVET = Asset(chain="VET", symbol="VET", ticker="VET", decimals=18)


class Balance(BaseModel):
    asset: Asset
    amount: int = Field(..., description="Amount in the asset's smallest unit")


class TxFrom(BaseModel):
    from_address: str
    amount: int


class TxTo(BaseModel):
    to_address: str
    amount: int


class Tx(BaseModel):
    """Common transaction shape shared by all chain families."""

    asset: Asset
    from_: list[TxFrom] = Field(default_factory=list)
    to: list[TxTo] = Field(default_factory=list)
    date: datetime
    type: Literal["transfer", "unknown"] = "transfer"
    hash: str


class TxsPage(BaseModel):
    total: int = Field(default=0, ge=0)
    txs: list[Tx] = Field(default_factory=list)


class FeeRates(BaseModel):
    """Fee rate per tier, in smallest unit per byte."""

    average: float = Field(..., gt=0)
    fast: float = Field(..., gt=0)
    fastest: float = Field(..., gt=0)

    def get(self, option: FeeOption) -> float:
        return float(getattr(self, option.value))


class Fees(BaseModel):
    """Absolute fee per tier, in the smallest unit."""

    type: Literal["byte", "base"] = "byte"
    average: int = Field(..., ge=0)
    fast: int = Field(..., ge=0)
    fastest: int = Field(..., ge=0)

    def get(self, option: FeeOption) -> int:
        return int(getattr(self, option.value))
