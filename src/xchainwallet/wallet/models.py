"""
Wallet data models for UTXO transaction construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from xchainwallet.constants import DEFAULT_SEQUENCE, TX_VERSION

Memo = str | bytes


class UtxoOrder(str, Enum):
    """Order in which eligible UTXOs are fed to the accumulator."""

    FIRST_SEEN = "first_seen"  # as reported by the indexer
    LARGEST_FIRST = "largest_first"  # fewest inputs
    SMALLEST_FIRST = "smallest_first"  # consolidates dust


@dataclass(frozen=True)
class UnspentOutput:
    """A spendable output as reported by an indexer or node."""

    txid: str
    vout: int
    value: int
    locking_script: bytes = b""
    confirmed: bool = True
    address: str | None = None

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"UTXO value must be non-negative, got {self.value}")
        if self.vout < 0:
            raise ValueError(f"UTXO vout must be non-negative, got {self.vout}")

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True)
class SpendTarget:
    address: str
    value: int

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError(f"Spend amount must be positive, got {self.value}")


@dataclass
class CoinSelection:
    """Result of coin selection"""

    selected: list[UnspentOutput]
    target_value: int
    fee: int
    change_value: int

    @property
    def total_value(self) -> int:
        return sum(utxo.value for utxo in self.selected)


@dataclass(frozen=True)
class TxOutput:
    """Transaction output paying either an address or a raw script, never both."""

    value: int
    address: str | None = None
    script: bytes | None = None

    def __post_init__(self) -> None:
        if (self.address is None) == (self.script is None):
            raise ValueError("TxOutput needs exactly one of address or script")
        if self.value < 0:
            raise ValueError(f"Output value must be non-negative, got {self.value}")


@dataclass
class UnsignedTransaction:
    inputs: list[UnspentOutput]
    outputs: list[TxOutput]
    version: int = TX_VERSION
    locktime: int = 0
    sequence: int = DEFAULT_SEQUENCE

    @property
    def input_value(self) -> int:
        return sum(inp.value for inp in self.inputs)

    @property
    def output_value(self) -> int:
        return sum(out.value for out in self.outputs)

    @property
    def fee(self) -> int:
        return self.input_value - self.output_value


@dataclass
class SignedTransaction:
    """Finalized transaction, ready for broadcast."""

    unsigned: UnsignedTransaction
    script_sigs: list[bytes]
    witnesses: list[list[bytes]]
    raw: bytes
    txid: str
    signatures: list[bytes] = field(default_factory=list)

    @property
    def hex(self) -> str:
        return self.raw.hex()

    @property
    def has_witness(self) -> bool:
        return any(self.witnesses)
