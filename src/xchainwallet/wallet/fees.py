"""
Fee model for UTXO transactions.

Fees are a function of estimated transaction size in bytes. The estimate is
a close upper bound, not byte-exact: the final DER signature length is only
known after signing.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from decimal import Decimal

from xchainwallet.constants import (
    DEFAULT_FASTEST_FEE_RATE,
    DEFAULT_FEE_RATE,
    MAX_MEMO_BYTES,
    MIN_TX_FEE,
    TX_EMPTY_SIZE,
    TX_INPUT_BASE,
    TX_INPUT_PUBKEYHASH,
    TX_OUTPUT_BASE,
    TX_OUTPUT_PUBKEYHASH,
)
from xchainwallet.models import FeeOption, FeeRates, Fees
from xchainwallet.wallet.address import OP_RETURN
from xchainwallet.wallet.models import Memo, UnspentOutput

FeeRate = int | float | Decimal

OP_PUSHDATA1 = 0x4C


def _to_decimal(fee_rate: FeeRate) -> Decimal:
    rate = Decimal(str(fee_rate))
    if not rate.is_finite() or rate <= 0:
        raise ValueError(f"Fee rate must be positive, got {fee_rate}")
    return rate


def compile_memo(memo: Memo) -> bytes:
    """
    Compile a memo into an OP_RETURN data-carrier script.

    Returns:
        OP_RETURN <push data> script bytes
    """
    data = memo.encode("utf-8") if isinstance(memo, str) else bytes(memo)
    if len(data) > MAX_MEMO_BYTES:
        raise ValueError(f"Memo is {len(data)} bytes, maximum is {MAX_MEMO_BYTES}")

    if len(data) < OP_PUSHDATA1:
        push = bytes([len(data)])
    else:
        push = bytes([OP_PUSHDATA1, len(data)])

    return bytes([OP_RETURN]) + push + data


def input_bytes(utxo: UnspentOutput) -> int:
    """
    Bytes added by spending ``utxo``: outpoint, sequence and unlocking data.

    The size of the locking script does not matter here. Every input the
    signer accepts is a key-hash spend, unlocked by a DER signature plus a
    compressed pubkey. For P2WPKH those bytes sit in the witness and are
    counted at full weight.
    """
    return TX_INPUT_BASE + TX_INPUT_PUBKEYHASH


def estimate_size(
    inputs: Sequence[UnspentOutput],
    has_memo: bool = False,
    memo_byte_length: int = 0,
) -> int:
    if memo_byte_length < 0:
        raise ValueError("memo_byte_length must be non-negative")

    size = (
        TX_EMPTY_SIZE
        + sum(input_bytes(utxo) for utxo in inputs)
        + len(inputs)  # +1 byte per input for signature length framing
        + TX_OUTPUT_BASE
        + TX_OUTPUT_PUBKEYHASH  # recipient
        + TX_OUTPUT_BASE
        + TX_OUTPUT_PUBKEYHASH  # change
    )
    if has_memo:
        size += TX_OUTPUT_BASE + memo_byte_length
    return size


def estimate_fee(
    inputs: Sequence[UnspentOutput],
    fee_rate: FeeRate,
    has_memo: bool = False,
    memo_byte_length: int = 0,
) -> int:
    """
    Estimate the fee for spending ``inputs``.

    Args:
        inputs: UTXOs being spent
        fee_rate: smallest unit per byte
        has_memo: whether an OP_RETURN output is added
        memo_byte_length: length of the compiled memo script

    Returns:
        Fee in the smallest unit, never below MIN_TX_FEE
    """
    rate = _to_decimal(fee_rate)
    size = estimate_size(inputs, has_memo, memo_byte_length)
    fee = math.ceil(rate * size)
    return max(fee, MIN_TX_FEE)


def calc_fee(fee_rate: FeeRate, memo: Memo | None = None) -> int:
    """Fee of a transaction with no inputs yet, i.e. the minimum for this rate."""
    compiled = compile_memo(memo) if memo else None
    return estimate_fee(
        [], fee_rate, has_memo=compiled is not None, memo_byte_length=len(compiled or b"")
    )


def standard_fee_rates(rate: FeeRate) -> FeeRates:
    base = float(_to_decimal(rate))
    return FeeRates(average=base * 0.5, fast=base, fastest=base * 5)


def default_fee_rates() -> FeeRates:
    rates = standard_fee_rates(DEFAULT_FEE_RATE)
    return rates.model_copy(update={"fastest": float(DEFAULT_FASTEST_FEE_RATE)})


def calc_fees(rates: FeeRates, memo: Memo | None = None) -> Fees:
    return Fees(
        type="byte",
        **{option.value: calc_fee(rates.get(option), memo) for option in FeeOption},
    )


def default_fees(memo: Memo | None = None) -> Fees:
    return calc_fees(default_fee_rates(), memo)
