"""
Accumulative coin selection.

Walks eligible UTXOs in a deterministic order, adding each to the selected
set until the running total covers the spend targets plus the fee for the
current selection size.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from xchainwallet.errors import InsufficientBalanceError, NoUtxosAvailableError
from xchainwallet.wallet.fees import FeeRate, compile_memo, estimate_fee
from xchainwallet.wallet.models import (
    CoinSelection,
    Memo,
    SpendTarget,
    UnspentOutput,
    UtxoOrder,
)


def eligible_utxos(
    available: Sequence[UnspentOutput],
    memo: Memo | None = None,
    spend_unconfirmed: bool = False,
) -> list[UnspentOutput]:
    """
    Filter UTXOs by confirmation status.

    Unconfirmed outputs are only eligible on explicit opt-in, and never when
    a memo is attached.
    """
    allow_unconfirmed = spend_unconfirmed and not memo
    if spend_unconfirmed and memo:
        logger.debug("Memo present, restricting selection to confirmed UTXOs")
    return [utxo for utxo in available if utxo.confirmed or allow_unconfirmed]


def order_utxos(utxos: Sequence[UnspentOutput], order: UtxoOrder) -> list[UnspentOutput]:
    """Sort for selection. Ties break on outpoint so the order is total."""
    if order == UtxoOrder.FIRST_SEEN:
        return list(utxos)
    if order == UtxoOrder.LARGEST_FIRST:
        return sorted(utxos, key=lambda u: (-u.value, u.txid, u.vout))
    return sorted(utxos, key=lambda u: (u.value, u.txid, u.vout))


def select_inputs(
    available: Sequence[UnspentOutput],
    targets: Sequence[SpendTarget],
    fee_rate: FeeRate,
    memo: Memo | None = None,
    *,
    spend_unconfirmed: bool = False,
    order: UtxoOrder = UtxoOrder.FIRST_SEEN,
    dust_threshold: int = 0,
) -> CoinSelection:
    """
    Select UTXOs covering ``targets`` plus fee.

    Args:
        available: candidate UTXOs, in indexer order
        targets: spend outputs (at least one)
        fee_rate: smallest unit per byte
        memo: optional memo; forces confirmed-only selection
        spend_unconfirmed: opt in to spending unconfirmed UTXOs
        order: iteration order over eligible UTXOs
        dust_threshold: change strictly below this is added to the fee
            instead of creating an output (0 disables)

    Returns:
        CoinSelection with sum(selected) == target + fee + change

    Raises:
        NoUtxosAvailableError: no eligible UTXOs at all
        InsufficientBalanceError: eligible UTXOs exhausted before sufficiency
    """
    if not targets:
        raise ValueError("At least one spend target is required")
    if dust_threshold < 0:
        raise ValueError("dust_threshold must be non-negative")

    target_value = sum(t.value for t in targets)
    memo_length = len(compile_memo(memo)) if memo else 0

    candidates = order_utxos(eligible_utxos(available, memo, spend_unconfirmed), order)
    if not candidates:
        raise NoUtxosAvailableError(target_value)

    selected: list[UnspentOutput] = []
    total = 0
    fee = 0

    for utxo in candidates:
        selected.append(utxo)
        total += utxo.value
        fee = estimate_fee(selected, fee_rate, has_memo=bool(memo), memo_byte_length=memo_length)

        if total >= target_value + fee:
            break
    else:
        raise InsufficientBalanceError(target_value + fee, total)

    change = total - target_value - fee
    if 0 < change < dust_threshold:
        logger.debug(f"Change {change} below dust threshold {dust_threshold}, adding to fee")
        fee += change
        change = 0

    logger.debug(
        f"Selected {len(selected)}/{len(candidates)} UTXOs: total={total} "
        f"target={target_value} fee={fee} change={change}"
    )
    return CoinSelection(
        selected=selected, target_value=target_value, fee=fee, change_value=change
    )
