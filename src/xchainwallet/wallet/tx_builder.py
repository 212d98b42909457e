"""
Transaction assembler.

Builds the unsigned transaction from a coin selection:
- Inputs: the selected UTXOs, in selection order
- Outputs: spend targets, then the memo (OP_RETURN), then change
"""

from __future__ import annotations

import hashlib
import struct
from collections.abc import Sequence

from xchainwallet.models import NetworkType
from xchainwallet.wallet.address import address_to_scriptpubkey
from xchainwallet.wallet.fees import compile_memo
from xchainwallet.wallet.models import (
    Memo,
    SpendTarget,
    TxOutput,
    UnsignedTransaction,
    UnspentOutput,
)


def assemble(
    selected: Sequence[UnspentOutput],
    targets: Sequence[SpendTarget],
    change_value: int,
    change_address: str,
    memo: Memo | None = None,
) -> UnsignedTransaction:
    """
    Assemble an unsigned transaction.

    A change output is only emitted when change_value > 0; zero-value change
    is never created.
    """
    if not selected:
        raise ValueError("Cannot assemble a transaction without inputs")
    if not targets:
        raise ValueError("Cannot assemble a transaction without spend targets")
    if change_value < 0:
        raise ValueError(f"Change must be non-negative, got {change_value}")

    outputs = [TxOutput(value=t.value, address=t.address) for t in targets]

    if memo:
        outputs.append(TxOutput(value=0, script=compile_memo(memo)))

    if change_value > 0:
        outputs.append(TxOutput(value=change_value, address=change_address))

    return UnsignedTransaction(inputs=list(selected), outputs=outputs)


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def varint(n: int) -> bytes:
    """Encode integer as Bitcoin varint."""
    if n < 0xFD:
        return bytes([n])
    elif n <= 0xFFFF:
        return bytes([0xFD]) + struct.pack("<H", n)
    elif n <= 0xFFFFFFFF:
        return bytes([0xFE]) + struct.pack("<I", n)
    else:
        return bytes([0xFF]) + struct.pack("<Q", n)


def serialize_outpoint(txid: str, vout: int) -> bytes:
    # txid is in RPC format (big-endian), reversed for raw tx
    return bytes.fromhex(txid)[::-1] + struct.pack("<I", vout)


def output_script(out: TxOutput, network: NetworkType | str = "mainnet") -> bytes:
    if out.script is not None:
        return out.script
    assert out.address is not None
    return address_to_scriptpubkey(out.address, network)


def serialize_output(out: TxOutput, network: NetworkType | str = "mainnet") -> bytes:
    script = output_script(out, network)
    return struct.pack("<Q", out.value) + varint(len(script)) + script


def serialize_outputs(outputs: Sequence[TxOutput], network: NetworkType | str = "mainnet") -> bytes:
    return varint(len(outputs)) + b"".join(serialize_output(out, network) for out in outputs)


def serialize_transaction(
    tx: UnsignedTransaction,
    script_sigs: Sequence[bytes] | None = None,
    witnesses: Sequence[Sequence[bytes]] | None = None,
    network: NetworkType | str = "mainnet",
    include_witness: bool = True,
) -> bytes:
    """
    Serialize a transaction.

    With no script_sigs the inputs carry empty scriptSigs (unsigned form).
    Witness data is written only when at least one input has a witness.
    """
    sigs = list(script_sigs) if script_sigs is not None else [b""] * len(tx.inputs)
    wits = [list(w) for w in witnesses] if witnesses is not None else [[] for _ in tx.inputs]
    if len(sigs) != len(tx.inputs) or len(wits) != len(tx.inputs):
        raise ValueError("scriptSig/witness count does not match input count")

    segwit = include_witness and any(wits)

    result = struct.pack("<I", tx.version)
    if segwit:
        result += bytes([0x00, 0x01])

    result += varint(len(tx.inputs))
    for inp, script_sig in zip(tx.inputs, sigs):
        result += serialize_outpoint(inp.txid, inp.vout)
        result += varint(len(script_sig)) + script_sig
        result += struct.pack("<I", tx.sequence)

    result += serialize_outputs(tx.outputs, network)

    if segwit:
        for witness in wits:
            result += varint(len(witness))
            for item in witness:
                result += varint(len(item)) + item

    result += struct.pack("<I", tx.locktime)
    return result


def compute_txid(
    tx: UnsignedTransaction,
    script_sigs: Sequence[bytes] | None = None,
    network: NetworkType | str = "mainnet",
) -> str:
    """Double SHA256 of the non-witness serialization, displayed big-endian."""
    data = serialize_transaction(tx, script_sigs, network=network, include_witness=False)
    return hash256(data)[::-1].hex()
