"""
Transaction signing for P2PKH and P2WPKH inputs.
"""

from __future__ import annotations

import struct
from collections.abc import Callable

from coincurve import PrivateKey, PublicKey
from loguru import logger

from xchainwallet.constants import SIGHASH_ALL
from xchainwallet.errors import TransactionSigningError
from xchainwallet.models import NetworkType
from xchainwallet.wallet.address import hash160, p2pkh_script, scriptpubkey_type
from xchainwallet.wallet.models import SignedTransaction, UnsignedTransaction
from xchainwallet.wallet.tx_builder import (
    compute_txid,
    hash256,
    serialize_outpoint,
    serialize_output,
    serialize_transaction,
    varint,
)

KeyResolver = Callable[[int], PrivateKey]


def push_data(data: bytes) -> bytes:
    if len(data) < 0x4C:
        return bytes([len(data)]) + data
    if len(data) <= 0xFF:
        return bytes([0x4C, len(data)]) + data
    return bytes([0x4D]) + struct.pack("<H", len(data)) + data


def compute_sighash_legacy(
    tx: UnsignedTransaction,
    input_index: int,
    script_code: bytes,
    sighash_type: int = SIGHASH_ALL,
    network: NetworkType | str = "mainnet",
) -> bytes:
    """Pre-segwit signature hash: the input being signed carries its scriptPubKey."""
    if input_index >= len(tx.inputs):
        raise TransactionSigningError("Input index out of range")

    script_sigs = [b""] * len(tx.inputs)
    script_sigs[input_index] = script_code
    preimage = serialize_transaction(tx, script_sigs, network=network, include_witness=False)
    return hash256(preimage + struct.pack("<I", sighash_type))


def compute_sighash_segwit(
    tx: UnsignedTransaction,
    input_index: int,
    script_code: bytes,
    value: int,
    sighash_type: int = SIGHASH_ALL,
    network: NetworkType | str = "mainnet",
) -> bytes:
    """BIP143 signature hash."""
    if input_index >= len(tx.inputs):
        raise TransactionSigningError("Input index out of range")

    sequence = struct.pack("<I", tx.sequence)
    hash_prevouts = hash256(b"".join(serialize_outpoint(i.txid, i.vout) for i in tx.inputs))
    hash_sequence = hash256(sequence * len(tx.inputs))
    hash_outputs = hash256(b"".join(serialize_output(out, network) for out in tx.outputs))

    target = tx.inputs[input_index]
    preimage = (
        struct.pack("<I", tx.version)
        + hash_prevouts
        + hash_sequence
        + serialize_outpoint(target.txid, target.vout)
        + varint(len(script_code))
        + script_code
        + struct.pack("<Q", value)
        + sequence
        + hash_outputs
        + struct.pack("<I", tx.locktime)
        + struct.pack("<I", sighash_type)
    )
    return hash256(preimage)


def _sighash_for_input(
    tx: UnsignedTransaction,
    index: int,
    pubkey: bytes,
    sighash_type: int,
    network: NetworkType | str,
) -> tuple[bytes, bool]:
    """Return (sighash, is_segwit) after checking the key owns the input."""
    utxo = tx.inputs[index]
    script = utxo.locking_script
    kind = scriptpubkey_type(script)
    pubkey_hash = hash160(pubkey)

    if kind == "p2pkh":
        if script[3:23] != pubkey_hash:
            raise TransactionSigningError(f"Key does not own input {index} ({utxo.outpoint})")
        return compute_sighash_legacy(tx, index, script, sighash_type, network), False

    if kind == "p2wpkh":
        if script[2:] != pubkey_hash:
            raise TransactionSigningError(f"Key does not own input {index} ({utxo.outpoint})")
        script_code = p2pkh_script(pubkey_hash)
        sighash = compute_sighash_segwit(tx, index, script_code, utxo.value, sighash_type, network)
        return sighash, True

    raise TransactionSigningError(f"Unsupported input script type {kind!r} at input {index}")


def sign(
    unsigned: UnsignedTransaction,
    key_resolver: KeyResolver,
    network: NetworkType | str = "mainnet",
    sighash_type: int = SIGHASH_ALL,
) -> SignedTransaction:
    """
    Sign every input and finalize the transaction.

    Args:
        unsigned: Assembled transaction
        key_resolver: Maps an input index to the private key that owns it
        network: Network used to resolve output addresses to scripts
        sighash_type: Sighash type (default SIGHASH_ALL)

    Returns:
        SignedTransaction with every unlocking script verified

    Raises:
        TransactionSigningError: key resolution, ownership, or signature failure
    """
    if not unsigned.inputs:
        raise TransactionSigningError("Transaction has no inputs")

    script_sigs: list[bytes] = []
    witnesses: list[list[bytes]] = []
    signatures: list[bytes] = []
    sighashes: list[bytes] = []
    pubkeys: list[bytes] = []

    for index in range(len(unsigned.inputs)):
        try:
            private_key = key_resolver(index)
        except Exception as e:
            raise TransactionSigningError(f"Failed to resolve key for input {index}: {e}") from e

        pubkey = private_key.public_key.format(compressed=True)

        try:
            sighash, segwit = _sighash_for_input(unsigned, index, pubkey, sighash_type, network)
            # Pre-hashed sighash: skip coincurve's own SHA256
            signature = private_key.sign(sighash, hasher=None) + bytes([sighash_type])
        except TransactionSigningError:
            raise
        except Exception as e:
            raise TransactionSigningError(f"Failed to sign input {index}: {e}") from e

        if segwit:
            script_sigs.append(b"")
            witnesses.append([signature, pubkey])
        else:
            script_sigs.append(push_data(signature) + push_data(pubkey))
            witnesses.append([])

        signatures.append(signature)
        sighashes.append(sighash)
        pubkeys.append(pubkey)

    return finalize(unsigned, script_sigs, witnesses, signatures, sighashes, pubkeys, network)


def finalize(
    unsigned: UnsignedTransaction,
    script_sigs: list[bytes],
    witnesses: list[list[bytes]],
    signatures: list[bytes],
    sighashes: list[bytes],
    pubkeys: list[bytes],
    network: NetworkType | str = "mainnet",
) -> SignedTransaction:
    """Verify every input's signature, then serialize."""
    for index, (signature, sighash, pubkey) in enumerate(zip(signatures, sighashes, pubkeys)):
        if not script_sigs[index] and not witnesses[index]:
            raise TransactionSigningError(f"Input {index} has no unlocking data")
        try:
            valid = PublicKey(pubkey).verify(signature[:-1], sighash, hasher=None)
        except Exception as e:
            raise TransactionSigningError(f"Signature check failed for input {index}: {e}") from e
        if not valid:
            raise TransactionSigningError(f"Invalid signature for input {index}")

    raw = serialize_transaction(unsigned, script_sigs, witnesses, network=network)
    txid = compute_txid(unsigned, script_sigs, network=network)

    logger.debug(f"Finalized transaction {txid}: {len(unsigned.inputs)} inputs, {len(raw)} bytes")
    return SignedTransaction(
        unsigned=unsigned,
        script_sigs=script_sigs,
        witnesses=witnesses,
        raw=raw,
        txid=txid,
        signatures=signatures,
    )
