"""
Address generation, validation and scriptPubKey conversion for Bitcoin-family chains.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Literal

import base58
from bip_utils import (
    Bech32ChecksumError,
    Bech32Decoder,
    SegwitBech32Decoder,
    SegwitBech32Encoder,
)

from xchainwallet.models import NetworkType

AddressType = Literal["p2pkh", "p2wpkh"]

ScriptType = Literal["p2pkh", "p2sh", "p2wpkh", "p2wsh", "p2tr", "nulldata", "unknown"]

OP_RETURN = 0x6A


@dataclass(frozen=True)
class ChainParams:
    """Per-network encoding parameters."""

    network: NetworkType
    p2pkh_prefix: int
    p2sh_prefix: int
    wif_prefix: int
    bech32_hrp: str
    coin_type: int

    def root_derivation_path(self, address_type: AddressType = "p2pkh", account: int = 0) -> str:
        """BIP44 (legacy) or BIP84 (native segwit) account path."""
        purpose = 84 if address_type == "p2wpkh" else 44
        return f"m/{purpose}'/{self.coin_type}'/{account}'"


MAINNET = ChainParams(NetworkType.MAINNET, 0x00, 0x05, 0x80, "bc", 0)
TESTNET = ChainParams(NetworkType.TESTNET, 0x6F, 0xC4, 0xEF, "tb", 1)
SIGNET = ChainParams(NetworkType.SIGNET, 0x6F, 0xC4, 0xEF, "tb", 1)
REGTEST = ChainParams(NetworkType.REGTEST, 0x6F, 0xC4, 0xEF, "bcrt", 1)

_PARAMS = {p.network: p for p in (MAINNET, TESTNET, SIGNET, REGTEST)}


def get_chain_params(network: NetworkType | str) -> ChainParams:
    return _PARAMS[NetworkType(network)]


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def pubkey_to_p2pkh_address(pubkey: bytes, network: NetworkType | str = "mainnet") -> str:
    if len(pubkey) != 33:
        raise ValueError(f"Invalid compressed pubkey length: {len(pubkey)}")
    params = get_chain_params(network)
    payload = bytes([params.p2pkh_prefix]) + hash160(pubkey)
    return base58.b58encode_check(payload).decode("ascii")


def pubkey_to_p2wpkh_address(pubkey: bytes, network: NetworkType | str = "mainnet") -> str:
    """BIP173 bech32 encoding of the compressed public key hash."""
    if len(pubkey) != 33:
        raise ValueError(f"Invalid compressed pubkey length: {len(pubkey)}")
    params = get_chain_params(network)
    return SegwitBech32Encoder.Encode(params.bech32_hrp, 0, hash160(pubkey))


def pubkey_to_address(
    pubkey: bytes, network: NetworkType | str = "mainnet", address_type: AddressType = "p2pkh"
) -> str:
    if address_type == "p2wpkh":
        return pubkey_to_p2wpkh_address(pubkey, network)
    return pubkey_to_p2pkh_address(pubkey, network)


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    # OP_DUP OP_HASH160 PUSH20 <pkh> OP_EQUALVERIFY OP_CHECKSIG
    return b"\x76\xa9\x14" + pubkey_hash + b"\x88\xac"


def p2wpkh_script(pubkey_hash: bytes) -> bytes:
    return bytes([0x00, 0x14]) + pubkey_hash


def witness_script(witver: int, witprog: bytes) -> bytes:
    """OP_n PUSH <program>, with OP_0 for version 0."""
    return bytes([0x50 + witver if witver else 0x00, len(witprog)]) + witprog


def _decode_segwit(address: str, hrp: str) -> tuple[int, bytes] | None:
    if not address.lower().startswith(hrp + "1"):
        return None
    if address not in (address.lower(), address.upper()):
        raise ValueError(f"Mixed-case segwit address: {address}")
    try:
        witver, witprog = SegwitBech32Decoder.Decode(hrp, address)
    except (ValueError, Bech32ChecksumError) as e:
        raise ValueError(f"Invalid segwit address {address}: {e}") from e
    # Version 0 must carry a bech32 checksum and later versions bech32m
    if SegwitBech32Encoder.Encode(hrp, witver, witprog) != address.lower():
        raise ValueError(f"Wrong checksum variant for witness v{witver}: {address}")
    return witver, bytes(witprog)


def address_to_scriptpubkey(address: str, network: NetworkType | str = "mainnet") -> bytes:
    """
    Convert an address to its scriptPubKey.

    Supports P2PKH, P2SH and every segwit version (P2WPKH, P2WSH, P2TR and
    future witness programs) for the given network.

    Raises:
        ValueError: if the address does not decode for this network
    """
    params = get_chain_params(network)

    segwit = _decode_segwit(address, params.bech32_hrp)
    if segwit is not None:
        return witness_script(*segwit)

    decoded = base58.b58decode_check(address)
    if len(decoded) != 21:
        raise ValueError(f"Invalid base58 payload length: {len(decoded)}")
    version, payload = decoded[0], decoded[1:]

    if version == params.p2pkh_prefix:
        return p2pkh_script(payload)
    if version == params.p2sh_prefix:
        # OP_HASH160 <20-byte-scripthash> OP_EQUAL
        return bytes([0xA9, 0x14]) + payload + bytes([0x87])

    raise ValueError(f"Address version {version:#04x} does not belong to {params.network.value}")


def validate_address(address: str, network: NetworkType | str = "mainnet") -> bool:
    if not address:
        return False
    try:
        address_to_scriptpubkey(address, network)
    except ValueError:
        return False
    return True


def scriptpubkey_type(script: bytes) -> ScriptType:
    if len(script) == 25 and script[:3] == b"\x76\xa9\x14" and script[23:] == b"\x88\xac":
        return "p2pkh"
    if len(script) == 23 and script[:2] == b"\xa9\x14" and script[22] == 0x87:
        return "p2sh"
    if len(script) == 22 and script[:2] == b"\x00\x14":
        return "p2wpkh"
    if len(script) == 34 and script[:2] == b"\x00\x20":
        return "p2wsh"
    if len(script) == 34 and script[:2] == b"\x51\x20":
        return "p2tr"
    if script[:1] == bytes([OP_RETURN]):
        return "nulldata"
    return "unknown"


def scriptpubkey_to_address(script: bytes, network: NetworkType | str = "mainnet") -> str:
    """Inverse of address_to_scriptpubkey for the standard script types."""
    params = get_chain_params(network)
    kind = scriptpubkey_type(script)

    if kind == "p2pkh":
        return base58.b58encode_check(bytes([params.p2pkh_prefix]) + script[3:23]).decode("ascii")
    if kind == "p2sh":
        return base58.b58encode_check(bytes([params.p2sh_prefix]) + script[2:22]).decode("ascii")
    if kind in ("p2wpkh", "p2wsh", "p2tr"):
        witver = 1 if kind == "p2tr" else 0
        return SegwitBech32Encoder.Encode(params.bech32_hrp, witver, script[2:])

    raise ValueError(f"Unsupported scriptPubKey: {script.hex()}")


def validate_bech32_address(address: str, hrp: str, data_length: int = 20) -> bool:
    """
    Validate a plain bech32 account address (e.g. cosmos1...).

    Unlike segwit addresses there is no witness version; the whole data part
    is the account hash.
    """
    if not address or not address.lower().startswith(hrp + "1"):
        return False
    try:
        payload = Bech32Decoder.Decode(hrp, address)
    except (ValueError, Bech32ChecksumError):
        return False
    return len(payload) == data_length
