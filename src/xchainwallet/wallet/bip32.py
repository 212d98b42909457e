"""
BIP32 HD key derivation with BIP39 mnemonic seeds.
Used for BIP44 (legacy P2PKH) and BIP84 (native segwit) account paths.
"""

from __future__ import annotations

import hashlib
import hmac

from coincurve import PrivateKey, PublicKey
from mnemonic import Mnemonic

from xchainwallet.errors import InvalidMnemonicError
from xchainwallet.models import NetworkType
from xchainwallet.wallet.address import AddressType, pubkey_to_address

# secp256k1 curve order
SECP256K1_N = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)

HARDENED_OFFSET = 0x80000000

_WORDLIST = Mnemonic("english")


class HDKey:
    """
    Hierarchical Deterministic private key.
    Implements BIP32 private derivation.
    """

    def __init__(self, private_key: PrivateKey, chain_code: bytes, depth: int = 0):
        self._private_key = private_key
        self._public_key = private_key.public_key
        self.chain_code = chain_code
        self.depth = depth

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @classmethod
    def from_seed(cls, seed: bytes) -> HDKey:
        """Create master HD key from seed"""
        hmac_result = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        return cls(PrivateKey(hmac_result[:32]), hmac_result[32:], depth=0)

    def derive(self, path: str) -> HDKey:
        """
        Derive child key from path notation (e.g., "m/44'/0'/0'/0/0")
        ' or h indicates hardened derivation
        """
        if not path.startswith("m"):
            raise ValueError("Path must start with 'm'")

        key = self
        for part in path.split("/")[1:]:
            if not part:
                continue

            hardened = part.endswith("'") or part.endswith("h")
            index = int(part.rstrip("'h"))
            if index < 0 or index >= HARDENED_OFFSET:
                raise ValueError(f"Path index out of range: {part}")

            key = key._derive_child(index + HARDENED_OFFSET if hardened else index)

        return key

    def _derive_child(self, index: int) -> HDKey:
        if index >= HARDENED_OFFSET:
            data = b"\x00" + self._private_key.secret + index.to_bytes(4, "big")
        else:
            data = self._public_key.format(compressed=True) + index.to_bytes(4, "big")

        hmac_result = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        key_offset, child_chain = hmac_result[:32], hmac_result[32:]

        offset_int = int.from_bytes(key_offset, "big")
        if offset_int >= SECP256K1_N:
            raise ValueError("Invalid child key")

        parent_key_int = int.from_bytes(self._private_key.secret, "big")
        child_key_int = (parent_key_int + offset_int) % SECP256K1_N
        if child_key_int == 0:
            raise ValueError("Invalid child key")

        child_private_key = PrivateKey(child_key_int.to_bytes(32, "big"))
        return HDKey(child_private_key, child_chain, depth=self.depth + 1)

    def get_private_key_bytes(self) -> bytes:
        return self._private_key.secret

    def get_public_key_bytes(self, compressed: bool = True) -> bytes:
        return self._public_key.format(compressed=compressed)

    def get_address(
        self, network: NetworkType | str = "mainnet", address_type: AddressType = "p2pkh"
    ) -> str:
        return pubkey_to_address(self.get_public_key_bytes(), network, address_type)


def validate_mnemonic(mnemonic: str) -> bool:
    """Check word list membership and the BIP39 checksum."""
    try:
        return _WORDLIST.check(" ".join(mnemonic.split()))
    except (ValueError, LookupError):
        return False


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """
    Convert a BIP39 mnemonic to its 64-byte seed.

    Raises:
        InvalidMnemonicError: if the phrase fails BIP39 validation
    """
    normalized = " ".join(mnemonic.split())
    if not validate_mnemonic(normalized):
        raise InvalidMnemonicError("Invalid BIP39 mnemonic phrase")
    return Mnemonic.to_seed(normalized, passphrase)


def generate_mnemonic(word_count: int = 24) -> str:
    if word_count not in (12, 15, 18, 21, 24):
        raise ValueError("word_count must be one of 12, 15, 18, 21, 24")
    return _WORDLIST.generate(strength=word_count * 32 // 3)
