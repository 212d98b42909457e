"""
Immutable wallet context and scoped secret handling.

A WalletContext is passed into each operation instead of being stored as
mutable client state. Private keys are only materialized inside a
``signing_key`` block and wiped when the block exits.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import ExitStack, contextmanager
from typing import Literal

from coincurve import PrivateKey
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from xchainwallet.errors import InvalidMnemonicError
from xchainwallet.models import NetworkType
from xchainwallet.wallet.address import ChainParams, get_chain_params
from xchainwallet.wallet.bip32 import HDKey, mnemonic_to_seed, validate_mnemonic


class SecretHandle:
    """
    Holds 32 bytes of key material in a mutable buffer.

    Usable as a context manager; the buffer is zeroed on exit and any later
    access raises.
    """

    def __init__(self, secret: bytes):
        self._buffer = bytearray(secret)
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def private_key(self) -> PrivateKey:
        if self._released:
            raise RuntimeError("Secret handle has been released")
        return PrivateKey(bytes(self._buffer))

    def release(self) -> None:
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._released = True

    def __enter__(self) -> SecretHandle:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "held"
        return f"SecretHandle(<{state}>)"


class WalletContext(BaseModel):
    """Everything needed to derive addresses and keys for one wallet."""

    model_config = ConfigDict(frozen=True)

    phrase: SecretStr
    passphrase: SecretStr = SecretStr("")
    network: NetworkType = NetworkType.TESTNET
    address_type: Literal["p2pkh", "p2wpkh"] = "p2pkh"
    account: int = Field(default=0, ge=0)

    @field_validator("phrase")
    @classmethod
    def check_phrase(cls, v: SecretStr) -> SecretStr:
        if not validate_mnemonic(v.get_secret_value()):
            raise InvalidMnemonicError("Invalid BIP39 mnemonic phrase")
        return v

    @property
    def chain_params(self) -> ChainParams:
        return get_chain_params(self.network)

    def derivation_path(self, index: int = 0) -> str:
        if index < 0:
            raise ValueError("index must be greater than or equal to zero")
        root = self.chain_params.root_derivation_path(self.address_type, self.account)
        return f"{root}/0/{index}"

    def _derive(self, index: int) -> HDKey:
        seed = mnemonic_to_seed(
            self.phrase.get_secret_value(), self.passphrase.get_secret_value()
        )
        return HDKey.from_seed(seed).derive(self.derivation_path(index))

    def address(self, index: int = 0) -> str:
        return self._derive(index).get_address(self.network, self.address_type)

    @contextmanager
    def signing_key(self, index: int = 0) -> Iterator[SecretHandle]:
        """Derive the private key for ``index``, released on exit."""
        with SecretHandle(self._derive(index).get_private_key_bytes()) as handle:
            yield handle

    @contextmanager
    def key_resolver(
        self, index_by_input: Sequence[int]
    ) -> Iterator[Callable[[int], PrivateKey]]:
        """
        Yield a signer key resolver mapping input position to private key.

        Keys are derived once per wallet index and released together when the
        block exits.
        """
        with ExitStack() as stack:
            handles: dict[int, SecretHandle] = {}
            for wallet_index in sorted(set(index_by_input)):
                handles[wallet_index] = stack.enter_context(self.signing_key(wallet_index))

            def resolve(input_index: int) -> PrivateKey:
                return handles[index_by_input[input_index]].private_key()

            yield resolve
