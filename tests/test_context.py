"""
Tests for WalletContext and scoped secret handling.
"""

import pytest
from pydantic import ValidationError

from xchainwallet.context import SecretHandle, WalletContext
from xchainwallet.errors import InvalidMnemonicError
from xchainwallet.models import NetworkType


class TestSecretHandle:
    def test_release_zeroes_buffer(self):
        handle = SecretHandle(b"\x01" * 32)
        assert handle.private_key().secret == b"\x01" * 32

        handle.release()
        assert handle.released
        assert bytes(handle._buffer) == bytes(32)
        with pytest.raises(RuntimeError):
            handle.private_key()

    def test_context_manager_releases(self):
        with SecretHandle(b"\x02" * 32) as handle:
            assert not handle.released
        assert handle.released

    def test_repr_hides_secret(self):
        handle = SecretHandle(b"\x03" * 32)
        assert "03" not in repr(handle)
        assert "held" in repr(handle)


class TestWalletContext:
    def test_invalid_phrase(self):
        with pytest.raises(InvalidMnemonicError):
            WalletContext(phrase="cat")

    def test_frozen(self, mainnet_context):
        with pytest.raises(ValidationError):
            mainnet_context.network = NetworkType.TESTNET

    def test_phrase_not_in_repr(self, mainnet_context, sample_mnemonic):
        assert sample_mnemonic not in repr(mainnet_context)
        assert "abandon" not in str(mainnet_context)

    def test_defaults_to_testnet(self, sample_mnemonic):
        context = WalletContext(phrase=sample_mnemonic)
        assert context.network == NetworkType.TESTNET
        assert context.derivation_path(0) == "m/44'/1'/0'/0/0"
        assert context.address(0)[0] in "mn"

    def test_derivation_paths(self, mainnet_context, segwit_context):
        assert mainnet_context.derivation_path(3) == "m/44'/0'/0'/0/3"
        assert segwit_context.derivation_path(0) == "m/84'/0'/0'/0/0"

    def test_account(self, sample_mnemonic):
        context = WalletContext(phrase=sample_mnemonic, network="mainnet", account=2)
        assert context.derivation_path(1) == "m/44'/0'/2'/0/1"

    def test_negative_index(self, mainnet_context):
        with pytest.raises(ValueError, match="greater than or equal to zero"):
            mainnet_context.address(-1)

    def test_known_addresses(self, mainnet_context, segwit_context):
        assert mainnet_context.address(0) == "1LqBGSKuX5yYUonjxT5qGfpUsXKYYWeabA"
        assert segwit_context.address(0) == "bc1qcr8te4kr609gcawutmrza0j4xv80jy8z306fyu"

    def test_indexes_differ(self, mainnet_context):
        assert mainnet_context.address(0) != mainnet_context.address(1)

    def test_passphrase_changes_address(self, sample_mnemonic):
        plain = WalletContext(phrase=sample_mnemonic, network="mainnet")
        protected = WalletContext(phrase=sample_mnemonic, passphrase="extra", network="mainnet")
        assert plain.address(0) != protected.address(0)

    def test_signing_key_released_after_block(self, mainnet_context):
        with mainnet_context.signing_key(0) as handle:
            pubkey = handle.private_key().public_key.format(compressed=True)
            assert len(pubkey) == 33
        assert handle.released

    def test_key_resolver(self, mainnet_context):
        with mainnet_context.key_resolver([0, 1, 0]) as resolve:
            first = resolve(0).secret
            assert resolve(2).secret == first
            assert resolve(1).secret != first
        with pytest.raises(RuntimeError):
            resolve(0)
