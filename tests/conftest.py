"""
Pytest configuration and fixtures for wallet tests.
"""

import pytest

from xchainwallet.context import WalletContext
from xchainwallet.models import NetworkType
from xchainwallet.wallet.address import p2pkh_script
from xchainwallet.wallet.models import UnspentOutput

TXID_A = "aa" * 32
TXID_B = "bb" * 32
TXID_C = "cc" * 32


@pytest.fixture
def sample_mnemonic() -> str:
    """Test mnemonic (BIP39 test vector)"""
    return (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )


@pytest.fixture
def pkh_script() -> bytes:
    """A 25-byte P2PKH locking script."""
    return p2pkh_script(bytes(20))


@pytest.fixture
def sample_pool(pkh_script: bytes) -> list[UnspentOutput]:
    """Two confirmed UTXOs (23873 total) around one large unconfirmed UTXO."""
    return [
        UnspentOutput(TXID_A, 0, 8800, pkh_script, confirmed=True),
        UnspentOutput(TXID_B, 1, 495777, pkh_script, confirmed=False),
        UnspentOutput(TXID_C, 0, 15073, pkh_script, confirmed=True),
    ]


@pytest.fixture
def mainnet_context(sample_mnemonic: str) -> WalletContext:
    return WalletContext(phrase=sample_mnemonic, network=NetworkType.MAINNET)


@pytest.fixture
def segwit_context(sample_mnemonic: str) -> WalletContext:
    return WalletContext(
        phrase=sample_mnemonic, network=NetworkType.MAINNET, address_type="p2wpkh"
    )


@pytest.fixture
def testnet_context(sample_mnemonic: str) -> WalletContext:
    return WalletContext(phrase=sample_mnemonic, network=NetworkType.TESTNET)
