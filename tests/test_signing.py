"""
Tests for transaction signing and finalization.
"""

import pytest
from coincurve import PrivateKey, PublicKey

from xchainwallet.errors import TransactionSigningError
from xchainwallet.models import NetworkType
from xchainwallet.wallet.address import address_to_scriptpubkey, p2pkh_script
from xchainwallet.wallet.fees import estimate_fee, estimate_size
from xchainwallet.wallet.models import SpendTarget, UnspentOutput
from xchainwallet.wallet.signing import (
    compute_sighash_legacy,
    compute_sighash_segwit,
    push_data,
    sign,
)
from xchainwallet.wallet.tx_builder import assemble, compute_txid

RECIPIENT = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"


def owned_utxos(context, values, index=0):
    address = context.address(index)
    script = address_to_scriptpubkey(address, context.network)
    return [
        UnspentOutput(f"{i + 1:064x}", i, value, script, address=address)
        for i, value in enumerate(values)
    ]


def build(context, values, index=0):
    utxos = owned_utxos(context, values, index)
    return assemble(utxos, [SpendTarget(RECIPIENT, 10_000)], 1000, context.address(0))


class TestPushData:
    def test_small_push(self):
        assert push_data(b"\x01\x02") == b"\x02\x01\x02"

    def test_pushdata1(self):
        data = b"x" * 100
        assert push_data(data) == bytes([0x4C, 100]) + data

    def test_pushdata2(self):
        data = b"x" * 300
        assert push_data(data)[:3] == bytes([0x4D, 0x2C, 0x01])


class TestSignP2PKH:
    def test_sign_single_input(self, mainnet_context):
        unsigned = build(mainnet_context, [20_000])
        with mainnet_context.key_resolver([0]) as resolver:
            signed = sign(unsigned, resolver, network=NetworkType.MAINNET)

        assert not signed.has_witness
        assert signed.script_sigs[0]
        assert signed.witnesses == [[]]
        assert signed.raw[:4] == bytes.fromhex("02000000")
        assert signed.hex == signed.raw.hex()
        assert signed.txid == compute_txid(unsigned, signed.script_sigs, NetworkType.MAINNET)

    def test_script_sig_layout(self, mainnet_context):
        unsigned = build(mainnet_context, [20_000])
        with mainnet_context.key_resolver([0]) as resolver:
            signed = sign(unsigned, resolver, network=NetworkType.MAINNET)

        script_sig = signed.script_sigs[0]
        sig_len = script_sig[0]
        signature = script_sig[1 : 1 + sig_len]
        pubkey = script_sig[2 + sig_len :]
        assert script_sig[1 + sig_len] == 33
        assert signature[-1] == 0x01  # SIGHASH_ALL
        assert signature == signed.signatures[0]

        sighash = compute_sighash_legacy(
            unsigned, 0, unsigned.inputs[0].locking_script, network=NetworkType.MAINNET
        )
        assert PublicKey(pubkey).verify(signature[:-1], sighash, hasher=None)

    def test_multiple_inputs(self, mainnet_context):
        unsigned = build(mainnet_context, [6000, 7000])
        with mainnet_context.key_resolver([0, 0]) as resolver:
            signed = sign(unsigned, resolver, network=NetworkType.MAINNET)
        assert len(signed.script_sigs) == 2
        assert all(signed.script_sigs)

    def test_deterministic(self, mainnet_context):
        unsigned = build(mainnet_context, [20_000])
        with mainnet_context.key_resolver([0]) as resolver:
            first = sign(unsigned, resolver, network=NetworkType.MAINNET)
        with mainnet_context.key_resolver([0]) as resolver:
            second = sign(unsigned, resolver, network=NetworkType.MAINNET)
        assert first.raw == second.raw


class TestSignP2WPKH:
    def test_sign_segwit_input(self, segwit_context):
        unsigned = build(segwit_context, [20_000])
        with segwit_context.key_resolver([0]) as resolver:
            signed = sign(unsigned, resolver, network=NetworkType.MAINNET)

        assert signed.has_witness
        assert signed.script_sigs == [b""]
        signature, pubkey = signed.witnesses[0]
        assert len(pubkey) == 33
        assert signed.raw[4:6] == bytes([0x00, 0x01])

        script_code = p2pkh_script(unsigned.inputs[0].locking_script[2:])
        sighash = compute_sighash_segwit(
            unsigned, 0, script_code, 20_000, network=NetworkType.MAINNET
        )
        assert PublicKey(pubkey).verify(signature[:-1], sighash, hasher=None)

    def test_txid_excludes_witness(self, segwit_context):
        unsigned = build(segwit_context, [20_000])
        with segwit_context.key_resolver([0]) as resolver:
            signed = sign(unsigned, resolver, network=NetworkType.MAINNET)
        assert signed.txid == compute_txid(unsigned, [b""], NetworkType.MAINNET)


class TestSizeEstimate:
    """The pre-signing estimate must cover the bytes actually signed."""

    RATE = 5

    def sign_all(self, context, recipient, count):
        utxos = owned_utxos(context, [20_000] * count)
        fee = estimate_fee(utxos, self.RATE)
        change = sum(u.value for u in utxos) - 10_000 - fee
        unsigned = assemble(utxos, [SpendTarget(recipient, 10_000)], change, context.address(0))
        with context.key_resolver([0] * count) as resolver:
            signed = sign(unsigned, resolver, network=NetworkType.MAINNET)
        return utxos, fee, signed

    @pytest.mark.parametrize("count", [1, 2, 10])
    def test_p2pkh_upper_bound(self, mainnet_context, count):
        utxos, fee, signed = self.sign_all(mainnet_context, RECIPIENT, count)
        estimated = estimate_size(utxos)
        assert estimated >= len(signed.raw)
        assert estimated - len(signed.raw) <= 5 * count + 6
        assert fee >= self.RATE * len(signed.raw)

    @pytest.mark.parametrize("count", [1, 2, 10])
    def test_p2wpkh_upper_bound(self, segwit_context, count):
        recipient = segwit_context.address(1)
        utxos, fee, signed = self.sign_all(segwit_context, recipient, count)
        assert signed.has_witness
        assert estimate_size(utxos) >= len(signed.raw)
        assert fee >= self.RATE * len(signed.raw)


class TestSigningErrors:
    def test_wrong_key(self, mainnet_context):
        unsigned = build(mainnet_context, [20_000], index=1)
        with mainnet_context.key_resolver([0]) as resolver:
            with pytest.raises(TransactionSigningError, match="does not own"):
                sign(unsigned, resolver, network=NetworkType.MAINNET)

    def test_resolver_failure(self, mainnet_context):
        unsigned = build(mainnet_context, [20_000])

        def resolver(index: int) -> PrivateKey:
            raise KeyError(index)

        with pytest.raises(TransactionSigningError, match="resolve key") as exc_info:
            sign(unsigned, resolver, network=NetworkType.MAINNET)
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_unsupported_script(self, mainnet_context):
        p2sh = bytes([0xA9, 0x14]) + bytes(20) + bytes([0x87])
        utxo = UnspentOutput("11" * 32, 0, 20_000, p2sh)
        unsigned = assemble([utxo], [SpendTarget(RECIPIENT, 10_000)], 0, RECIPIENT)
        with mainnet_context.key_resolver([0]) as resolver:
            with pytest.raises(TransactionSigningError, match="Unsupported"):
                sign(unsigned, resolver, network=NetworkType.MAINNET)

    def test_sighash_index_out_of_range(self, mainnet_context):
        unsigned = build(mainnet_context, [20_000])
        with pytest.raises(TransactionSigningError):
            compute_sighash_legacy(unsigned, 5, b"")
