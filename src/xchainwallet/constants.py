"""
Transaction size and fee constants for UTXO chains.

Sizes are in bytes and follow the legacy (non-segwit) serialization, which
makes every estimate a close upper bound for segwit spends as well.
"""

from __future__ import annotations

# Version (4) + input count (1) + output count (1) + locktime (4)
TX_EMPTY_SIZE = 4 + 1 + 1 + 4  # 10

# Outpoint txid (32) + vout (4) + script length (1) + sequence (4)
TX_INPUT_BASE = 32 + 4 + 1 + 4  # 41

# Typical P2PKH scriptSig: DER signature + sighash byte + compressed pubkey
TX_INPUT_PUBKEYHASH = 107

# Value (8) + script length (1)
TX_OUTPUT_BASE = 8 + 1  # 9

# OP_DUP OP_HASH160 <20> OP_EQUALVERIFY OP_CHECKSIG
TX_OUTPUT_PUBKEYHASH = 25

# Protocol minimum fee in the smallest unit. No estimate is ever lower.
MIN_TX_FEE = 1000

# Standard relay policy limit for data carried in an OP_RETURN output
MAX_MEMO_BYTES = 80

# Standard P2PKH dust limit in Bitcoin Core
STANDARD_DUST_LIMIT = 546

# Fee rate tiers used when the network estimate is unavailable (sat/byte)
DEFAULT_FEE_RATE = 20
DEFAULT_FASTEST_FEE_RATE = 50

SATOSHIS_PER_BTC = 100_000_000

DEFAULT_SEQUENCE = 0xFFFFFFFF
TX_VERSION = 2
SIGHASH_ALL = 1
