"""
UTXO wallet core: coin selection, fee estimation, assembly and signing.

Nothing in this package performs network I/O.
"""
