"""Holder ledger: per-owner token holdings reconstructed from a Solana ledger snapshot."""

__version__ = "0.1.0"
