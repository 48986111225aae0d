"""Snapshot store adapter and auxiliary row types."""

from holder_ledger.snapshot.store import SYSTEM_PROGRAM, SnapshotStore, create_schema, to_amount

__all__ = [
    "SYSTEM_PROGRAM",
    "SnapshotStore",
    "create_schema",
    "to_amount",
]
