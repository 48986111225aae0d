"""Core ledger, registry, classification, reconciliation and emission."""

from holder_ledger.core.aggregator import HolderLedger
from holder_ledger.core.emitter import RecordEmitter, format_amount
from holder_ledger.core.errors import (
    ExternalMetadataUnavailable,
    HolderLedgerError,
    MalformedSnapshotData,
    ReconciliationMismatch,
    RegistryError,
    SnapshotDataMissing,
    SupplyUnavailable,
)
from holder_ledger.core.models import (
    AccountRecord,
    AuthorityRecord,
    AuthorityTag,
    FilterContribution,
    FilterDescriptor,
    HolderLedgerEntry,
    MintRecord,
    OutputRecord,
    RawContribution,
    ReconciliationResult,
    SourceKind,
    SourceTag,
)
from holder_ledger.core.reconciliation import ReconciliationReporter
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.core.vaults import VaultClassifier

__all__ = [
    "AccountRecord",
    "AuthorityRecord",
    "AuthorityTag",
    "ExternalMetadataUnavailable",
    "FilterContribution",
    "FilterDescriptor",
    "HolderLedger",
    "HolderLedgerEntry",
    "HolderLedgerError",
    "MalformedSnapshotData",
    "MintRecord",
    "OutputRecord",
    "RawContribution",
    "ReconciliationMismatch",
    "ReconciliationResult",
    "ReconciliationReporter",
    "RecordEmitter",
    "RegistryError",
    "SnapshotDataMissing",
    "SourceKind",
    "SourceRegistry",
    "SourceTag",
    "SupplyUnavailable",
    "VaultClassifier",
    "format_amount",
]
