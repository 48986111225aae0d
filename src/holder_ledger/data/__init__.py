"""Address registry and its loader."""

from holder_ledger.data.loader import DEFAULT_REGISTRY_PATH, REGISTRY_ENV, load_registry, registry_path
from holder_ledger.data.registry import (
    AccountDataBlob,
    AddressRegistry,
    DecodedTable,
    Endpoints,
    LendingProtocol,
    PooledVault,
    ReconciliationConfig,
    ReferenceAsset,
    StaticShare,
)

__all__ = [
    "DEFAULT_REGISTRY_PATH",
    "REGISTRY_ENV",
    "AccountDataBlob",
    "AddressRegistry",
    "DecodedTable",
    "Endpoints",
    "LendingProtocol",
    "PooledVault",
    "ReconciliationConfig",
    "ReferenceAsset",
    "StaticShare",
    "load_registry",
    "registry_path",
]
