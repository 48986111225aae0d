"""Live metadata collaborator: protocol pool lists and Solana RPC lookups."""

from holder_ledger.metadata.backoff import BackoffPolicy
from holder_ledger.metadata.client import DEFAULT_RPC_URL, RPC_URL_ENV, MetadataClient, MetadataSource
from holder_ledger.metadata.models import (
    KaminoStrategyListing,
    MeteoraPoolListing,
    MeteoraVaultListing,
    RaydiumPoolListing,
    WhirlpoolListing,
)

__all__ = [
    "BackoffPolicy",
    "DEFAULT_RPC_URL",
    "RPC_URL_ENV",
    "KaminoStrategyListing",
    "MetadataClient",
    "MetadataSource",
    "MeteoraPoolListing",
    "MeteoraVaultListing",
    "RaydiumPoolListing",
    "WhirlpoolListing",
]
