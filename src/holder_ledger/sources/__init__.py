"""Source extractors; importing this package registers all of them."""

from holder_ledger.sources import authority, concentrated, direct, lending, pooled, static, vault_share
from holder_ledger.sources.base import BaseExtractor, accumulate, proportional_share

__all__ = [
    "BaseExtractor",
    "accumulate",
    "authority",
    "concentrated",
    "direct",
    "lending",
    "pooled",
    "proportional_share",
    "static",
    "vault_share",
]
