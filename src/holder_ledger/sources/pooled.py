"""Proportional pool shares: LP holders own a fraction of the pool's reference asset vault."""

import logging

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import FilterContribution, SourceTag
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.data.registry import PooledVault
from holder_ledger.sources.base import BaseExtractor

logger = logging.getLogger(__name__)


class PooledShareExtractor(BaseExtractor):
    """
    Attribute each pool's vault balance to LP holders pro rata.

    For each pool, ``floor(lp_amount * vault_balance / lp_supply)`` goes to
    each LP holder. Pools whose vault or LP mint is absent from the snapshot
    are skipped with a warning.

    """

    proportional = True

    def pools(self, context: ExtractionContext) -> list[PooledVault]:
        """Pools of this source, from the address registry by default."""
        return context.registry.pools.get(str(self.tag), [])

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        holdings: dict[str, int] = {}
        for pool in self.pools(context):
            vault_balance = context.snapshot.account_balance(pool.vault)
            if vault_balance is None:
                logger.warning("%s: vault %s of pool %s missing from snapshot, skipping", self.tag, pool.vault, pool.name)
                continue
            logger.debug("%s: pool %s holds %d in vault %s", self.tag, pool.name, vault_balance, pool.vault)
            self.distribute(context, pool.lp, vault_balance, holdings)
        return holdings

    def filters(self, context: ExtractionContext) -> FilterContribution:
        return FilterContribution(account_mints=[pool.lp for pool in self.pools(context)])


@SourceRegistry.register
class RaydiumV2Extractor(PooledShareExtractor):
    """Raydium constant-product pools, listed by the live Raydium API."""

    tag = SourceTag.RAYDIUM_V2
    order = 30

    def pools(self, context: ExtractionContext) -> list[PooledVault]:
        mint = context.reference_mint
        pools = []
        for listing in context.metadata.raydium_liquidity_pools():
            if listing.base_mint == mint:
                vault = listing.base_vault
            elif listing.quote_mint == mint:
                vault = listing.quote_vault
            else:
                continue
            pools.append(PooledVault(name=listing.lp_mint, lp=listing.lp_mint, vault=vault))
        logger.debug("Raydium lists %d pools with the reference asset", len(pools))
        return pools


@SourceRegistry.register
class MercurialStableSwapExtractor(PooledShareExtractor):
    """Mercurial stable swap pools."""

    tag = SourceTag.MERCURIAL_STABLE_SWAP_POOL
    order = 70


@SourceRegistry.register
class SaberExtractor(PooledShareExtractor):
    """Saber stable swap pools."""

    tag = SourceTag.SABER
    order = 90
