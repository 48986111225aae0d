"""Concentrated liquidity positions: owners of position NFTs."""

import logging

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import FilterContribution, SourceTag
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.sources.base import BaseExtractor, accumulate

logger = logging.getLogger(__name__)


@SourceRegistry.register
class OrcaWhirlpoolExtractor(BaseExtractor):
    """
    Orca Whirlpool positions.

    Pools come from the live Whirlpool list; their state and positions come
    from the snapshot. Each position's liquidity is converted to token
    amounts by the curve collaborator and the reference side is attributed
    to the holder of the position NFT.

    """

    tag = SourceTag.ORCA
    order = 20
    proportional = True

    def pool_addresses(self, context: ExtractionContext) -> list[str]:
        mint = context.reference_mint
        return [
            listing.address
            for listing in context.metadata.orca_whirlpools()
            if mint in (listing.mint_a, listing.mint_b)
        ]

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        mint = context.reference_mint
        holdings: dict[str, int] = {}
        for address in self.pool_addresses(context):
            pool = context.snapshot.whirlpool_pool(address)
            if pool is None:
                logger.warning("ORCA: whirlpool %s missing from snapshot, skipping", address)
                continue
            if mint not in (pool.token_a, pool.token_b):
                logger.warning("ORCA: whirlpool %s does not hold the reference asset, skipping", address)
                continue
            pool_total = 0
            for position in context.snapshot.whirlpool_positions(address):
                amount_a, amount_b = context.curve_math.amounts_from_liquidity(
                    position.liquidity,
                    pool.sqrt_price,
                    position.sqrt_price_lower,
                    position.sqrt_price_upper,
                )
                amount = amount_a if pool.token_a == mint else amount_b
                accumulate(holdings, position.owner, amount)
                pool_total += amount
            logger.debug("ORCA: whirlpool %s positions hold %d", address, pool_total)
        return holdings

    def filters(self, context: ExtractionContext) -> FilterContribution:
        return FilterContribution(whirlpool_pool_address=self.pool_addresses(context))


@SourceRegistry.register
class RaydiumV3Extractor(BaseExtractor):
    """Raydium AMM v3 positions; tick bounds are converted to square root prices."""

    tag = SourceTag.RAYDIUM_V3
    order = 40
    proportional = True

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        mint = context.reference_mint
        curve = context.curve_math
        holdings: dict[str, int] = {}
        for pool in context.snapshot.raydium_clmm_pools(mint):
            vault = pool.vault_a if pool.mint_a == mint else pool.vault_b
            vault_balance = context.snapshot.account_balance(vault)
            if vault_balance is None:
                logger.warning("RAYDIUM_V3: vault %s of pool %s missing from snapshot, skipping", vault, pool.address)
                continue
            logger.debug("RAYDIUM_V3: pool %s holds %d in vault %s", pool.address, vault_balance, vault)
            pool_total = 0
            for position in context.snapshot.raydium_clmm_positions(pool.address):
                try:
                    lower = curve.sqrt_price_from_tick(position.tick_lower)
                    upper = curve.sqrt_price_from_tick(position.tick_upper)
                except ValueError as e:
                    logger.warning("RAYDIUM_V3: position of %s in pool %s ignored: %s", position.owner, pool.address, e)
                    continue
                amount_a, amount_b = curve.amounts_from_liquidity(position.liquidity, pool.sqrt_price_x64, lower, upper)
                amount = amount_a if pool.mint_a == mint else amount_b
                accumulate(holdings, position.owner, amount)
                pool_total += amount
            logger.debug("RAYDIUM_V3: pool %s positions hold %d", pool.address, pool_total)
        return holdings
