"""Vault shares: yield vaults and automated liquidity strategies."""

import logging

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import FilterContribution, SourceTag
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.sharemath import VaultState
from holder_ledger.snapshot.rows import KaminoStrategyRow, MeteoraAmmPoolRow
from holder_ledger.sources.base import BaseExtractor, accumulate, proportional_share

logger = logging.getLogger(__name__)


@SourceRegistry.register
class MeteoraVaultExtractor(BaseExtractor):
    """
    Meteora (Mercurial) yield vaults.

    The vault collaborator computes the amount withdrawable at the snapshot
    timestamp. Wallets holding vault LP get their share directly. AMM pools
    holding vault LP pass their share on to their own LP holders.

    """

    tag = SourceTag.MERCURIAL_METEORA_VAULTS
    order = 80
    proportional = True

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        vaults = context.snapshot.meteora_vaults()
        if not vaults:
            return {}
        mint = context.reference_mint
        pools = [(pool, self._vault_lp_account(pool, mint)) for pool in context.snapshot.meteora_amm_pools()]
        timestamp = context.timestamp

        holdings: dict[str, int] = {}
        for vault in vaults:
            lp_supply = context.snapshot.mint_supply(vault.lp_mint)
            if lp_supply is None:
                logger.warning(
                    "METEORA: LP mint %s of vault %s missing from snapshot, skipping", vault.lp_mint, vault.address
                )
                continue
            if lp_supply == 0:
                continue
            withdrawable = context.vault_math.withdrawable_amount(
                timestamp,
                VaultState(
                    total_amount=vault.total_amount,
                    last_report=vault.last_report,
                    locked_profit_degradation=vault.locked_profit_degradation,
                    last_updated_locked_profit=vault.last_updated_locked_profit,
                ),
            )
            logger.debug("METEORA: vault %s withdrawable %d of %d", vault.address, withdrawable, vault.total_amount)
            self.distribute(context, vault.lp_mint, withdrawable, holdings)

            vault_lp_accounts = {
                account.address: account.amount for account in context.snapshot.token_accounts_by_mint(vault.lp_mint)
            }
            for pool, lp_account in pools:
                if lp_account is None or lp_account not in vault_lp_accounts:
                    continue
                in_pool = proportional_share(vault_lp_accounts[lp_account], withdrawable, lp_supply)
                logger.debug("METEORA: AMM pool %s holds %d through vault %s", pool.address, in_pool, vault.address)
                self.distribute(context, pool.lp_mint, in_pool, holdings)
        return holdings

    @staticmethod
    def _vault_lp_account(pool: MeteoraAmmPoolRow, mint: str) -> str | None:
        if pool.token_a_mint == mint:
            return pool.a_vault_lp
        if pool.token_b_mint == mint:
            return pool.b_vault_lp
        logger.warning("METEORA: AMM pool %s does not hold the reference asset", pool.address)
        return None

    def filters(self, context: ExtractionContext) -> FilterContribution:
        mint = context.reference_mint
        vaults = [vault for vault in context.metadata.meteora_vaults() if vault.token_mint == mint]
        pools = [pool for pool in context.metadata.meteora_amm_pools() if mint in pool.token_mints]
        return FilterContribution(
            account_mints=[vault.lp_mint for vault in vaults] + [pool.lp_mint for pool in pools],
            meteora_vaults=[vault.address for vault in vaults],
            mercurial_pools=[pool.address for pool in pools],
        )


@SourceRegistry.register
class KaminoStrategyExtractor(BaseExtractor):
    """
    Kamino automated liquidity strategies.

    Holdings of a strategy are its idle token vault balance plus the amount
    invested in its concentrated position. Share holders get
    ``floor(shares * holdings / shares_issued)``. The strategy's token vault
    and pool vault on the reference side are reported as custody addresses.

    """

    tag = SourceTag.KAMINO
    order = 160
    proportional = True

    def strategy_holdings(self, context: ExtractionContext, strategy: KaminoStrategyRow) -> int | None:
        """Reference asset held by a strategy, or None when its vault is missing."""
        side_a = strategy.token_a_mint == context.reference_mint
        idle = context.snapshot.account_balance(strategy.token_a_vault if side_a else strategy.token_b_vault)
        if idle is None:
            return None
        curve = context.curve_math
        try:
            lower = curve.sqrt_price_from_tick(strategy.tick_lower)
            upper = curve.sqrt_price_from_tick(strategy.tick_upper)
        except ValueError as e:
            logger.warning("KAMINO: strategy %s position ignored: %s", strategy.address, e)
            return idle
        invested_a, invested_b = curve.amounts_from_liquidity(
            strategy.position_liquidity, strategy.pool_sqrt_price_x64, lower, upper
        )
        return idle + (invested_a if side_a else invested_b)

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        mint = context.reference_mint
        holdings: dict[str, int] = {}
        for strategy in context.snapshot.kamino_strategies(mint):
            if strategy.token_a_mint == mint:
                context.report_vaults([strategy.token_a_vault, strategy.pool_token_vault_a])
            else:
                context.report_vaults([strategy.token_b_vault, strategy.pool_token_vault_b])

            in_strategy = self.strategy_holdings(context, strategy)
            if in_strategy is None:
                logger.warning("KAMINO: token vault of strategy %s missing from snapshot, skipping", strategy.address)
                continue
            if strategy.shares_issued == 0 or in_strategy == 0:
                continue

            share_supply = context.snapshot.mint_supply(strategy.shares_mint)
            if share_supply != strategy.shares_issued:
                logger.warning(
                    "KAMINO: strategy %s issued %d shares but mint %s supply is %s",
                    strategy.address,
                    strategy.shares_issued,
                    strategy.shares_mint,
                    share_supply,
                )
            logger.debug("KAMINO: strategy %s holds %d", strategy.address, in_strategy)
            for account in self.holders(context, strategy.shares_mint):
                accumulate(holdings, account.owner, proportional_share(account.amount, in_strategy, strategy.shares_issued))
        return holdings

    def filters(self, context: ExtractionContext) -> FilterContribution:
        mint = context.reference_mint
        return FilterContribution(
            account_mints=[
                strategy.shares_mint
                for strategy in context.metadata.kamino_strategies()
                if mint in (strategy.token_a_mint, strategy.token_b_mint)
            ]
        )
