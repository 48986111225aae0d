"""Direct holdings: wallets holding the reference asset or a one-to-one wrapper of it."""

import logging

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import FilterContribution, SourceTag
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.sources.base import BaseExtractor, accumulate

logger = logging.getLogger(__name__)


class DirectHoldingExtractor(BaseExtractor):
    """
    Sum token accounts of one mint owned by end-user wallets.

    Subclasses name the mint through ``mint_for``.

    """

    def mint_for(self, context: ExtractionContext) -> str | None:
        """Mint held by this source, from the registry's direct mints by default."""
        return context.registry.direct_mints.get(str(self.tag))

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        mint = self.mint_for(context)
        if mint is None:
            logger.warning("%s: no mint configured in the address registry", self.tag)
            return {}
        holdings: dict[str, int] = {}
        for account in self.holders(context, mint):
            accumulate(holdings, account.owner, account.amount)
        return holdings

    def filters(self, context: ExtractionContext) -> FilterContribution:
        mint = self.mint_for(context)
        return FilterContribution(account_mints=[mint] if mint else [])


@SourceRegistry.register
class WalletExtractor(DirectHoldingExtractor):
    """Reference asset held directly in wallets."""

    tag = SourceTag.WALLET
    order = 10

    def mint_for(self, context: ExtractionContext) -> str | None:
        return context.reference_mint


@SourceRegistry.register
class TulipExtractor(DirectHoldingExtractor):
    """Tulip's tumSOL, redeemable one-to-one."""

    tag = SourceTag.TULIP
    order = 60


@SourceRegistry.register
class FriktionExtractor(DirectHoldingExtractor):
    """Friktion volt shares, redeemable one-to-one."""

    tag = SourceTag.FRIKTION
    order = 100
