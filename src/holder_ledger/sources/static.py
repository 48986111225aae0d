"""Vaults wholly owned by a known owner."""

import logging

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import SourceTag
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.sources.base import BaseExtractor, accumulate

logger = logging.getLogger(__name__)


@SourceRegistry.register
class LifinityExtractor(BaseExtractor):
    """Lifinity pool vaults, attributed in full to the registered owner."""

    tag = SourceTag.LIFINITY
    order = 150

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        holdings: dict[str, int] = {}
        for share in context.registry.static_shares.get(str(self.tag), []):
            balance = context.snapshot.account_balance(share.vault)
            if balance is None:
                logger.warning("LIFINITY: vault %s (%s) missing from snapshot, skipping", share.vault, share.name)
                continue
            accumulate(holdings, share.owner, balance)
        return holdings
