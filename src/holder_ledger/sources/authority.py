"""Authority-keyed sub-extractions: vote escrow and native stake."""

from abc import abstractmethod

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import AuthorityTag, FilterContribution, SourceKind
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.snapshot.rows import AuthorityAmountRow
from holder_ledger.sources.base import BaseExtractor, accumulate


class AuthorityExtractor(BaseExtractor):
    """Sum amounts per authority; these never enter the holder ledger."""

    kind = SourceKind.AUTHORITY

    @abstractmethod
    def rows(self, context: ExtractionContext) -> list[AuthorityAmountRow]:
        """Amount rows keyed by authority."""
        ...

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        amounts: dict[str, int] = {}
        for row in self.rows(context):
            accumulate(amounts, row.authority, row.amount)
        return amounts

    def filters(self, context: ExtractionContext) -> FilterContribution:
        blobs = context.registry.authority_data.get(str(self.tag), {})
        return FilterContribution(account_data=self.fetch_account_data(context, blobs))


@SourceRegistry.register
class VeMndeExtractor(AuthorityExtractor):
    """Voting power of veMNDE voter authorities."""

    tag = AuthorityTag.VEMNDE
    order = 1000

    def rows(self, context: ExtractionContext) -> list[AuthorityAmountRow]:
        return context.snapshot.vemnde_accounts()


@SourceRegistry.register
class NativeStakeExtractor(AuthorityExtractor):
    """Native stake per withdraw authority."""

    tag = AuthorityTag.NATIVE_STAKE
    order = 1010

    def rows(self, context: ExtractionContext) -> list[AuthorityAmountRow]:
        return context.snapshot.native_stake_accounts()
