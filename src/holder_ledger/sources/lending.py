"""Lending collateral: collector-decoded position tables and decoded obligations."""

import logging

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import FilterContribution, SourceTag
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.data.registry import BankIndexLookup, DecodedTable, LendingProtocol
from holder_ledger.sharemath import encode_pubkey
from holder_ledger.sharemath.bank import I80F48_SIZE, anchor_discriminator, i80f48_to_str
from holder_ledger.snapshot.rows import LendingReserveRow
from holder_ledger.sources.base import BaseExtractor, accumulate

logger = logging.getLogger(__name__)


class DecodedPositionExtractor(BaseExtractor):
    """
    Sum per-owner rows of a table the collector decoded from protocol accounts.

    The collector needs the protocol's live reserve/bank data to decode
    positions, so ``filters`` ships those accounts as base64 blobs.

    """

    def table_config(self, context: ExtractionContext) -> DecodedTable | None:
        return context.registry.decoded_tables.get(str(self.tag))

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        config = self.table_config(context)
        if config is None:
            logger.warning("%s: no decoded table configured in the address registry", self.tag)
            return {}
        holdings: dict[str, int] = {}
        for row in context.snapshot.decoded_positions(config.table):
            accumulate(holdings, row.owner, row.amount)
        return holdings

    def filters(self, context: ExtractionContext) -> FilterContribution:
        config = self.table_config(context)
        if config is None:
            return FilterContribution()
        return FilterContribution(
            account_mints=list(config.filter_mints),
            account_data=self.fetch_account_data(context, config.account_data),
        )


@SourceRegistry.register
class SolendExtractor(DecodedPositionExtractor):
    tag = SourceTag.SOLEND
    order = 50


@SourceRegistry.register
class DriftExtractor(DecodedPositionExtractor):
    tag = SourceTag.DRIFT
    order = 120


@SourceRegistry.register
class MarginfiExtractor(DecodedPositionExtractor):
    tag = SourceTag.MRGN
    order = 130


@SourceRegistry.register
class MangoExtractor(DecodedPositionExtractor):
    """Mango deposits; the collector also needs the reference asset bank's deposit index."""

    tag = SourceTag.MANGO
    order = 140

    def filters(self, context: ExtractionContext) -> FilterContribution:
        contribution = super().filters(context)
        config = self.table_config(context)
        if config is not None and config.bank_index is not None:
            contribution.account_data[config.bank_index.name] = self.bank_deposit_index(context, config.bank_index)
        return contribution

    def bank_deposit_index(self, context: ExtractionContext, lookup: BankIndexLookup) -> str:
        """
        Deposit index of the group's bank for the reference asset.

        Returns
        -------
        str
            Decimal rendering of the index, or an empty string when the
            group has no bank for the asset

        """
        banks = context.metadata.program_accounts(
            lookup.program_id,
            {
                0: encode_pubkey(anchor_discriminator(lookup.account_name)),
                lookup.group_offset: lookup.group,
                lookup.mint_offset: context.reference_mint,
            },
            offset=lookup.index_offset,
            length=I80F48_SIZE,
        )
        if not banks:
            logger.warning("MANGO: group %s has no bank for %s", lookup.group, context.reference_mint)
            return ""
        address, data = banks[0]
        index = i80f48_to_str(data)
        logger.debug("MANGO: bank %s deposit index %s", address, index)
        return index


class LendingObligationExtractor(BaseExtractor):
    """
    Sum obligation deposits in reserves of the reference asset.

    Raw obligation accounts of the lending program are read from the
    snapshot and decoded; accounts of the wrong size, in another lending
    market or with no deposit in an accepted reserve contribute nothing.

    """

    def protocol(self, context: ExtractionContext) -> LendingProtocol | None:
        return context.registry.lending.get(str(self.tag))

    def lending_markets(self, context: ExtractionContext, protocol: LendingProtocol) -> set[str]:
        return set(protocol.lending_markets)

    def reserves(
        self, context: ExtractionContext, protocol: LendingProtocol, markets: set[str]
    ) -> dict[str, LendingReserveRow | None]:
        """Accepted reserves, mapped to their state when the amount needs conversion."""
        return dict.fromkeys(protocol.reserves)

    def deposit_amount(self, amount: int, reserve: LendingReserveRow | None) -> int:
        """Reference asset amount of a deposit."""
        return amount

    def extract(self, context: ExtractionContext) -> dict[str, int]:
        protocol = self.protocol(context)
        if protocol is None:
            logger.warning("%s: no lending protocol configured in the address registry", self.tag)
            return {}
        markets = self.lending_markets(context, protocol)
        reserves = self.reserves(context, protocol, markets)
        if not reserves:
            logger.warning("%s: no reserve of the reference asset found", self.tag)
            return {}

        decoder = context.decoder_for(str(self.tag), protocol.layout)
        holdings: dict[str, int] = {}
        decoded = 0
        for account in context.snapshot.program_accounts(protocol.table, protocol.program_id):
            if len(account.data) != decoder.data_size:
                continue
            obligation = decoder.decode(account.data)
            if obligation is None or obligation.lending_market not in markets:
                continue
            decoded += 1
            for deposit in obligation.deposits:
                if deposit.reserve in reserves:
                    amount = self.deposit_amount(deposit.amount, reserves[deposit.reserve])
                    accumulate(holdings, obligation.owner, amount)
        logger.debug("%s: %d obligations decoded in %d markets", self.tag, decoded, len(markets))
        return holdings


@SourceRegistry.register
class PortExtractor(LendingObligationExtractor):
    """Port Finance obligations; deposited amounts are taken as is."""

    tag = SourceTag.PORT
    order = 110


@SourceRegistry.register
class KaminoLendingExtractor(LendingObligationExtractor):
    """
    Kamino Lending obligations.

    Markets come from the live Kamino API and reserves of the reference
    asset from the snapshot. Deposits are collateral tokens, converted with
    ``floor(collateral * total_liquidity / collateral_mint_supply)``.

    """

    tag = SourceTag.KAMINO_LENDING
    order = 170
    proportional = True

    def lending_markets(self, context: ExtractionContext, protocol: LendingProtocol) -> set[str]:
        return set(protocol.lending_markets) | set(context.metadata.kamino_markets())

    def reserves(
        self, context: ExtractionContext, protocol: LendingProtocol, markets: set[str]
    ) -> dict[str, LendingReserveRow | None]:
        reserves: dict[str, LendingReserveRow | None] = {
            reserve.address: reserve
            for reserve in context.snapshot.lending_reserves(context.reference_mint)
            if reserve.lending_market in markets
        }
        for address in protocol.reserves:
            reserves.setdefault(address, None)
        return reserves

    def deposit_amount(self, amount: int, reserve: LendingReserveRow | None) -> int:
        if reserve is None or reserve.collateral_mint_supply == 0:
            return amount
        return amount * reserve.total_liquidity // reserve.collateral_mint_supply
