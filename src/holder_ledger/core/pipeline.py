"""Snapshot run orchestration and the collector filter descriptor."""

import logging
from collections.abc import Iterator

import holder_ledger.sources  # noqa: F401  (registers extractors)
from holder_ledger.core.aggregator import HolderLedger
from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.emitter import RecordEmitter
from holder_ledger.core.errors import MalformedSnapshotData, SnapshotDataMissing, SupplyUnavailable
from holder_ledger.core.models import (
    AuthorityRecord,
    AuthorityTag,
    FilterDescriptor,
    OutputRecord,
    ReconciliationResult,
    SourceKind,
    SourceTag,
)
from holder_ledger.core.reconciliation import ReconciliationReporter
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.core.vaults import VaultClassifier
from holder_ledger.sources.base import BaseExtractor

logger = logging.getLogger(__name__)


class SnapshotRun:
    """
    One aggregation run over a snapshot.

    Workflow:
    1. Check the reference asset supply (fatal when missing)
    2. Run every holder source in enumeration order and fold its mapping
    3. Classify vaults (static list plus discovered custody addresses)
    4. Reconcile parsed holdings against the supply
    5. Emit one record per (owner, source) contribution

    Parameters
    ----------
    context : ExtractionContext
        Snapshot, registry and collaborators of the run
    strict : bool
        Raise on reconciliation mismatch instead of logging a warning
    sources : list[SourceTag] | None
        Restrict the run to these sources (all registered sources when None)

    """

    def __init__(
        self,
        context: ExtractionContext,
        strict: bool = False,
        sources: list[SourceTag] | None = None,
    ) -> None:
        self.context = context
        self.strict = strict
        self.sources = sources
        self.ledger = HolderLedger()
        self.vaults: frozenset[str] = frozenset()
        self.reconciliation: ReconciliationResult | None = None
        self._completed = False

    def extractors(self, kind: SourceKind = SourceKind.HOLDER) -> list[BaseExtractor]:
        """Instantiated extractors of one kind, in enumeration order."""
        extractors = [extractor_class() for extractor_class in SourceRegistry.get_extractors(kind)]
        if self.sources is not None and kind == SourceKind.HOLDER:
            extractors = [extractor for extractor in extractors if extractor.tag in self.sources]
        return extractors

    def run(self) -> ReconciliationResult:
        """
        Extract every source, classify vaults and reconcile.

        Returns
        -------
        ReconciliationResult
            Cross-check of parsed holdings against the supply

        Raises
        ------
        SupplyUnavailable
            If the reference mint is missing from the snapshot
        ExternalMetadataUnavailable
            If live metadata needed by a source cannot be fetched
        ReconciliationMismatch
            In strict mode, if holdings diverge from the supply

        """
        if self._completed:
            msg = "Snapshot run already completed"
            raise RuntimeError(msg)

        registry = self.context.registry
        mint = registry.reference_asset.mint
        supply = self.context.snapshot.mint_supply(mint)
        if supply is None:
            msg = f"Reference mint {mint} missing from snapshot"
            raise SupplyUnavailable(msg)
        logger.info("Reference asset %s supply %d", registry.reference_asset.symbol, supply)

        proportional = []
        for extractor in self.extractors():
            mapping = self._extract(extractor)
            self.ledger.fold(extractor.tag, mapping)
            if extractor.proportional:
                proportional.append(extractor.tag)
            logger.info(
                "Parsed %s: %d owners, sum %d",
                extractor.tag,
                len(mapping),
                self.ledger.source_total(extractor.tag),
            )

        self.vaults = VaultClassifier(registry.vaults).classify(self.context.discovered_vaults)
        reporter = ReconciliationReporter(tolerance=registry.reconciliation.tolerance, strict=self.strict)
        self.reconciliation = reporter.reconcile(self.ledger, self.vaults, supply, proportional)
        self._completed = True
        return self.reconciliation

    def _extract(self, extractor: BaseExtractor) -> dict[str, int]:
        try:
            return extractor.extract(self.context)
        except (SnapshotDataMissing, MalformedSnapshotData) as e:
            logger.warning("%s contributes nothing: %s", extractor.tag, e)
            return {}

    def records(self) -> Iterator[OutputRecord]:
        """
        Lazy output records, running the extraction first if needed.

        Yields
        ------
        OutputRecord
            One record per (owner, source) contribution
        """
        if not self._completed:
            self.run()
        emitter = RecordEmitter(self.ledger, self.vaults, self.context.registry.reference_asset.decimals)
        yield from emitter.records()

    def authority_records(self, tag: AuthorityTag) -> Iterator[AuthorityRecord]:
        """
        Records of an authority-keyed sub-extraction (veMNDE, native stake).

        Raises
        ------
        ValueError
            If no extractor is registered for the tag
        """
        extractor_class = SourceRegistry.get_extractor(tag)
        if extractor_class is None or extractor_class.kind != SourceKind.AUTHORITY:
            msg = f"No authority extractor registered for {tag}"
            raise ValueError(msg)
        extractor = extractor_class()
        mapping = self._extract(extractor)
        logger.info("Parsed %s: %d authorities, sum %d", tag, len(mapping), sum(mapping.values()))
        emitter = RecordEmitter(self.ledger, self.vaults, self.context.registry.reference_asset.decimals)
        yield from emitter.authority_records(tag, mapping)

    def filters(self) -> FilterDescriptor:
        """
        What the collector must capture for the next snapshot.

        Returns
        -------
        FilterDescriptor
            Owner program, mints, pools, vaults and live account data blobs

        Raises
        ------
        ExternalMetadataUnavailable
            If live metadata cannot be fetched
        """
        registry = self.context.registry
        descriptor = FilterDescriptor(account_owners=registry.owner_program, account_mints=[registry.reference_asset.mint])
        for kind in (SourceKind.HOLDER, SourceKind.AUTHORITY):
            for extractor in self.extractors(kind):
                descriptor.merge(extractor.filters(self.context))
        logger.info(
            "Filters: %d mints, %d whirlpools, %d meteora vaults, %d pools, %d data blobs",
            len(descriptor.account_mints),
            len(descriptor.whirlpool_pool_address),
            len(descriptor.meteora_vaults),
            len(descriptor.mercurial_pools),
            len(descriptor.account_data),
        )
        return descriptor
