"""Per-run state shared with extractors."""

import logging

from holder_ledger.core.errors import ExternalMetadataUnavailable
from holder_ledger.data.registry import AddressRegistry
from holder_ledger.metadata.client import MetadataSource
from holder_ledger.sharemath import (
    ConcentratedLiquidityMath,
    CurveMath,
    LockedProfitVaultMath,
    ObligationDecoder,
    ObligationLayout,
    StructObligationDecoder,
    VaultMath,
)
from holder_ledger.snapshot.store import SnapshotStore

logger = logging.getLogger(__name__)


class ExtractionContext:
    """
    Snapshot, registry and collaborators of one run.

    Parameters
    ----------
    registry : AddressRegistry
        Address registry in effect
    snapshot : SnapshotStore | None
        Open snapshot; None when only building filters
    metadata : MetadataSource | None
        Live metadata collaborator; None for offline runs
    slot : int | None
        Slot of the snapshot
    timestamp : int | None
        Wall-clock time of the slot; looked up lazily when None
    curve_math : CurveMath | None
        Concentrated liquidity math
    vault_math : VaultMath | None
        Yield vault math
    decoders : dict[str, ObligationDecoder] | None
        Obligation decoders by source tag, overriding the registry layouts

    """

    def __init__(
        self,
        registry: AddressRegistry,
        snapshot: SnapshotStore | None = None,
        metadata: MetadataSource | None = None,
        slot: int | None = None,
        timestamp: int | None = None,
        curve_math: CurveMath | None = None,
        vault_math: VaultMath | None = None,
        decoders: dict[str, ObligationDecoder] | None = None,
    ) -> None:
        self.registry = registry
        self._snapshot = snapshot
        self._metadata = metadata
        self.slot = slot
        self._timestamp = timestamp
        self.curve_math = curve_math or ConcentratedLiquidityMath()
        self.vault_math = vault_math or LockedProfitVaultMath()
        self.decoders: dict[str, ObligationDecoder] = dict(decoders or {})
        self._discovered_vaults: dict[str, None] = {}

    @property
    def reference_mint(self) -> str:
        """Mint of the reference asset."""
        return self.registry.reference_asset.mint

    @property
    def snapshot(self) -> SnapshotStore:
        """The open snapshot."""
        if self._snapshot is None:
            msg = "No snapshot attached to this run"
            raise RuntimeError(msg)
        return self._snapshot

    @property
    def metadata(self) -> MetadataSource:
        """
        The live metadata collaborator.

        Raises
        ------
        ExternalMetadataUnavailable
            If the run has no metadata collaborator

        """
        if self._metadata is None:
            msg = "Live metadata is required but the run is offline"
            raise ExternalMetadataUnavailable(msg)
        return self._metadata

    @property
    def timestamp(self) -> int:
        """
        Wall-clock time of the snapshot slot, fetched once.

        Raises
        ------
        ExternalMetadataUnavailable
            If the time is neither given nor obtainable
        """
        if self._timestamp is None:
            if self.slot is None:
                msg = "Snapshot timestamp needed but neither slot nor timestamp is known"
                raise ExternalMetadataUnavailable(msg)
            self._timestamp = self.metadata.block_time(self.slot)
            logger.info("Snapshot slot %d has timestamp %d", self.slot, self._timestamp)
        return self._timestamp

    def decoder_for(self, tag: str, layout: ObligationLayout) -> ObligationDecoder:
        """Obligation decoder of a lending source, built from its layout unless overridden."""
        decoder = self.decoders.get(tag)
        if decoder is None:
            decoder = self.decoders[tag] = StructObligationDecoder(layout)
        return decoder

    def report_vaults(self, addresses: list[str]) -> None:
        """Record custody addresses discovered while extracting."""
        for address in addresses:
            self._discovered_vaults.setdefault(address, None)

    @property
    def discovered_vaults(self) -> list[str]:
        """Custody addresses discovered so far, in discovery order."""
        return list(self._discovered_vaults)
