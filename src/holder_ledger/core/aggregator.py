"""Holder ledger: folds per-source mappings into per-owner totals."""

import logging
from collections.abc import Iterator, Mapping

from holder_ledger.core.models import AuthorityTag, HolderLedgerEntry, RawContribution, SourceTag

logger = logging.getLogger(__name__)


class HolderLedger:
    """
    Append-only ledger of contributions per owner.

    The ledger is the sole owner of its entries. Contributions are recorded
    in the order sources are folded; totals are exact integers.

    Examples
    --------
    >>> ledger = HolderLedger()
    >>> ledger.fold(SourceTag.WALLET, {"alice": 5})
    >>> ledger.fold(SourceTag.SABER, {"alice": 2, "bob": 0})
    >>> ledger.total_for("alice")
    7

    """

    def __init__(self) -> None:
        self._entries: dict[str, HolderLedgerEntry] = {}
        self._journal: list[RawContribution] = []
        self._folded: list[SourceTag | AuthorityTag] = []

    def fold(self, source: SourceTag | AuthorityTag, mapping: Mapping[str, int]) -> None:
        """
        Append one source's complete owner -> amount mapping.

        Parameters
        ----------
        source : SourceTag | AuthorityTag
            Source that produced the mapping
        mapping : Mapping[str, int]
            Owner address to raw amount

        Raises
        ------
        ValueError
            If the source was already folded or an amount is not a
            non-negative integer

        """
        if source in self._folded:
            msg = f"Source {source} already folded into the ledger"
            raise ValueError(msg)

        contributions = []
        for owner, amount in mapping.items():
            if isinstance(amount, bool) or not isinstance(amount, int):
                msg = f"{source} produced a non-integer amount for {owner}: {amount!r}"
                raise ValueError(msg)
            if amount < 0:
                msg = f"{source} produced a negative amount for {owner}: {amount}"
                raise ValueError(msg)
            if amount == 0:
                continue
            contributions.append(RawContribution(owner=owner, amount=amount, source=source))

        self._folded.append(source)
        for contribution in contributions:
            entry = self._entries.get(contribution.owner)
            if entry is None:
                entry = self._entries[contribution.owner] = HolderLedgerEntry(owner=contribution.owner)
            entry.contributions.append(contribution)
            entry.total += contribution.amount
            self._journal.append(contribution)

        logger.debug("Folded %d contributions from %s", len(contributions), source)

    def entries(self) -> Iterator[HolderLedgerEntry]:
        """Per-owner entries in first-contribution order (copies)."""
        for entry in self._entries.values():
            yield entry.model_copy(deep=True)

    def contributions(self) -> Iterator[RawContribution]:
        """All contributions in append order."""
        yield from self._journal

    def total_for(self, owner: str) -> int:
        """Sum of the owner's contributions, 0 for unknown owners."""
        entry = self._entries.get(owner)
        return entry.total if entry else 0

    def source_total(self, source: SourceTag | AuthorityTag) -> int:
        """Sum of everything one source contributed."""
        return sum(contribution.amount for contribution in self._journal if contribution.source == source)

    @property
    def sources(self) -> list[SourceTag | AuthorityTag]:
        """Sources folded so far, in fold order."""
        return list(self._folded)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, owner: object) -> bool:
        return owner in self._entries
