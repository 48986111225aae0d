"""Base source extractor class with common functionality."""

import base64
import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.models import AccountRecord, AuthorityTag, FilterContribution, SourceKind, SourceTag
from holder_ledger.data.registry import AccountDataBlob

logger = logging.getLogger(__name__)


def proportional_share(holding: int, pooled: int, share_supply: int) -> int:
    """
    Holder's part of a pooled amount, rounded down.

    Parameters
    ----------
    holding : int
        Shares (LP tokens) held
    pooled : int
        Reference asset amount backing all shares
    share_supply : int
        Total shares issued

    Returns
    -------
    int
        ``floor(holding * pooled / share_supply)``

    Raises
    ------
    ZeroDivisionError
        If no shares are issued; callers skip such pools first

    """
    if share_supply == 0:
        msg = "Share supply is zero"
        raise ZeroDivisionError(msg)
    return holding * pooled // share_supply


def accumulate(mapping: dict[str, int], owner: str, amount: int) -> None:
    """Add an amount to an owner's running total, ignoring zeros."""
    if amount:
        mapping[owner] = mapping.get(owner, 0) + amount


class BaseExtractor(ABC):
    """
    Abstract base class for source extractors.

    All extractors should inherit from this class and implement ``extract``.

    Attributes
    ----------
    tag : SourceTag | AuthorityTag
        Unique source identifier (must be set in subclass)
    order : int
        Position in the enumeration order (must be set in subclass)
    kind : SourceKind
        Holder source or authority-keyed sub-extraction
    proportional : bool
        Whether contributions are floored fractions of a pooled amount

    """

    tag: ClassVar[SourceTag | AuthorityTag | None] = None
    order: ClassVar[int] = -1
    kind: ClassVar[SourceKind] = SourceKind.HOLDER
    proportional: ClassVar[bool] = False

    def __init__(self) -> None:
        if not self.tag:
            msg = f"{self.__class__.__name__} must define 'tag' attribute"
            raise ValueError(msg)
        if self.order < 0:
            msg = f"{self.__class__.__name__} must define 'order' attribute"
            raise ValueError(msg)

    @abstractmethod
    def extract(self, context: ExtractionContext) -> dict[str, int]:
        """
        Compute the complete owner -> raw amount mapping of this source.

        Must be implemented by subclasses.

        Parameters
        ----------
        context : ExtractionContext
            Snapshot, registry and collaborators of the run

        Returns
        -------
        dict[str, int]
            Owner address to raw amount of the reference asset

        """
        ...

    def filters(self, context: ExtractionContext) -> FilterContribution:
        """
        What the collector must capture for this source.

        Default implementation requires nothing. Override for sources that
        read auxiliary tables.

        """
        return FilterContribution()

    def holders(self, context: ExtractionContext, mint: str) -> list[AccountRecord]:
        """Token accounts of a mint held by end-user wallets."""
        return context.snapshot.accounts_by_mint_and_owner_program(mint, context.registry.owner_program)

    def distribute(self, context: ExtractionContext, share_mint: str, pooled: int, mapping: dict[str, int]) -> bool:
        """
        Split a pooled amount over the holders of a share mint.

        Parameters
        ----------
        context : ExtractionContext
            Run context
        share_mint : str
            LP or share token mint
        pooled : int
            Reference asset amount backing the shares
        mapping : dict[str, int]
            Owner totals to add to

        Returns
        -------
        bool
            False when the share mint is missing or has no supply

        """
        share_supply = context.snapshot.mint_supply(share_mint)
        if share_supply is None:
            logger.warning("%s: share mint %s missing from snapshot, skipping", self.tag, share_mint)
            return False
        if share_supply == 0:
            logger.debug("%s: share mint %s has no supply, skipping", self.tag, share_mint)
            return False
        for account in self.holders(context, share_mint):
            accumulate(mapping, account.owner, proportional_share(account.amount, pooled, share_supply))
        return True

    @staticmethod
    def fetch_account_data(context: ExtractionContext, blobs: dict[str, AccountDataBlob]) -> dict[str, str]:
        """Fetch live account data blobs, base64-encoded, keyed by blob name."""
        return {
            name: base64.b64encode(context.metadata.account_data(blob.address, blob.offset, blob.length)).decode("ascii")
            for name, blob in blobs.items()
        }
