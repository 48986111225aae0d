"""Record emitter: turns the ledger into a lazy sequence of output records."""

from collections.abc import Collection, Iterator, Mapping

from holder_ledger.core.aggregator import HolderLedger
from holder_ledger.core.models import AuthorityRecord, AuthorityTag, OutputRecord, SourceTag


def format_amount(amount: int, decimals: int) -> str:
    """
    Render a raw amount as a fixed-point decimal string.

    Parameters
    ----------
    amount : int
        Raw amount in the smallest unit
    decimals : int
        Decimal places of the asset

    Returns
    -------
    str
        Decimal string with exactly ``decimals`` fractional digits

    Raises
    ------
    ValueError
        If the amount is negative or not an integer

    Examples
    --------
    >>> format_amount(1_000_000_000, 9)
    '1.000000000'
    >>> format_amount(5, 9)
    '0.000000005'
    >>> format_amount(42, 0)
    '42'

    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        msg = f"Amount must be a non-negative integer, got {amount!r}"
        raise ValueError(msg)
    if decimals == 0:
        return str(amount)
    digits = str(amount).rjust(decimals + 1, "0")
    return f"{digits[:-decimals]}.{digits[-decimals:]}"


class RecordEmitter:
    """
    Emit one record per (owner, source) contribution.

    Parameters
    ----------
    ledger : HolderLedger
        Complete ledger
    vaults : Collection[str]
        Vault set used to flag custody owners
    decimals : int
        Decimal places of the reference asset

    """

    def __init__(self, ledger: HolderLedger, vaults: Collection[str], decimals: int) -> None:
        self.ledger = ledger
        self.vaults = vaults
        self.decimals = decimals

    def records(self) -> Iterator[OutputRecord]:
        """Output records in source enumeration order, then owner insertion order."""
        for contribution in self.ledger.contributions():
            if not isinstance(contribution.source, SourceTag):
                continue
            yield OutputRecord(
                owner=contribution.owner,
                amount=format_amount(contribution.amount, self.decimals),
                source=contribution.source,
                is_vault=contribution.owner in self.vaults,
            )

    def authority_records(self, source: AuthorityTag, mapping: Mapping[str, int]) -> Iterator[AuthorityRecord]:
        """
        Records of an authority-keyed sub-extraction.

        Parameters
        ----------
        source : AuthorityTag
            Sub-extraction that produced the mapping
        mapping : Mapping[str, int]
            Authority address to raw amount

        """
        for authority, amount in mapping.items():
            if amount == 0:
                continue
            yield AuthorityRecord(
                authority=authority,
                amount=format_amount(amount, self.decimals),
                source=source,
            )
