"""Reconciliation of parsed holdings against the reference asset supply."""

import logging
from collections.abc import Collection

from holder_ledger.core.aggregator import HolderLedger
from holder_ledger.core.errors import ReconciliationMismatch
from holder_ledger.core.models import ReconciliationResult, SourceTag

logger = logging.getLogger(__name__)


class ReconciliationReporter:
    """
    Cross-check the ledger against the total supply.

    Every proportional-share contribution floors a fraction, so it can lose
    at most one raw unit; the number of such contributions is the slack of
    the run. A result is a mismatch when vault and non-vault holdings together
    exceed the supply, or when the undercount exceeds ``tolerance + slack``.
    With no tolerance configured only the first check applies, since sources
    outside the parser's reach leave an undercount of unknown size.

    Parameters
    ----------
    tolerance : int | None
        Accepted undercount in raw units beyond the slack
    strict : bool
        Raise ``ReconciliationMismatch`` instead of logging a warning

    """

    def __init__(self, tolerance: int | None = None, strict: bool = False) -> None:
        self.tolerance = tolerance
        self.strict = strict

    def reconcile(
        self,
        ledger: HolderLedger,
        vaults: Collection[str],
        total_supply: int,
        proportional_sources: Collection[SourceTag] = (),
    ) -> ReconciliationResult:
        """
        Compute totals and check them against the supply.

        Parameters
        ----------
        ledger : HolderLedger
            Complete ledger of the run
        vaults : Collection[str]
            Vault set of the run
        total_supply : int
            Reference mint supply
        proportional_sources : Collection[SourceTag]
            Sources whose contributions are floored proportional shares

        Returns
        -------
        ReconciliationResult
            Totals, delta, slack and the mismatch reason if any

        Raises
        ------
        ReconciliationMismatch
            In strict mode, if the result is a mismatch

        """
        total_parsed = 0
        total_vault = 0
        slack = 0
        for contribution in ledger.contributions():
            if contribution.owner in vaults:
                total_vault += contribution.amount
            else:
                total_parsed += contribution.amount
            if contribution.source in proportional_sources:
                slack += 1

        delta = total_supply - total_parsed
        mismatch = None
        if total_parsed + total_vault > total_supply:
            mismatch = "parsed and vault holdings exceed the total supply"
        elif self.tolerance is not None and delta > self.tolerance + slack:
            mismatch = f"undercount exceeds tolerance {self.tolerance} plus slack {slack}"

        result = ReconciliationResult(
            total_parsed=total_parsed,
            total_vault=total_vault,
            total_supply=total_supply,
            delta=delta,
            slack=slack,
            mismatch=mismatch,
        )

        logger.info(
            "Reconciliation: parsed=%d vault=%d supply=%d delta=%d slack=%d",
            total_parsed,
            total_vault,
            total_supply,
            delta,
            slack,
        )
        if mismatch:
            if self.strict:
                raise ReconciliationMismatch(mismatch, delta)
            logger.warning(
                "Reconciliation mismatch: %s (parsed=%d vault=%d supply=%d delta=%d)",
                mismatch,
                total_parsed,
                total_vault,
                total_supply,
                delta,
            )
        return result
