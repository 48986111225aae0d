"""Withdrawable amount of yield vaults with linearly unlocking profit."""

from holder_ledger.sharemath.interfaces import VaultState

LOCKED_PROFIT_DEGRADATION_DENOMINATOR = 10**12


class LockedProfitVaultMath:
    """
    Reference math for vaults whose reported profit unlocks linearly.

    Profit reported at ``last_report`` is locked and released at
    ``locked_profit_degradation / 1e12`` per second; only the unlocked part
    is withdrawable.

    """

    def withdrawable_amount(self, timestamp: int, vault: VaultState) -> int:
        """
        Amount withdrawable from the vault at ``timestamp``.

        Parameters
        ----------
        timestamp : int
            Unix time of the snapshot
        vault : VaultState
            Vault state read from the snapshot

        Returns
        -------
        int
            ``total_amount`` minus the still-locked profit

        """
        duration = max(timestamp - vault.last_report, 0)
        locked_fund_ratio = duration * vault.locked_profit_degradation
        if locked_fund_ratio > LOCKED_PROFIT_DEGRADATION_DENOMINATOR:
            locked_profit = 0
        else:
            locked_profit = (
                vault.last_updated_locked_profit
                * (LOCKED_PROFIT_DEGRADATION_DENOMINATOR - locked_fund_ratio)
                // LOCKED_PROFIT_DEGRADATION_DENOMINATOR
            )
        return max(vault.total_amount - locked_profit, 0)
