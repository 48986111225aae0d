"""Vault classifier: protocol-owned custody addresses."""

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class VaultClassifier:
    """
    Combine the static vault list with addresses discovered during extraction.

    Parameters
    ----------
    static_vaults : Iterable[str]
        Custody addresses from the address registry

    """

    def __init__(self, static_vaults: Iterable[str]) -> None:
        self.static_vaults = frozenset(static_vaults)

    def classify(self, discovered: Iterable[str] = ()) -> frozenset[str]:
        """
        Build the vault set of a run.

        Parameters
        ----------
        discovered : Iterable[str]
            Custody addresses reported by extractors

        Returns
        -------
        frozenset[str]
            Immutable vault set

        """
        discovered = frozenset(discovered)
        vaults = self.static_vaults | discovered
        logger.info(
            "Classified %d vault addresses (%d static, %d discovered)",
            len(vaults),
            len(self.static_vaults),
            len(discovered - self.static_vaults),
        )
        return vaults
