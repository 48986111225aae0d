"""Exception hierarchy for snapshot aggregation runs."""


class HolderLedgerError(Exception):
    """Base class for all holder ledger errors."""


class SnapshotDataMissing(HolderLedgerError):
    """
    A required row is absent from the snapshot.

    Recovered per source: the source contributes nothing and the run continues.

    Parameters
    ----------
    kind : str
        Kind of row that is missing (e.g., 'mint', 'token_account')
    address : str
        Address that was looked up

    """

    def __init__(self, kind: str, address: str) -> None:
        self.kind = kind
        self.address = address
        super().__init__(f"{kind} {address} missing from snapshot")


class MalformedSnapshotData(HolderLedgerError, ValueError):
    """
    A stored quantity is not an exact non-negative integer.

    Recovered per source like a missing row.

    """


class ExternalMetadataUnavailable(HolderLedgerError):
    """Live metadata (HTTP API or RPC) could not be fetched. Fatal for the run."""


class SupplyUnavailable(HolderLedgerError):
    """The reference asset's mint record is missing. Fatal for the run."""


class ReconciliationMismatch(HolderLedgerError):
    """
    Parsed holdings diverge from the total supply beyond the expected slack.

    Only raised in strict mode; otherwise reported as a warning.

    """

    def __init__(self, reason: str, delta: int) -> None:
        self.reason = reason
        self.delta = delta
        super().__init__(f"{reason} (delta={delta})")


class RegistryError(HolderLedgerError):
    """The address registry configuration is invalid."""
