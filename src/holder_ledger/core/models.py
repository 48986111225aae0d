"""Data models for snapshot rows, ledger contributions, and emitted records."""

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

# Raw token amounts in the smallest indivisible unit. Strict so that a float
# never sneaks in through a model constructor.
Amount = Annotated[int, Field(strict=True, ge=0)]


class SourceTag(StrEnum):
    """Holder extraction source, in enumeration order."""

    WALLET = "WALLET"
    ORCA = "ORCA"
    RAYDIUM_V2 = "RAYDIUM_V2"
    RAYDIUM_V3 = "RAYDIUM_V3"
    SOLEND = "SOLEND"
    TULIP = "TULIP"
    MERCURIAL_STABLE_SWAP_POOL = "MERCURIAL_STABLE_SWAP_POOL"
    MERCURIAL_METEORA_VAULTS = "MERCURIAL_METEORA_VAULTS"
    SABER = "SABER"
    FRIKTION = "FRIKTION"
    PORT = "PORT"
    DRIFT = "DRIFT"
    MRGN = "MRGN"
    MANGO = "MANGO"
    LIFINITY = "LIFINITY"
    KAMINO = "KAMINO"
    KAMINO_LENDING = "KAMINO_LENDING"


class AuthorityTag(StrEnum):
    """Authority-keyed sub-extraction."""

    VEMNDE = "VEMNDE"
    NATIVE_STAKE = "NATIVE_STAKE"


class SourceKind(StrEnum):
    """Whether a source contributes to the holder ledger or an authority sequence."""

    HOLDER = "holder"
    AUTHORITY = "authority"


class AccountRecord(BaseModel):
    """
    Token account as captured in the snapshot.

    Attributes
    ----------
    address : str
        Token account address
    owner : str
        Wallet owning the token account
    mint : str
        Token mint
    amount : int
        Raw token amount

    """

    model_config = ConfigDict(frozen=True)

    address: str
    owner: str
    mint: str
    amount: Amount


class MintRecord(BaseModel):
    """Mint with its total supply."""

    model_config = ConfigDict(frozen=True)

    mint: str
    supply: Amount


class RawContribution(BaseModel):
    """
    Amount one source attributes to one owner.

    Attributes
    ----------
    owner : str
        Owner address
    amount : int
        Raw amount of the reference asset
    source : SourceTag | AuthorityTag
        Source that produced the amount

    """

    model_config = ConfigDict(frozen=True)

    owner: str
    amount: Amount
    source: SourceTag | AuthorityTag


class HolderLedgerEntry(BaseModel):
    """
    All contributions for one owner.

    Attributes
    ----------
    owner : str
        Owner address
    total : int
        Sum of all contribution amounts
    contributions : list[RawContribution]
        Contributions in append (source enumeration) order

    """

    owner: str
    total: Amount = 0
    contributions: list[RawContribution] = Field(default_factory=list)


class ReconciliationResult(BaseModel):
    """
    Cross-check of parsed holdings against the reference asset supply.

    Attributes
    ----------
    total_parsed : int
        Sum of contributions of owners outside the vault set
    total_vault : int
        Sum of contributions of vault owners
    total_supply : int
        Reference mint supply
    delta : int
        ``total_supply - total_parsed``; may be negative
    slack : int
        Upper bound of units lost to floor division
    mismatch : str | None
        Reason the result is outside the accepted bound, if it is

    """

    model_config = ConfigDict(frozen=True)

    total_parsed: Amount
    total_vault: Amount
    total_supply: Amount
    delta: int
    slack: Amount = 0
    mismatch: str | None = None

    @property
    def double_counted(self) -> bool:
        """Whether vault and non-vault holdings together exceed the supply."""
        return self.total_parsed + self.total_vault > self.total_supply


class OutputRecord(BaseModel):
    """
    Finished record handed to the persistence layer.

    Attributes
    ----------
    owner : str
        Owner address
    amount : str
        Fixed-point decimal string (e.g., '1.000000000')
    source : SourceTag
        Source of the amount
    is_vault : bool
        Whether the owner is a protocol-owned custody address

    """

    model_config = ConfigDict(frozen=True)

    owner: str
    amount: str
    source: SourceTag
    is_vault: bool


class AuthorityRecord(BaseModel):
    """Finished record of an authority-keyed sub-extraction."""

    model_config = ConfigDict(frozen=True)

    authority: str
    amount: str
    source: AuthorityTag


class FilterContribution(BaseModel):
    """What one source needs captured in the next snapshot."""

    account_mints: list[str] = Field(default_factory=list)
    whirlpool_pool_address: list[str] = Field(default_factory=list)
    meteora_vaults: list[str] = Field(default_factory=list)
    mercurial_pools: list[str] = Field(default_factory=list)
    account_data: dict[str, str] = Field(default_factory=dict)


class FilterDescriptor(BaseModel):
    """
    Machine-readable contract consumed by the snapshot collector.

    Attributes
    ----------
    account_owners : str
        Owner program of the wallets whose token accounts are captured
    account_mints : list[str]
        Mints whose token accounts must be captured
    whirlpool_pool_address : list[str]
        Concentrated liquidity pools whose positions must be captured
    meteora_vaults : list[str]
        Yield vaults whose state must be captured
    mercurial_pools : list[str]
        AMM pools holding vault LP tokens
    account_data : dict[str, str]
        Base64 account data blobs for offline replay, keyed by blob name

    """

    account_owners: str
    account_mints: list[str] = Field(default_factory=list)
    whirlpool_pool_address: list[str] = Field(default_factory=list)
    meteora_vaults: list[str] = Field(default_factory=list)
    mercurial_pools: list[str] = Field(default_factory=list)
    account_data: dict[str, str] = Field(default_factory=dict)

    def merge(self, contribution: FilterContribution) -> None:
        """Add a source's requirements, keeping first-seen order and no duplicates."""
        for field in ("account_mints", "whirlpool_pool_address", "meteora_vaults", "mercurial_pools"):
            current = getattr(self, field)
            for address in getattr(contribution, field):
                if address not in current:
                    current.append(address)
        self.account_data.update(contribution.account_data)

    def to_collector_json(self) -> dict[str, Any]:
        """
        Render the collector's flat format: address lists comma-joined,
        data blobs as top-level keys.
        """
        data: dict[str, Any] = {
            "account_owners": self.account_owners,
            "account_mints": ",".join(self.account_mints),
            "whirlpool_pool_address": ",".join(self.whirlpool_pool_address),
            "meteora_vaults": ",".join(self.meteora_vaults),
            "mercurial_pools": ",".join(self.mercurial_pools),
        }
        data.update(self.account_data)
        return data
