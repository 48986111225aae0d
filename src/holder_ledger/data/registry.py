"""Versioned address registry models."""

from pydantic import BaseModel, Field

from holder_ledger.sharemath.obligation import ObligationLayout
from holder_ledger.snapshot.store import SYSTEM_PROGRAM


class ReferenceAsset(BaseModel):
    """
    The fungible token whose ownership is reconstructed.

    Attributes
    ----------
    mint : str
        Token mint address
    symbol : str
        Token symbol (e.g., 'mSOL')
    decimals : int
        Number of decimal places

    """

    mint: str
    symbol: str
    decimals: int = Field(ge=0)


class PooledVault(BaseModel):
    """Constant-product or stable pool: LP mint plus the vault holding the reference asset."""

    name: str
    lp: str
    vault: str
    pool: str | None = None


class StaticShare(BaseModel):
    """Custody vault fully owned by a known owner."""

    name: str
    vault: str
    owner: str


class AccountDataBlob(BaseModel):
    """
    Account whose live data is shipped to the collector for offline replay.

    Attributes
    ----------
    address : str
        Account address
    offset : int | None
        Start of the data slice, or None for the whole account
    length : int | None
        Length of the data slice

    """

    address: str
    offset: int | None = None
    length: int | None = None


class LendingProtocol(BaseModel):
    """
    Canonical identifiers and obligation layout of a lending protocol.

    Attributes
    ----------
    program_id : str
        Program owning the obligation accounts
    table : str
        Snapshot table the collector writes the raw obligations to
    lending_markets : list[str]
        Accepted lending markets; empty means the markets come from live metadata
    reserves : list[str]
        Reserves of the reference asset; empty means they come from the snapshot
    layout : ObligationLayout
        Obligation account layout

    """

    program_id: str
    table: str
    lending_markets: list[str] = Field(default_factory=list)
    reserves: list[str] = Field(default_factory=list)
    layout: ObligationLayout


class BankIndexLookup(BaseModel):
    """
    Lending bank whose deposit index ships with the filters.

    The bank is located among the program's accounts by Anchor
    discriminator, group and reference mint; only the index is fetched.

    Attributes
    ----------
    name : str
        Key of the index in the filter descriptor
    program_id : str
        Program owning the bank accounts
    group : str
        Group the bank belongs to
    account_name : str
        Anchor account type name
    group_offset : int
        Offset of the group pubkey
    mint_offset : int
        Offset of the bank's token mint
    index_offset : int
        Offset of the I80F48 deposit index

    """

    name: str
    program_id: str
    group: str
    account_name: str = "Bank"
    group_offset: int = 8
    mint_offset: int = 56
    index_offset: int = 536


class DecodedTable(BaseModel):
    """Protocol whose positions the collector decodes into an owner/amount table."""

    table: str
    filter_mints: list[str] = Field(default_factory=list)
    account_data: dict[str, AccountDataBlob] = Field(default_factory=dict)
    bank_index: BankIndexLookup | None = None


class Endpoints(BaseModel):
    """Live metadata endpoints."""

    orca_whirlpools: str = "https://api.mainnet.orca.so/v1/whirlpool/list"
    raydium_liquidity: str = "https://api.raydium.io/v2/sdk/liquidity/mainnet.json"
    meteora_vaults: str = "https://merv2-api.mercurial.finance/vault_info"
    meteora_amm_pools: str = "https://app.meteora.ag/amm/pools"
    kamino_markets: str = "https://api.kamino.finance/kamino-market"
    kamino_strategies: str = "https://api.kamino.finance/strategies"


class ReconciliationConfig(BaseModel):
    """Accepted divergence between parsed holdings and supply, in raw units."""

    tolerance: int | None = Field(default=None, ge=0)


class AddressRegistry(BaseModel):
    """
    Versioned registry of protocol addresses consulted by extractors and
    the vault classifier.

    Attributes
    ----------
    version : int
        Registry version, bumped whenever addresses change
    reference_asset : ReferenceAsset
        Asset whose holders are reconstructed
    owner_program : str
        Program owning end-user wallets
    vaults : list[str]
        Static protocol-owned custody addresses
    direct_mints : dict[str, str]
        Mints held one-to-one for the reference asset, keyed by source
    pools : dict[str, list[PooledVault]]
        Proportional-share pools, keyed by source
    static_shares : dict[str, list[StaticShare]]
        Vaults with hardcoded owners, keyed by source
    decoded_tables : dict[str, DecodedTable]
        Collector-decoded position tables, keyed by source
    lending : dict[str, LendingProtocol]
        Obligation-based lending protocols, keyed by source
    authority_data : dict[str, dict[str, AccountDataBlob]]
        Account data blobs needed by authority sub-extractions
    endpoints : Endpoints
        Live metadata endpoints
    reconciliation : ReconciliationConfig
        Reconciliation bounds

    """

    version: int
    reference_asset: ReferenceAsset
    owner_program: str = SYSTEM_PROGRAM
    vaults: list[str] = Field(default_factory=list)
    direct_mints: dict[str, str] = Field(default_factory=dict)
    pools: dict[str, list[PooledVault]] = Field(default_factory=dict)
    static_shares: dict[str, list[StaticShare]] = Field(default_factory=dict)
    decoded_tables: dict[str, DecodedTable] = Field(default_factory=dict)
    lending: dict[str, LendingProtocol] = Field(default_factory=dict)
    authority_data: dict[str, dict[str, AccountDataBlob]] = Field(default_factory=dict)
    endpoints: Endpoints = Field(default_factory=Endpoints)
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)
