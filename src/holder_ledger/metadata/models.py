"""Listings returned by live protocol metadata endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class _Listing(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class WhirlpoolListing(_Listing):
    """Whirlpool from the Orca pool list."""

    address: str
    name: str
    mint_a: str
    mint_b: str


class RaydiumPoolListing(_Listing):
    """Constant-product pool from the Raydium liquidity list."""

    lp_mint: str = Field(alias="lpMint")
    base_mint: str = Field(alias="baseMint")
    quote_mint: str = Field(alias="quoteMint")
    base_vault: str = Field(alias="baseVault")
    quote_vault: str = Field(alias="quoteVault")


class MeteoraVaultListing(_Listing):
    """Yield vault from the Meteora vault info endpoint."""

    address: str = Field(alias="pubkey")
    symbol: str = ""
    token_mint: str = Field(alias="token_address")
    lp_mint: str


class MeteoraPoolListing(_Listing):
    """AMM pool from the Meteora pool list."""

    address: str = Field(alias="pool_address")
    name: str = Field(default="", alias="pool_name")
    lp_mint: str
    token_mints: list[str] = Field(alias="pool_token_mints")
    version: int = Field(alias="pool_version")


class KaminoStrategyListing(_Listing):
    """Automated liquidity strategy from the Kamino strategy list."""

    address: str
    shares_mint: str = Field(alias="shareMint")
    token_a_mint: str = Field(alias="tokenAMint")
    token_b_mint: str = Field(alias="tokenBMint")
