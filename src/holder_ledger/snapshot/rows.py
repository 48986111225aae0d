"""Typed rows of the protocol-specific auxiliary snapshot tables."""

from pydantic import BaseModel, ConfigDict

from holder_ledger.core.models import Amount


class _Row(BaseModel):
    model_config = ConfigDict(frozen=True)


class WhirlpoolPoolRow(_Row):
    """Concentrated liquidity pool state (Orca Whirlpool)."""

    address: str
    token_a: str
    token_b: str
    sqrt_price: Amount


class WhirlpoolPositionRow(_Row):
    """Whirlpool position joined with the holder of its position NFT."""

    owner: str
    liquidity: Amount
    sqrt_price_lower: Amount
    sqrt_price_upper: Amount


class ClmmPoolRow(_Row):
    """Concentrated liquidity pool state (Raydium AMM v3)."""

    address: str
    mint_a: str
    mint_b: str
    vault_a: str
    vault_b: str
    liquidity: Amount
    sqrt_price_x64: Amount


class ClmmPositionRow(_Row):
    """Raydium AMM v3 position joined with the holder of its position NFT."""

    owner: str
    tick_lower: int
    tick_upper: int
    liquidity: Amount


class OwnerAmountRow(_Row):
    """Per-owner amount decoded by the collector (lending and perp protocols)."""

    address: str
    owner: str
    amount: Amount


class MeteoraVaultRow(_Row):
    """Yield vault state needed for the withdrawable amount computation."""

    address: str
    lp_mint: str
    token_vault: str
    last_report: Amount
    locked_profit_degradation: Amount
    last_updated_locked_profit: Amount
    total_amount: Amount


class MeteoraAmmPoolRow(_Row):
    """AMM pool depositing into yield vaults through vault LP token accounts."""

    address: str
    lp_mint: str
    token_a_mint: str
    token_b_mint: str
    a_vault_lp: str
    b_vault_lp: str


class KaminoStrategyRow(_Row):
    """Automated liquidity strategy: idle vaults plus one concentrated position."""

    address: str
    shares_mint: str
    shares_issued: Amount
    token_a_mint: str
    token_b_mint: str
    token_a_vault: str
    token_b_vault: str
    pool_token_vault_a: str
    pool_token_vault_b: str
    position_liquidity: Amount
    tick_lower: int
    tick_upper: int
    pool_sqrt_price_x64: Amount


class LendingReserveRow(_Row):
    """Lending reserve and the mint it lends."""

    address: str
    lending_market: str
    liquidity_mint: str
    collateral_mint_supply: Amount
    total_liquidity: Amount


class ProgramAccountRow(_Row):
    """Raw account owned by a program, for decoding by a protocol decoder."""

    address: str
    owner: str
    data: bytes


class AuthorityAmountRow(_Row):
    """Amount keyed by an authority rather than a token owner."""

    address: str
    authority: str
    amount: Amount
