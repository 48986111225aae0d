"""Narrow interfaces of the protocol-owned share-math collaborators."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from holder_ledger.core.models import Amount


class VaultState(BaseModel):
    """
    Yield vault fields needed to compute the withdrawable amount.

    Attributes
    ----------
    total_amount : int
        Total reference asset accounted by the vault
    last_report : int
        Unix timestamp of the last profit report
    locked_profit_degradation : int
        Degradation rate, scaled by ``LOCKED_PROFIT_DEGRADATION_DENOMINATOR``
    last_updated_locked_profit : int
        Locked profit at the last report

    """

    model_config = ConfigDict(frozen=True)

    total_amount: Amount
    last_report: Amount
    locked_profit_degradation: Amount
    last_updated_locked_profit: Amount


class ObligationDeposit(BaseModel):
    """One collateral deposit of an obligation."""

    model_config = ConfigDict(frozen=True)

    reserve: str
    amount: Amount


class DecodedObligation(BaseModel):
    """Lending obligation decoded from raw account data."""

    model_config = ConfigDict(frozen=True)

    lending_market: str
    owner: str
    deposits: list[ObligationDeposit] = Field(default_factory=list)


class CurveMath(Protocol):
    """Concentrated liquidity curve math."""

    def amounts_from_liquidity(
        self,
        liquidity: int,
        sqrt_price: int,
        sqrt_price_lower: int,
        sqrt_price_upper: int,
    ) -> tuple[int, int]:
        """Token A and token B amounts backing ``liquidity`` in the given range."""
        ...

    def sqrt_price_from_tick(self, tick: int) -> int:
        """Q64.64 square root price at a tick index."""
        ...


class VaultMath(Protocol):
    """Time-decayed yield vault math."""

    def withdrawable_amount(self, timestamp: int, vault: VaultState) -> int:
        """Amount withdrawable from the vault at ``timestamp``."""
        ...


class ObligationDecoder(Protocol):
    """Lending protocol obligation decoder."""

    data_size: int

    def decode(self, data: bytes) -> DecodedObligation | None:
        """Decode raw account data, or None when it is not an obligation."""
        ...
