"""Concentrated liquidity math on Q64.64 square root prices."""

from decimal import ROUND_FLOOR, Decimal, localcontext

Q64 = 1 << 64
MIN_TICK = -443636
MAX_TICK = 443636


def token_a_from_liquidity(liquidity: int, sqrt_price_lower: int, sqrt_price_upper: int) -> int:
    """Token A amount for liquidity between two square root prices, rounded down."""
    if sqrt_price_lower > sqrt_price_upper:
        sqrt_price_lower, sqrt_price_upper = sqrt_price_upper, sqrt_price_lower
    if sqrt_price_lower == 0:
        return 0
    numerator = (liquidity * (sqrt_price_upper - sqrt_price_lower)) << 64
    denominator = sqrt_price_upper * sqrt_price_lower
    return numerator // denominator


def token_b_from_liquidity(liquidity: int, sqrt_price_lower: int, sqrt_price_upper: int) -> int:
    """Token B amount for liquidity between two square root prices, rounded down."""
    if sqrt_price_lower > sqrt_price_upper:
        sqrt_price_lower, sqrt_price_upper = sqrt_price_upper, sqrt_price_lower
    return (liquidity * (sqrt_price_upper - sqrt_price_lower)) >> 64


class ConcentratedLiquidityMath:
    """
    Reference curve math shared by Whirlpool and Raydium AMM v3 pools.

    Amounts are always rounded down so that summed positions never exceed
    what the pool holds.

    """

    def amounts_from_liquidity(
        self,
        liquidity: int,
        sqrt_price: int,
        sqrt_price_lower: int,
        sqrt_price_upper: int,
    ) -> tuple[int, int]:
        """
        Convert a position's liquidity to token amounts.

        Parameters
        ----------
        liquidity : int
            Position liquidity
        sqrt_price : int
            Current pool square root price (Q64.64)
        sqrt_price_lower : int
            Lower bound of the position range (Q64.64)
        sqrt_price_upper : int
            Upper bound of the position range (Q64.64)

        Returns
        -------
        tuple[int, int]
            (token A amount, token B amount)

        """
        if sqrt_price_lower > sqrt_price_upper:
            sqrt_price_lower, sqrt_price_upper = sqrt_price_upper, sqrt_price_lower

        if sqrt_price <= sqrt_price_lower:
            return token_a_from_liquidity(liquidity, sqrt_price_lower, sqrt_price_upper), 0
        if sqrt_price < sqrt_price_upper:
            return (
                token_a_from_liquidity(liquidity, sqrt_price, sqrt_price_upper),
                token_b_from_liquidity(liquidity, sqrt_price_lower, sqrt_price),
            )
        return 0, token_b_from_liquidity(liquidity, sqrt_price_lower, sqrt_price_upper)

    def sqrt_price_from_tick(self, tick: int) -> int:
        """
        Q64.64 square root of ``1.0001 ** tick``, rounded down.

        Raises
        ------
        ValueError
            If the tick is outside the supported range

        """
        if not MIN_TICK <= tick <= MAX_TICK:
            msg = f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]"
            raise ValueError(msg)
        with localcontext() as ctx:
            ctx.prec = 100
            price = (Decimal(10001) / Decimal(10000)) ** tick
            return int((price.sqrt() * Q64).to_integral_value(rounding=ROUND_FLOOR))
