from fractions import Fraction

from swaproute.exceptions import InvalidSwapInputAmount, NoLiquidity
from swaproute.slippage import calc_slippage
from swaproute.types.quote import QuoteFailure, SwapQuote
from swaproute.uniswap.v2_types import BasisPoints, ConstantProductPoolState

FEE_DENOMINATOR = 10_000


def constant_product_calc_exact_in(
    amount_in: int,
    reserves_in: int,
    reserves_out: int,
    fee: BasisPoints,
) -> int:
    """
    Calculate the amount out for an exact input from a constant product (x*y=k) invariant pool, with
    the fee given in basis points.
    """

    if reserves_in == 0 or reserves_out == 0:
        raise NoLiquidity

    amount_in_net = amount_in * (FEE_DENOMINATOR - fee)
    return (reserves_out * amount_in_net) // (reserves_in * FEE_DENOMINATOR + amount_in_net)


def quote_constant_product(
    state: ConstantProductPoolState,
    zero_for_one: bool,
    amount_in: int,
) -> SwapQuote:
    """
    Quote an exact input swap and its slippage against the pre-trade marginal price
    `reserves_out / reserves_in`. Each direction of the pool is quoted independently.
    """

    if amount_in < 0:
        raise InvalidSwapInputAmount

    reserves_in, reserves_out = (
        (state.reserves_token0, state.reserves_token1)
        if zero_for_one
        else (state.reserves_token1, state.reserves_token0)
    )

    try:
        amount_out = constant_product_calc_exact_in(
            amount_in=amount_in,
            reserves_in=reserves_in,
            reserves_out=reserves_out,
            fee=state.fee,
        )
    except NoLiquidity:
        return SwapQuote.failed(amount_in=amount_in, reason=QuoteFailure.NO_LIQUIDITY)

    if amount_in == 0:
        return SwapQuote(amount_in=0, amount_out=0, slippage=0)

    return SwapQuote(
        amount_in=amount_in,
        amount_out=amount_out,
        slippage=calc_slippage(
            expected_price=Fraction(reserves_out, reserves_in),
            effective_price=Fraction(amount_out, amount_in),
        ),
    )
