"""
Exact input swap simulation for concentrated liquidity pools.

The simulation walks the initialized ticks from the current tick in the direction of the swap. The
range between two consecutive initialized ticks holds constant liquidity, so each range behaves
like a constant product pool with virtual reserves derived from the price and the liquidity. Ranges
covered entirely by the remaining input are consumed up to their boundary tick, where the active
liquidity changes by the tick's net liquidity. The final, partially consumed range is priced with the
constant product formula on its virtual reserves.
"""

import bisect
import dataclasses
from collections.abc import Iterator
from fractions import Fraction

from swaproute.exceptions import EVMRevertError, IncompleteSwap, InvalidSwapInputAmount
from swaproute.logging import logger
from swaproute.slippage import calc_slippage
from swaproute.types.quote import QuoteFailure, SwapQuote
from swaproute.uniswap.v3_functions import exchange_rate_from_sqrt_price_x96, virtual_reserves
from swaproute.uniswap.v3_libraries.constants import FEE_DENOMINATOR, Q96
from swaproute.uniswap.v3_libraries.full_math import muldiv_rounding_up
from swaproute.uniswap.v3_libraries.liquidity_math import add_delta
from swaproute.uniswap.v3_libraries.sqrt_price_math import get_amount0_delta, get_amount1_delta
from swaproute.uniswap.v3_libraries.tick_math import MAX_TICK, MIN_TICK, get_sqrt_ratio_at_tick
from swaproute.uniswap.v3_types import ConcentratedLiquidityPoolState, Liquidity, SqrtPriceX96, Tick


@dataclasses.dataclass(slots=True, frozen=True)
class ConcentratedLiquiditySwapResult:
    amount_in: int
    amount_out: int
    sqrt_price_x96: SqrtPriceX96
    liquidity: Liquidity
    ticks_crossed: int


def _boundary_ticks(
    state: ConcentratedLiquidityPoolState,
    zero_for_one: bool,
) -> Iterator[tuple[Tick, bool]]:
    """
    Yield the segment boundaries in the direction of the swap, each with a flag marking an
    initialized tick. The price limit tick is yielded last.
    """

    ticks = state.initialized_ticks
    if zero_for_one:
        # The current tick is included, since its liquidity is crossed when the price moves below it
        start = bisect.bisect_right(ticks, state.tick)
        for tick in reversed(ticks[:start]):
            yield tick, True
        yield MIN_TICK, False
    else:
        start = bisect.bisect_right(ticks, state.tick)
        for tick in ticks[start:]:
            yield tick, True
        yield MAX_TICK, False


def _amounts_to_boundary(
    sqrt_price_x96: SqrtPriceX96,
    sqrt_price_target_x96: SqrtPriceX96,
    liquidity: Liquidity,
    zero_for_one: bool,
) -> tuple[int, int]:
    """
    The input required (rounded up) and the output delivered (rounded down) when moving the price
    to the target within one constant-liquidity segment.
    """

    if zero_for_one:
        return (
            get_amount0_delta(sqrt_price_target_x96, sqrt_price_x96, liquidity, True),
            get_amount1_delta(sqrt_price_target_x96, sqrt_price_x96, liquidity, False),
        )
    return (
        get_amount1_delta(sqrt_price_x96, sqrt_price_target_x96, liquidity, True),
        get_amount0_delta(sqrt_price_x96, sqrt_price_target_x96, liquidity, False),
    )


def _swap_within_segment(
    sqrt_price_x96: SqrtPriceX96,
    liquidity: Liquidity,
    amount_in: int,
    fee: int,
    zero_for_one: bool,
) -> tuple[int, SqrtPriceX96]:
    """
    Apply the constant product formula to the virtual reserves of the active segment. Returns the
    amount out and the resulting square root price.
    """

    reserves0, reserves1 = virtual_reserves(liquidity, sqrt_price_x96)
    reserves_in, reserves_out = (reserves0, reserves1) if zero_for_one else (reserves1, reserves0)

    amount_in_net = amount_in * (FEE_DENOMINATOR - fee)
    amount_out = reserves_out * amount_in_net // (reserves_in * FEE_DENOMINATOR + amount_in_net)

    # The virtual reserves after the swap fix the new price: sqrtP = L / x = y / L
    new_reserves_in = reserves_in + amount_in_net // FEE_DENOMINATOR
    if new_reserves_in == 0:
        return amount_out, sqrt_price_x96
    new_sqrt_price_x96 = (
        liquidity * Q96 // new_reserves_in if zero_for_one else new_reserves_in * Q96 // liquidity
    )
    return amount_out, new_sqrt_price_x96


def simulate_exact_input(
    state: ConcentratedLiquidityPoolState,
    zero_for_one: bool,
    amount_in: int,
) -> ConcentratedLiquiditySwapResult:
    """
    Simulate an exact input swap through the pool.

    Raises `IncompleteSwap` if the initialized ticks run out before the input is consumed.
    """

    if amount_in < 0:
        raise InvalidSwapInputAmount

    amount_remaining = amount_in
    amount_out = 0
    sqrt_price_x96 = state.sqrt_price_x96
    liquidity = state.liquidity
    ticks_crossed = 0

    for boundary_tick, initialized in _boundary_ticks(state, zero_for_one):
        if amount_remaining == 0:
            break

        sqrt_price_target_x96 = get_sqrt_ratio_at_tick(boundary_tick)

        if liquidity == 0:
            required_in, segment_out = 0, 0
        else:
            required_in, segment_out = _amounts_to_boundary(
                sqrt_price_x96=sqrt_price_x96,
                sqrt_price_target_x96=sqrt_price_target_x96,
                liquidity=liquidity,
                zero_for_one=zero_for_one,
            )
            # Gross up the input to include the fee taken on the way in
            required_in = muldiv_rounding_up(
                required_in, FEE_DENOMINATOR, FEE_DENOMINATOR - state.fee
            )

        if amount_remaining < required_in:
            partial_out, sqrt_price_x96 = _swap_within_segment(
                sqrt_price_x96=sqrt_price_x96,
                liquidity=liquidity,
                amount_in=amount_remaining,
                fee=state.fee,
                zero_for_one=zero_for_one,
            )
            amount_out += partial_out
            amount_remaining = 0
            break

        amount_remaining -= required_in
        amount_out += segment_out
        sqrt_price_x96 = sqrt_price_target_x96

        if not initialized:
            # Reached the price limit
            break

        liquidity_net = state.tick_data[boundary_tick].liquidity_net
        liquidity = add_delta(liquidity, -liquidity_net if zero_for_one else liquidity_net)
        ticks_crossed += 1

    if amount_remaining != 0:
        raise IncompleteSwap(amount_in=amount_in - amount_remaining, amount_out=amount_out)

    return ConcentratedLiquiditySwapResult(
        amount_in=amount_in,
        amount_out=amount_out,
        sqrt_price_x96=sqrt_price_x96,
        liquidity=liquidity,
        ticks_crossed=ticks_crossed,
    )


def quote_concentrated_liquidity(
    state: ConcentratedLiquidityPoolState,
    zero_for_one: bool,
    amount_in: int,
) -> SwapQuote:
    """
    Quote an exact input swap and its slippage against the pool's marginal price
    `sqrtPriceX96**2 / 2**192`, inverted for swaps of token1 for token0.
    """

    if state.sqrt_price_x96 == 0:
        return SwapQuote.failed(amount_in=amount_in, reason=QuoteFailure.NO_LIQUIDITY)

    try:
        result = simulate_exact_input(state=state, zero_for_one=zero_for_one, amount_in=amount_in)
    except IncompleteSwap as exc:
        logger.debug(
            f"Pool {state.address} exhausted after {exc.amount_in} of {amount_in} input "
            f"({zero_for_one=})"
        )
        return SwapQuote.failed(amount_in=amount_in, reason=QuoteFailure.INSUFFICIENT_LIQUIDITY)
    except EVMRevertError as exc:
        logger.debug(f"Pool {state.address} reverted during simulation: {exc}")
        return SwapQuote.failed(amount_in=amount_in, reason=QuoteFailure.INSUFFICIENT_LIQUIDITY)

    if amount_in == 0:
        return SwapQuote(amount_in=0, amount_out=0, slippage=0)

    marginal_price = exchange_rate_from_sqrt_price_x96(state.sqrt_price_x96)
    return SwapQuote(
        amount_in=amount_in,
        amount_out=result.amount_out,
        slippage=calc_slippage(
            expected_price=marginal_price if zero_for_one else 1 / marginal_price,
            effective_price=Fraction(result.amount_out, amount_in),
        ),
    )
