from fractions import Fraction

from swaproute.uniswap.v3_libraries.constants import Q96, Q192
from swaproute.uniswap.v3_libraries.tick_bitmap import (
    get_word_range,
    next_initialized_tick,
    position,
)
from swaproute.uniswap.v3_types import (
    BitmapWord,
    ConcentratedLiquidityPoolState,
    Liquidity,
    LiquidityNet,
    SqrtPriceX96,
    Tick,
)


def exchange_rate_from_sqrt_price_x96(sqrt_price_x96: SqrtPriceX96) -> Fraction:
    """
    Convert a Q64.96 square root price to the marginal exchange rate, expressed as the amount of
    token1 per token0.
    """

    return Fraction(sqrt_price_x96**2, Q192)


def get_tick_word_and_bit_position(tick: Tick, tick_spacing: int) -> tuple[BitmapWord, int]:
    """
    Get the bitmap word and bit position for a tick, accounting for tick spacing.
    """

    return position(tick // tick_spacing)


def get_tick_bitmap_words(tick_spacing: int) -> range:
    """
    Every bitmap word that may hold an initialized tick for this tick spacing.
    """

    min_word, max_word = get_word_range(tick_spacing)
    return range(min_word, max_word + 1)


def virtual_reserves(liquidity: Liquidity, sqrt_price_x96: SqrtPriceX96) -> tuple[int, int]:
    """
    The constant product reserves equivalent to the liquidity active at this price.
    """

    return (
        liquidity * Q96 // sqrt_price_x96,
        liquidity * sqrt_price_x96 // Q96,
    )


def next_initialized_tick_with_liquidity_net(
    state: ConcentratedLiquidityPoolState,
    tick: Tick,
    zero_for_one: bool,
) -> tuple[Tick, LiquidityNet] | None:
    """
    Find the next initialized tick in the direction of a swap, using the pool's tick bitmap, and
    the liquidity change applied when the swap crosses it. Moving toward lower ticks
    (`zero_for_one`) removes the tick's net liquidity, so the sign is flipped for that direction.
    """

    next_tick = next_initialized_tick(
        tick_bitmap=state.tick_bitmap,
        tick=tick,
        tick_spacing=state.tick_spacing,
        less_than_or_equal=zero_for_one,
    )
    if next_tick is None:
        return None

    liquidity_net = state.tick_data[next_tick].liquidity_net
    return next_tick, -liquidity_net if zero_for_one else liquidity_net
