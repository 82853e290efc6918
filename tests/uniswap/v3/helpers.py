from collections.abc import Iterable

from swaproute.uniswap.v3_libraries.liquidity_math import add_delta
from swaproute.uniswap.v3_libraries.tick_bitmap import flip_tick
from swaproute.uniswap.v3_libraries.tick_math import get_sqrt_ratio_at_tick
from swaproute.uniswap.v3_types import (
    BitmapAtWord,
    ConcentratedLiquidityPoolState,
    LiquidityAtTick,
)
from tests.addresses import USDC, USDC_WETH_V3_POOL, WETH


def build_pool_state(
    positions: Iterable[tuple[int, int, int]],
    tick: int = 0,
    tick_spacing: int = 60,
    fee: int = 3000,
) -> ConcentratedLiquidityPoolState:
    """
    Build a pool state from (tick_lower, tick_upper, liquidity) positions, priced at `tick`.
    """

    tick_bitmap: dict[int, BitmapAtWord] = {}
    tick_data: dict[int, LiquidityAtTick] = {}
    liquidity = 0

    for tick_lower, tick_upper, amount in positions:
        for position_tick, delta in ((tick_lower, amount), (tick_upper, -amount)):
            current = tick_data.get(position_tick)
            if current is None:
                flip_tick(tick_bitmap=tick_bitmap, tick=position_tick, tick_spacing=tick_spacing)
                current = LiquidityAtTick(liquidity_net=0, liquidity_gross=0)
            tick_data[position_tick] = LiquidityAtTick(
                liquidity_net=current.liquidity_net + delta,
                liquidity_gross=current.liquidity_gross + amount,
            )
        if tick_lower <= tick < tick_upper:
            liquidity = add_delta(liquidity, amount)

    return ConcentratedLiquidityPoolState(
        address=USDC_WETH_V3_POOL,
        token0=USDC,
        token1=WETH,
        fee=fee,
        tick_spacing=tick_spacing,
        liquidity=liquidity,
        sqrt_price_x96=get_sqrt_ratio_at_tick(tick),
        tick=tick,
        tick_bitmap=tick_bitmap,
        tick_data=tick_data,
    )
