"""
Token amount deltas between two square root prices.

ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/SqrtPriceMath.sol
"""

import functools

from swaproute.exceptions import EVMRevertError
from swaproute.numeric import div_rounding_up
from swaproute.uniswap.v3_libraries.constants import Q96, Q96_RESOLUTION, V3_LIB_CACHE_SIZE
from swaproute.uniswap.v3_libraries.full_math import muldiv, muldiv_rounding_up


@functools.lru_cache(maxsize=V3_LIB_CACHE_SIZE)
def get_amount0_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """
    Calculate the token0 amount between two prices for a given liquidity, i.e.
    liquidity / sqrt(lower) - liquidity / sqrt(upper).
    """

    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_ratio_a_x96 <= 0:
        raise EVMRevertError(error="required: sqrt_ratio_a_x96 > 0")

    numerator1 = liquidity << Q96_RESOLUTION
    numerator2 = sqrt_ratio_b_x96 - sqrt_ratio_a_x96

    if round_up:
        return div_rounding_up(
            muldiv_rounding_up(numerator1, numerator2, sqrt_ratio_b_x96),
            sqrt_ratio_a_x96,
        )
    return muldiv(numerator1, numerator2, sqrt_ratio_b_x96) // sqrt_ratio_a_x96


@functools.lru_cache(maxsize=V3_LIB_CACHE_SIZE)
def get_amount1_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """
    Calculate the token1 amount between two prices for a given liquidity, i.e.
    liquidity * (sqrt(upper) - sqrt(lower)).
    """

    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if round_up:
        return muldiv_rounding_up(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)
    return muldiv(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)
