from .v2_functions import constant_product_calc_exact_in, quote_constant_product
from .v2_types import ConstantProductPoolState
from .v3_simulation import (
    ConcentratedLiquiditySwapResult,
    quote_concentrated_liquidity,
    simulate_exact_input,
)
from .v3_types import BitmapAtWord, ConcentratedLiquidityPoolState, LiquidityAtTick

__all__ = (
    "BitmapAtWord",
    "ConcentratedLiquidityPoolState",
    "ConcentratedLiquiditySwapResult",
    "ConstantProductPoolState",
    "LiquidityAtTick",
    "constant_product_calc_exact_in",
    "quote_concentrated_liquidity",
    "quote_constant_product",
    "simulate_exact_input",
)
