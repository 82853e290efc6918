from .stableswap_math import get_d, get_dy, get_y, marginal_price, quote_stableswap
from .types import StableSwapPoolState

__all__ = (
    "StableSwapPoolState",
    "get_d",
    "get_dy",
    "get_y",
    "marginal_price",
    "quote_stableswap",
)
