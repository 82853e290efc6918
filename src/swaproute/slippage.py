"""
Price impact of a trade, expressed as a fixed-point percentage.

Slippage is the relative shortfall of the effective (average) execution price against the pool's
marginal price before the trade: (expected - effective) / expected. It is reported as an integer
percentage with six decimal places, so 1% == 1_000_000 and 100% == SLIPPAGE_SCALE.
"""

import math
from fractions import Fraction

from swaproute.types.aliases import Slippage

SLIPPAGE_DECIMALS = 6
SLIPPAGE_SCALE: Slippage = 100 * 10**SLIPPAGE_DECIMALS


def calc_slippage(expected_price: Fraction, effective_price: Fraction) -> Slippage:
    """
    Calculate the slippage between the marginal price and the effective price of a trade. The result
    is negative when the effective price beats the marginal price.

    A pool without a valid marginal price is treated as a total loss.
    """

    if expected_price <= 0:
        return SLIPPAGE_SCALE

    return math.floor((expected_price - effective_price) / expected_price * SLIPPAGE_SCALE)
