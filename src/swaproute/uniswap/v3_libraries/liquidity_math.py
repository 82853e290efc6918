from swaproute.constants import MAX_INT128, MAX_UINT128, MIN_INT128, MIN_UINT128
from swaproute.exceptions import EVMRevertError


def add_delta(x: int, y: int) -> int:
    """
    Add a signed liquidity delta to an unsigned liquidity value, reverting if the result underflows
    ("LS") or overflows ("LA") a uint128.

    ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/LiquidityMath.sol
    """

    if not (MIN_UINT128 <= x <= MAX_UINT128):
        raise EVMRevertError(error="x not a valid uint128")
    if not (MIN_INT128 <= y <= MAX_INT128):
        raise EVMRevertError(error="y not a valid int128")

    z = x + y
    if z < MIN_UINT128:
        raise EVMRevertError(error="LS")
    if z > MAX_UINT128:
        raise EVMRevertError(error="LA")
    return z
