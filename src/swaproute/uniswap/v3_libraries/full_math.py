from swaproute.constants import MAX_UINT256, MIN_UINT256
from swaproute.exceptions import EVMRevertError

# ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/FullMath.sol


def _check_uint256(value: int, name: str) -> None:
    if not (MIN_UINT256 <= value <= MAX_UINT256):
        raise EVMRevertError(error=f"Invalid value for {name}.")


def muldiv(a: int, b: int, denominator: int) -> int:
    """
    Calculate floor(a * b / denominator).

    The Solidity implementation exists to avoid overflowing the 512-bit intermediate product.
    Python integers do not overflow, so this function only enforces the uint256 domain of the
    inputs and the result.
    """

    _check_uint256(a, "a")
    _check_uint256(b, "b")
    _check_uint256(denominator, "denominator")

    if denominator == 0:
        raise EVMRevertError(error="DIVISION BY ZERO")

    result = (a * b) // denominator
    if result > MAX_UINT256:
        raise EVMRevertError(error="Invalid result, does not fit in uint256")
    return result


def muldiv_rounding_up(a: int, b: int, denominator: int) -> int:
    result = muldiv(a, b, denominator)
    if (a * b) % denominator == 0:
        return result
    if result == MAX_UINT256:
        raise EVMRevertError(error="Rounded result does not fit in uint256")
    return result + 1
