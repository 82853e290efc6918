from swaproute.constants import MAX_UINT256, MIN_UINT256
from swaproute.exceptions import EVMRevertError

# This module is adapted from the Uniswap V3 BitMath.sol library.
# Reference: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/BitMath.sol


def _check_uint256_nonzero(number: int) -> None:
    if number <= MIN_UINT256:
        raise EVMRevertError(error="required: number > 0")
    if number > MAX_UINT256:
        raise EVMRevertError(error="required: number <= max(uint256)")


def least_significant_bit(number: int) -> int:
    """
    Find the position of the least significant set bit for the given number.

    The two's complement `number & -number` isolates the lowest set bit, so its bit length locates
    the position without the binary search used by the Solidity contract.
    """

    _check_uint256_nonzero(number)
    return (number & -number).bit_length() - 1


def most_significant_bit(number: int) -> int:
    """
    Find the position of the most significant set bit for the given number.
    """

    _check_uint256_nonzero(number)
    return number.bit_length() - 1
