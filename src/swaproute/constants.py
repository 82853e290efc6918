"""
Bounds of the fixed-width Solidity integer types used by the pool contracts.
"""

MIN_UINT8, MAX_UINT8 = 0, 2**8 - 1
MIN_UINT128, MAX_UINT128 = 0, 2**128 - 1
MIN_UINT256, MAX_UINT256 = 0, 2**256 - 1

MIN_INT128, MAX_INT128 = -(2**127), 2**127 - 1
