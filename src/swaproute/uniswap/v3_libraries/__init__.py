"""
Integer math ported from the Uniswap V3 core libraries. Every function reproduces the rounding of
its Solidity counterpart, and raises `EVMRevertError` where the contract would revert.
"""
