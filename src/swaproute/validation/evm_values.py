"""
Pydantic field types that reject values outside the range of a Solidity integer type. Validation is
strict, so floats and numeric strings are rejected too.
"""

from typing import Annotated

from pydantic import Field
from pydantic.fields import FieldInfo

from swaproute.constants import (
    MAX_INT128,
    MAX_UINT8,
    MAX_UINT128,
    MAX_UINT256,
    MIN_INT128,
    MIN_UINT8,
    MIN_UINT128,
    MIN_UINT256,
)


def _bounded(lower: int, upper: int) -> FieldInfo:
    return Field(strict=True, ge=lower, le=upper)


type ValidatedUint8 = Annotated[int, _bounded(MIN_UINT8, MAX_UINT8)]
type ValidatedUint128 = Annotated[int, _bounded(MIN_UINT128, MAX_UINT128)]
type ValidatedUint256 = Annotated[int, _bounded(MIN_UINT256, MAX_UINT256)]
type ValidatedInt128 = Annotated[int, _bounded(MIN_INT128, MAX_INT128)]
