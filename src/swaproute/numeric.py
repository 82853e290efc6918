"""
Exact integer helpers shared by the venue models.

Python integers are arbitrary precision, so the helpers here only add the checked behavior needed
by the pool math: division by zero and unsigned underflow are reported as `None` instead of raising.
"""

import dataclasses
import enum


def checked_div(numerator: int, denominator: int) -> int | None:
    """
    Floor division which returns `None` instead of raising when the denominator is zero.
    """

    if denominator == 0:
        return None
    return numerator // denominator


def div_or_zero(numerator: int, denominator: int) -> int:
    """
    Floor division which returns zero when the denominator is zero.
    """

    result = checked_div(numerator, denominator)
    return 0 if result is None else result


def checked_sub(a: int, b: int) -> int | None:
    """
    Unsigned subtraction which returns `None` if the result would underflow.
    """

    if b > a:
        return None
    return a - b


def div_rounding_up(x: int, y: int) -> int:
    """
    Perform an x//y floored division, rounding up any remainder.

    ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/UnsafeMath.sol
    """

    # x and y are uint256 values, so negative value floor division workarounds are unnecessary
    return x // y + (x % y > 0)


def digits_close(a: int, b: int, tolerance: int = 1) -> bool:
    return abs(a - b) <= tolerance


class Convergence(enum.Enum):
    """
    Outcome of a bounded iterative solver. Members are ordered from the strongest to the weakest
    result.
    """

    CONVERGED = enum.auto()
    EXHAUSTED = enum.auto()
    DIVERGED = enum.auto()

    @classmethod
    def weakest(cls, *statuses: "Convergence") -> "Convergence":
        return max(statuses, key=lambda status: status.value, default=cls.CONVERGED)


@dataclasses.dataclass(slots=True, frozen=True)
class SolverResult:
    value: int
    status: Convergence
    iterations: int

    @property
    def converged(self) -> bool:
        return self.status is Convergence.CONVERGED
