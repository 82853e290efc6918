from typing import Any

from eth_typing import ChecksumAddress

from swaproute.exceptions.base import SwaprouteError


class LiquidityPoolError(SwaprouteError):
    """
    Base for errors raised by the pool models, their states, and their updates.
    """


class ExternalUpdateError(LiquidityPoolError):
    """
    An event could not be decoded, or applying it would leave the pool in an impossible state.
    """


class IncompleteSwap(LiquidityPoolError):
    """
    The pool ran out of liquidity before the whole input was swapped. The amounts record how far the
    swap progressed.
    """

    def __init__(self, amount_in: int, amount_out: int) -> None:
        self.amount_in = amount_in
        self.amount_out = amount_out
        super().__init__(
            message=f"Swap stopped after consuming {amount_in} input for {amount_out} output."
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.amount_in, self.amount_out)


class InvalidSwapInputAmount(LiquidityPoolError):
    def __init__(self) -> None:
        super().__init__(message="Swap input amounts must be non-negative.")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, ()


class NoLiquidity(LiquidityPoolError):
    """
    A pool holds no reserves on one or both sides of a swap.
    """

    def __init__(self, pool: ChecksumAddress | None = None) -> None:
        self.pool = pool
        super().__init__(
            message="Pool has no liquidity." if pool is None else f"Pool {pool} has no liquidity."
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool,)


class UnknownPool(LiquidityPoolError):
    """
    A pool address is missing from the directory or the state store.
    """

    def __init__(self, pool: ChecksumAddress | str) -> None:
        self.pool = pool
        super().__init__(message=f"Pool {pool} is not tracked.")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool,)
