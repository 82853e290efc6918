# ruff: noqa: A005

import dataclasses

from eth_typing import ChecksumAddress

from swaproute.types.abstract import AbstractPoolState


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class StableSwapPoolState(AbstractPoolState):
    """
    The state of a StableSwap pool.

    `rates` hold the per-coin multipliers that normalize raw balances to 18 decimal places, i.e.
    `10**(36 - decimals)` scaled by `PRECISION`. `amplification` is the value used directly by the
    invariant math, which is `A * a_precision` for pools that report a precise amplification.
    """

    coins: tuple[ChecksumAddress, ...]
    balances: tuple[int, ...]
    rates: tuple[int, ...]
    amplification: int
    fee: int
    a_precision: int = 1

    @property
    def tokens(self) -> tuple[ChecksumAddress, ...]:
        return self.coins
