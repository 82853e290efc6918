import dataclasses

import pydantic
from eth_typing import ChecksumAddress

from swaproute.types.abstract import AbstractPoolState
from swaproute.types.aliases import BlockNumber
from swaproute.validation.evm_values import ValidatedInt128, ValidatedUint128, ValidatedUint256

type BitmapWord = int
type Pip = int  # Concentrated liquidity pool fees are expressed in pips, one hundredth of 1 bps
type Liquidity = int
type LiquidityNet = int
type SqrtPriceX96 = int
type Tick = int


class BitmapAtWord(pydantic.BaseModel, frozen=True):
    bitmap: ValidatedUint256
    block: BlockNumber = 0


class LiquidityAtTick(pydantic.BaseModel, frozen=True):
    liquidity_net: ValidatedInt128
    liquidity_gross: ValidatedUint128
    block: BlockNumber = 0


type InitializedTickMap = dict[BitmapWord, BitmapAtWord]
type LiquidityMap = dict[Tick, LiquidityAtTick]


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class ConcentratedLiquidityPoolState(AbstractPoolState):
    """
    The state of a concentrated liquidity pool. Every initialized tick has an entry in `tick_data`
    and a set bit in `tick_bitmap`.
    """

    token0: ChecksumAddress
    token1: ChecksumAddress
    fee: Pip
    tick_spacing: int
    liquidity: Liquidity
    sqrt_price_x96: SqrtPriceX96
    tick: Tick
    tick_bitmap: InitializedTickMap = dataclasses.field(default_factory=dict)
    tick_data: LiquidityMap = dataclasses.field(default_factory=dict)

    @property
    def tokens(self) -> tuple[ChecksumAddress, ChecksumAddress]:
        return self.token0, self.token1

    @property
    def initialized_ticks(self) -> list[Tick]:
        """
        The initialized ticks, sorted by index.
        """
        return sorted(self.tick_data)
