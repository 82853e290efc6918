import dataclasses

from eth_typing import ChecksumAddress

from swaproute.types.abstract import AbstractPoolState

type BasisPoints = int


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class ConstantProductPoolState(AbstractPoolState):
    token0: ChecksumAddress
    token1: ChecksumAddress
    fee: BasisPoints
    reserves_token0: int
    reserves_token1: int

    @property
    def tokens(self) -> tuple[ChecksumAddress, ChecksumAddress]:
        return self.token0, self.token1
