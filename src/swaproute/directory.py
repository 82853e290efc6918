"""
The static pool and token directory loaded at startup.

The directory is read from a JSON document with this structure:

{
    "tokens": [
        {"address": "0x...", "decimals": 18, "symbol": "WETH", "name": "Wrapped Ether"},
        ...
    ],
    "pools": [
        {"kind": "constant_product", "address": "0x...", "token0": "0x...", "token1": "0x...",
         "fee": 30},
        {"kind": "concentrated_liquidity", "address": "0x...", "token0": "0x...",
         "token1": "0x...", "fee": 500, "tick_spacing": 10},
        {"kind": "stableswap", "address": "0x...", "coins": ["0x...", "0x...", "0x..."]},
        ...
    ]
}
"""

import pathlib
from collections.abc import Iterator
from typing import Annotated, Literal

import pydantic
from eth_typing import ChecksumAddress

from swaproute.erc20 import Address, Erc20Token
from swaproute.exceptions import SwaprouteValueError, UnknownPool, UnknownToken
from swaproute.logging import logger


class ConstantProductPoolRecord(pydantic.BaseModel, frozen=True):
    kind: Literal["constant_product"] = "constant_product"
    address: Address
    token0: Address
    token1: Address
    fee: Annotated[int, pydantic.Field(ge=0, lt=10_000)] = 30  # basis points

    @property
    def tokens(self) -> tuple[ChecksumAddress, ...]:
        return self.token0, self.token1


class ConcentratedLiquidityPoolRecord(pydantic.BaseModel, frozen=True):
    kind: Literal["concentrated_liquidity"] = "concentrated_liquidity"
    address: Address
    token0: Address
    token1: Address
    fee: Annotated[int, pydantic.Field(ge=0, lt=1_000_000)]  # pips
    tick_spacing: Annotated[int, pydantic.Field(gt=0)] | None = None

    @property
    def tokens(self) -> tuple[ChecksumAddress, ...]:
        return self.token0, self.token1


class StableSwapPoolRecord(pydantic.BaseModel, frozen=True):
    kind: Literal["stableswap"] = "stableswap"
    address: Address
    coins: Annotated[tuple[Address, ...], pydantic.Field(min_length=2, max_length=8)]
    fee: Annotated[int, pydantic.Field(ge=0)] | None = None  # 1e10 denominator
    amplification: Annotated[int, pydantic.Field(gt=0)] | None = None
    a_precision: Literal[1, 100] = 1
    coin_index_type: Literal["uint256", "int128"] = "uint256"

    @property
    def tokens(self) -> tuple[ChecksumAddress, ...]:
        return self.coins


AnyPoolRecord = (
    ConstantProductPoolRecord | ConcentratedLiquidityPoolRecord | StableSwapPoolRecord
)
PoolRecord = Annotated[AnyPoolRecord, pydantic.Field(discriminator="kind")]


class PoolDirectoryFile(pydantic.BaseModel):
    tokens: list[Erc20Token]
    pools: list[PoolRecord]


class PoolDirectory:
    """
    Lookup tables for the tokens and pools known at startup. Missing references raise immediately.
    """

    def __init__(
        self,
        tokens: list[Erc20Token],
        pools: list[AnyPoolRecord],
    ) -> None:
        self._tokens: dict[ChecksumAddress, Erc20Token] = {token.address: token for token in tokens}
        self._pools: dict[ChecksumAddress, AnyPoolRecord] = {}

        for pool in pools:
            if pool.address in self._pools:
                raise SwaprouteValueError(message=f"Pool {pool.address} is listed more than once.")
            if len(set(pool.tokens)) != len(pool.tokens):
                raise SwaprouteValueError(message=f"Pool {pool.address} lists a token twice.")
            self._pools[pool.address] = pool

    def __contains__(self, address: object) -> bool:
        return address in self._pools or address in self._tokens

    def __len__(self) -> int:
        return len(self._pools)

    def __iter__(self) -> Iterator[AnyPoolRecord]:
        return iter(self._pools.values())

    @property
    def tokens(self) -> tuple[Erc20Token, ...]:
        return tuple(self._tokens.values())

    @property
    def pools(self) -> tuple[AnyPoolRecord, ...]:
        return tuple(self._pools.values())

    def get_token(self, address: ChecksumAddress) -> Erc20Token:
        try:
            return self._tokens[address]
        except KeyError:
            raise UnknownToken(address) from None

    def get_pool(self, address: ChecksumAddress) -> AnyPoolRecord:
        try:
            return self._pools[address]
        except KeyError:
            raise UnknownPool(address) from None


def load_directory(path: pathlib.Path | str) -> PoolDirectory:
    """
    Load the pool & token directory from a JSON file.
    """

    path = pathlib.Path(path).expanduser().absolute()
    directory_file = PoolDirectoryFile.model_validate_json(path.read_bytes())
    directory = PoolDirectory(tokens=directory_file.tokens, pools=directory_file.pools)
    logger.info(
        f"Loaded {len(directory.tokens)} tokens and {len(directory.pools)} pools from {path}"
    )
    return directory
